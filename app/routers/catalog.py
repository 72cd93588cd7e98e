from decimal import Decimal
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.dependencies import get_catalog_service
from app.schemas import BrandCreate, BrandRead, CategoryCreate, CategoryRead, ProductRead, ProductWrite
from app.services import ImageUpload, ProductCatalogService
from app.services import exceptions as service_exceptions

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _http_error(exc: service_exceptions.ServiceError) -> HTTPException:
    if isinstance(exc, service_exceptions.PartialReferenceResolution):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(exc), "entity": exc.entity, "missing_ids": exc.missing_ids},
        )
    if isinstance(exc, service_exceptions.ReferenceNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, service_exceptions.ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, service_exceptions.ConcurrentUpdateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, service_exceptions.StorageError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Storage error: {exc}")
    if isinstance(exc, service_exceptions.PersistenceError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Persistence error: {exc}")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def product_form(
    name: str = Form(...),
    listed_price: Decimal = Form(...),
    selling_price: Decimal = Form(...),
    description: Optional[str] = Form(default=None),
    stock: int = Form(default=0),
    active: bool = Form(default=True),
    brand_id: int = Form(...),
    category_ids: list[int] = Form(default=[]),
) -> ProductWrite:
    try:
        return ProductWrite(
            name=name,
            listed_price=listed_price,
            selling_price=selling_price,
            description=description,
            stock=stock,
            active=active,
            brand_id=brand_id,
            category_ids=category_ids,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def _image_uploads(files: list[UploadFile]) -> list[ImageUpload]:
    allowed = {ext.lower() for ext in get_settings().ALLOWED_IMAGE_EXTENSIONS}
    uploads: list[ImageUpload] = []
    for upload in files:
        if not upload.filename:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing filename")
        if Path(upload.filename).suffix.lower() not in allowed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported file type: {upload.filename}",
            )
        if upload.size == 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Empty file: {upload.filename}")
        uploads.append(ImageUpload(filename=upload.filename, content=upload.file))
    return uploads


@router.get("/brands", response_model=list[BrandRead])
def list_brands(service: ProductCatalogService = Depends(get_catalog_service)):
    return [BrandRead.model_validate(brand) for brand in service.list_brands()]


@router.post("/brands", response_model=BrandRead, status_code=status.HTTP_201_CREATED)
def create_brand(payload: BrandCreate, service: ProductCatalogService = Depends(get_catalog_service)):
    try:
        brand = service.create_brand(data=payload.model_dump())
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return BrandRead.model_validate(brand)


@router.get("/categories", response_model=list[CategoryRead])
def list_categories(service: ProductCatalogService = Depends(get_catalog_service)):
    return [CategoryRead.model_validate(category) for category in service.list_categories()]


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, service: ProductCatalogService = Depends(get_catalog_service)):
    try:
        category = service.create_category(data=payload.model_dump())
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return CategoryRead.model_validate(category)


@router.get("/products", response_model=list[ProductRead])
def list_products(service: ProductCatalogService = Depends(get_catalog_service)):
    return [ProductRead.model_validate(product) for product in service.list_products()]


@router.get("/products/active", response_model=list[ProductRead])
def list_active_products(service: ProductCatalogService = Depends(get_catalog_service)):
    return [ProductRead(**item) for item in service.list_active_products()]


@router.get("/products/search", response_model=list[ProductRead])
def search_products(
    keyword: Optional[str] = Query(default=None),
    category_ids: Optional[list[int]] = Query(default=None),
    brand_id: Optional[int] = Query(default=None),
    service: ProductCatalogService = Depends(get_catalog_service),
):
    products = service.search_products(keyword=keyword, category_ids=category_ids, brand_id=brand_id)
    return [ProductRead.model_validate(product) for product in products]


@router.get("/products/{product_id}", response_model=ProductRead)
def get_product(product_id: int, service: ProductCatalogService = Depends(get_catalog_service)):
    try:
        product = service.get_product(product_id)
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return ProductRead.model_validate(product)


@router.post("/products", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductWrite = Depends(product_form),
    new_image_files: list[UploadFile] = File(default=[]),
    service: ProductCatalogService = Depends(get_catalog_service),
):
    uploads = _image_uploads(new_image_files)
    try:
        product = service.add_product(data=payload.model_dump(), new_images=uploads)
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return ProductRead.model_validate(product)


@router.put("/products/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    payload: ProductWrite = Depends(product_form),
    image_ids: list[int] = Form(default=[]),
    new_image_files: list[UploadFile] = File(default=[]),
    service: ProductCatalogService = Depends(get_catalog_service),
):
    uploads = _image_uploads(new_image_files)
    try:
        product = service.update_product(
            product_id=product_id,
            data=payload.model_dump(),
            keep_image_ids=image_ids,
            new_images=uploads,
        )
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return ProductRead.model_validate(product)


@router.post("/products/{product_id}/deactivate", response_model=ProductRead)
def deactivate_product(product_id: int, service: ProductCatalogService = Depends(get_catalog_service)):
    try:
        product = service.deactivate_product(product_id)
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return ProductRead.model_validate(product)


@router.post("/products/{product_id}/activate", response_model=ProductRead)
def activate_product(product_id: int, service: ProductCatalogService = Depends(get_catalog_service)):
    try:
        product = service.activate_product(product_id)
    except service_exceptions.ServiceError as exc:
        raise _http_error(exc) from exc
    return ProductRead.model_validate(product)
