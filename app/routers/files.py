from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from app.core.dependencies import get_blob_store
from app.services import LocalBlobStore

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/product-images/{file_name}")
def get_product_image(file_name: str, blob_store: LocalBlobStore = Depends(get_blob_store)):
    safe_name = Path(file_name).name
    if not blob_store.exists(safe_name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(blob_store.path_for(safe_name))
