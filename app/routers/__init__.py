from fastapi import APIRouter

from . import catalog, files, health


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router)
    router.include_router(catalog.router)
    router.include_router(files.router)
    return router
