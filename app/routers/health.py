import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.dependencies import get_blob_store, get_db
from app.schemas import HealthStatus
from app.services import LocalBlobStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=list[HealthStatus])
def health_check(
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    checks: list[HealthStatus] = []
    try:
        db.execute(text("SELECT 1"))
        checks.append(HealthStatus(name="database", status="ok"))
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", exc)
        checks.append(HealthStatus(name="database", status="error", detail=str(exc)))

    if blob_store.root.is_dir():
        checks.append(HealthStatus(name="blob_store", status="ok", detail=str(blob_store.root)))
    else:
        checks.append(HealthStatus(name="blob_store", status="error", detail=f"{blob_store.root} is missing"))
    return checks
