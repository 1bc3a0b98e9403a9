import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from phutho_rate.core.config import settings
from phutho_rate.core.exceptions import DataFetchError
from phutho_rate.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness plus one database round trip; 503 when the store is unreachable."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check could not reach the database", exc_info=exc)
        raise DataFetchError("the database") from exc
    return {"status": "ok", "env": settings.APP_ENV}
