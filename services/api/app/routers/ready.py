import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app import schemas
from app.db import get_db
from app.services import admin as admin_service
from app.settings import settings

router = APIRouter()
logger = logging.getLogger("kitchen.ready")


@router.get("/ready")
def ready(db: Session = Depends(get_db)):
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.exception("Database ping failed")

    redis_ok = None
    if settings.cache_backend == "redis":
        from app.infra.redis_client import get_sync_redis
        redis_ok = False
        try:
            redis_ok = bool(get_sync_redis().ping())
        except Exception:
            logger.exception("Redis ping failed")

    return {"ok": db_ok, "db_ok": db_ok, "redis_ok": redis_ok, "cache_backend": settings.cache_backend}


@router.get("/config", response_model=schemas.ConfigOut)
def get_config(db: Session = Depends(get_db)):
    """Client bootstrap: dev mode flag and what visitors may see."""
    return schemas.ConfigOut(
        dev_mode=settings.dev_mode,
        visitor=admin_service.get_visitor_settings(db),
    )
