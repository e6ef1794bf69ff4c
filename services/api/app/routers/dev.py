"""Dev-only endpoints for seeding and debugging.

Endpoints:
- POST /api/dev/seed - Create the household members, starter menu and visitor toggles
- POST /api/dev/cache/flush - Drop every cached listing and statistic
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import Cache, get_cache
from ..infra.cache import invalidate_all
from ..services.seed import seed_household
from ..settings import settings

router = APIRouter()


def _require_dev_mode():
    if not settings.dev_mode:
        raise HTTPException(status_code=404, detail="Not found")


@router.post("/dev/seed", dependencies=[Depends(_require_dev_mode)])
def seed_dev_data(db: Session = Depends(get_db)):
    """Idempotent: running multiple times won't create duplicates."""
    created = seed_household(db)
    return {"created": created}


@router.post("/dev/cache/flush", dependencies=[Depends(_require_dev_mode)])
def flush_cache(cache: Cache = Depends(get_cache)):
    invalidate_all(cache, "orders", "cart", "reviews", "stats")
    return {"ok": True}
