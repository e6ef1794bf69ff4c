from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import Cache, get_cache, get_db, get_principal_optional, get_visitor_settings
from ..policy import Capability, require
from ..services import stats as stats_service
from ..services.identity import Principal

router = APIRouter()


@router.get("/stats", response_model=schemas.StatsOut)
def get_stats(
    range: schemas.StatsRange = "all",
    principal: Optional[Principal] = Depends(get_principal_optional),
    visitor: schemas.VisitorSettings = Depends(get_visitor_settings),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Household statistics. `range` trims the spice trend to the last 1/3/6 months."""
    require(principal, Capability.VIEW_STATS, visitor)
    return stats_service.get_stats(db, cache, range)
