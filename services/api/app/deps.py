"""FastAPI dependencies for the kitchen API.

Provides:
- Database session and cache dependencies
- Principal resolution (X-Device-Fingerprint header -> bound user)
- Admin token check (X-Admin-Token header)
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .core.errors import UnauthorizedError
from .db import get_db
from .infra.cache import Cache, get_cache
from .schemas import VisitorSettings
from .services import admin as admin_service
from .services.identity import Principal, lookup

__all__ = [
    "get_db",
    "get_cache",
    "get_principal",
    "get_principal_optional",
    "get_visitor_settings",
    "require_admin",
    "Cache",
]


def get_principal_optional(
    db: Session = Depends(get_db),
    x_device_fingerprint: Optional[str] = Header(None, alias="X-Device-Fingerprint"),
) -> Optional[Principal]:
    """Resolve the acting user from the device fingerprint, or None if unknown."""
    user = lookup(db, x_device_fingerprint)
    return Principal.of(user) if user else None


def get_principal(
    principal: Optional[Principal] = Depends(get_principal_optional),
) -> Principal:
    if principal is None:
        raise UnauthorizedError("Unknown device. Authenticate via POST /api/auth first.")
    return principal


def get_visitor_settings(db: Session = Depends(get_db)) -> VisitorSettings:
    return admin_service.get_visitor_settings(db)


def require_admin(
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
) -> None:
    if not admin_service.verify_token(db, x_admin_token):
        raise UnauthorizedError("Unauthorized")
