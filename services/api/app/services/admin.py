"""Key/value settings: visitor toggles and admin credentials."""

import hmac
import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import UnauthorizedError, ValidationError
from app.models import Setting
from app.schemas import VisitorSettings, VisitorSettingsUpdate

logger = logging.getLogger("kitchen.admin")

ADMIN_PASSWORD_KEY = "admin_password"
ADMIN_TOKEN_KEY = "admin_token"
VISITOR_KEYS = ("show_menu", "show_stats", "show_reviews")
MIN_PASSWORD_LENGTH = 6


def get_setting(db: Session, key: str) -> Optional[str]:
    row = db.get(Setting, key)
    return row.value if row else None


def put_setting(db: Session, key: str, value: str, *, commit: bool = True) -> None:
    row = db.get(Setting, key)
    if row is None:
        db.add(Setting(key=key, value=value))
    else:
        row.value = value
    if commit:
        db.commit()


# --- Visitor toggles ---

def get_visitor_settings(db: Session) -> VisitorSettings:
    defaults = VisitorSettings()
    values = {}
    for key in VISITOR_KEYS:
        raw = get_setting(db, key)
        values[key] = getattr(defaults, key) if raw is None else raw == "true"
    return VisitorSettings(**values)


def update_visitor_settings(db: Session, data: VisitorSettingsUpdate) -> VisitorSettings:
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        put_setting(db, key, "true" if value else "false", commit=False)
    db.commit()
    return get_visitor_settings(db)


# --- Admin password / token ---

def get_or_create_admin_password(db: Session) -> str:
    existing = get_setting(db, ADMIN_PASSWORD_KEY)
    if existing:
        return existing
    password = secrets.token_urlsafe(9)
    put_setting(db, ADMIN_PASSWORD_KEY, password)
    logger.warning(f"Generated admin password: {password}")
    return password


def verify_password(db: Session, password: str) -> bool:
    stored = get_setting(db, ADMIN_PASSWORD_KEY)
    if not stored or not password:
        return False
    return hmac.compare_digest(stored, password)


def change_password(db: Session, current: str, new: str) -> None:
    if not verify_password(db, current):
        raise UnauthorizedError("Current password is incorrect")
    if len(new) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    put_setting(db, ADMIN_PASSWORD_KEY, new, commit=False)
    # Existing sessions end with the old password
    put_setting(db, ADMIN_TOKEN_KEY, secrets.token_hex(32), commit=False)
    db.commit()
    logger.info("Admin password changed")


def login(db: Session, password: str) -> str:
    get_or_create_admin_password(db)
    if not verify_password(db, password):
        raise UnauthorizedError("Invalid password")
    token = secrets.token_hex(32)
    put_setting(db, ADMIN_TOKEN_KEY, token)
    return token


def verify_token(db: Session, token: Optional[str]) -> bool:
    if not token:
        return False
    stored = get_setting(db, ADMIN_TOKEN_KEY)
    if not stored:
        return False
    return hmac.compare_digest(stored, token)
