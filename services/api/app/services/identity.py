"""Device-fingerprint identity.

The two named household members are seeded rows; logging in binds the role's
row to the device fingerprint. Unknown devices become visitors.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models import (
    NAMED_ROLES,
    ROLE_VISITOR,
    CartItem,
    Order,
    Review,
    ReviewPhoto,
    User,
)
from app.schemas import UserUpdate
from app.settings import settings

logger = logging.getLogger("kitchen.identity")


@dataclass(frozen=True)
class Principal:
    """Acting user as trusted by the core services."""
    user_id: int
    role: str
    is_whitelisted: bool

    @classmethod
    def of(cls, user: User) -> "Principal":
        return cls(user_id=user.id, role=user.role, is_whitelisted=user.is_whitelisted)


def lookup(db: Session, fingerprint: Optional[str]) -> Optional[User]:
    if not fingerprint:
        return None
    return db.scalar(select(User).where(User.fingerprint == fingerprint))


def authenticate(
    db: Session,
    role: Optional[str],
    fingerprint: Optional[str],
    device_name: Optional[str] = None,
) -> User:
    if not role or not fingerprint:
        raise ValidationError("Missing role or fingerprint")

    existing = lookup(db, fingerprint)
    if existing:
        return existing

    if role in NAMED_ROLES:
        member = db.scalar(select(User).where(User.role == role).order_by(User.id))
        if member is not None:
            if member.fingerprint and member.fingerprint != fingerprint and not settings.dev_mode:
                logger.warning(f"Refused second device for role '{role}'")
                raise ForbiddenError("This role is already registered to another device")
            member.fingerprint = fingerprint
            member.device_name = device_name or member.device_name
            member.is_whitelisted = True
            db.commit()
            db.refresh(member)
            logger.info(f"Bound device to {role} (user {member.id})")
            return member

    visitor = User(
        name="Visitor",
        role=ROLE_VISITOR,
        fingerprint=fingerprint,
        device_name=device_name,
        is_whitelisted=False,
    )
    db.add(visitor)
    db.commit()
    db.refresh(visitor)
    logger.info(f"Registered visitor {visitor.id}")
    return visitor


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.id)).all())


def update_user(db: Session, data: UserUpdate) -> User:
    user = db.get(User, data.id)
    if user is None:
        raise NotFoundError(f"User {data.id} not found")
    if data.name is not None:
        user.name = data.name
    if data.role is not None:
        user.role = data.role
    if data.is_whitelisted is not None:
        user.is_whitelisted = data.is_whitelisted
    if data.clear_fingerprint:
        user.fingerprint = None
        user.device_name = None
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    """Delete a visitor with their cart lines and reviews. Named members are never deleted."""
    user = db.get(User, user_id)
    if user is None:
        return
    if user.role in NAMED_ROLES:
        raise ForbiddenError("Household members cannot be deleted")
    if db.scalar(select(func.count(Order.id)).where(Order.user_id == user_id)):
        raise ConflictError("User has orders and cannot be deleted")

    review_ids = select(Review.id).where(Review.user_id == user_id)
    db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    db.execute(delete(ReviewPhoto).where(ReviewPhoto.review_id.in_(review_ids)))
    db.execute(delete(Review).where(Review.user_id == user_id))
    db.delete(user)
    db.commit()
    logger.info(f"Deleted visitor {user_id}")
