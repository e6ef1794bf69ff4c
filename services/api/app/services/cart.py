"""Shared cart.

The household has ONE cart. Every authorized member sees and can order every
line in it; rows only remember who contributed them. Nothing in this module
filters by user, and order checkout drains the whole cart.
"""

import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.infra.cache import Cache
from app.models import CartItem, Dish, User
from app.schemas import CartItemOut

logger = logging.getLogger("kitchen.cart")

CACHE_PREFIX = "cart"


def _increment(db: Session, user_id: int, dish_id: int, quantity: int) -> int:
    # Single UPDATE so concurrent adds of the same dish never lose an increment
    result = db.execute(
        update(CartItem)
        .where(CartItem.user_id == user_id, CartItem.dish_id == dish_id)
        .values(quantity=CartItem.quantity + quantity)
    )
    return result.rowcount


def add_item(
    db: Session,
    cache: Optional[Cache],
    user_id: Optional[int],
    dish_id: Optional[int],
    quantity: Optional[int] = None,
    note: Optional[str] = None,
) -> CartItem:
    """Add a dish to the shared cart, or bump the contributor's existing line for it."""
    if not user_id or not dish_id:
        raise ValidationError("Missing user_id or dish_id")
    if quantity is None:
        quantity = 1
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")
    if db.get(Dish, dish_id) is None:
        raise NotFoundError(f"Dish {dish_id} not found")

    try:
        if not _increment(db, user_id, dish_id, quantity):
            try:
                with db.begin_nested():
                    db.add(CartItem(
                        user_id=user_id,
                        dish_id=dish_id,
                        quantity=quantity,
                        special_notes=note or None,
                    ))
            except IntegrityError:
                # Another request inserted the same (user, dish) first
                logger.info(f"Cart insert raced for user={user_id} dish={dish_id}, incrementing")
                _increment(db, user_id, dish_id, quantity)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if cache is not None:
        cache.invalidate(CACHE_PREFIX)

    return db.scalar(
        select(CartItem).where(CartItem.user_id == user_id, CartItem.dish_id == dish_id)
    )


def set_quantity(db: Session, cache: Optional[Cache], cart_item_id: int, quantity: int) -> Optional[CartItem]:
    """Overwrite a line's quantity. Zero or negative removes the line."""
    if quantity <= 0:
        remove_item(db, cache, cart_item_id)
        return None

    db.execute(update(CartItem).where(CartItem.id == cart_item_id).values(quantity=quantity))
    db.commit()
    if cache is not None:
        cache.invalidate(CACHE_PREFIX)
    return db.get(CartItem, cart_item_id)


def remove_item(db: Session, cache: Optional[Cache], cart_item_id: int) -> None:
    """Delete a line. Missing ids are ignored."""
    db.execute(delete(CartItem).where(CartItem.id == cart_item_id))
    db.commit()
    if cache is not None:
        cache.invalidate(CACHE_PREFIX)


def clear_all(db: Session, *, commit: bool = True) -> int:
    """Empty the shared cart.

    Order creation calls this with commit=False so the clear lands in the same
    transaction as the order rows.
    """
    result = db.execute(delete(CartItem))
    if commit:
        db.commit()
    return result.rowcount


def list_cart(db: Session) -> list[CartItemOut]:
    rows = db.execute(
        select(
            CartItem,
            Dish.name,
            Dish.price,
            Dish.thumbnail_url,
            User.name,
        )
        .outerjoin(Dish, CartItem.dish_id == Dish.id)
        .outerjoin(User, CartItem.user_id == User.id)
        .order_by(CartItem.added_at, CartItem.id)
    ).all()

    return [
        CartItemOut(
            id=item.id,
            user_id=item.user_id,
            dish_id=item.dish_id,
            quantity=item.quantity,
            special_notes=item.special_notes,
            added_at=item.added_at,
            dish_name=dish_name,
            dish_price=dish_price,
            dish_thumbnail=dish_thumb,
            user_name=user_name,
        )
        for item, dish_name, dish_price, dish_thumb, user_name in rows
    ]
