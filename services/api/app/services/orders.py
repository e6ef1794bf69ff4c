"""Order lifecycle.

Checkout turns the shared cart into an order whose total is fixed at creation
time, then the order walks a fixed state machine:

    pending -> cooking -> ready -> completed
       |          |
       +----------+--> cancelled

completed and cancelled are terminal. Who may request which move is decided by
app.policy; this module only enforces that the move exists.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, aliased

from app.core.errors import IllegalTransitionError, NotFoundError, ValidationError
from app.infra.cache import Cache, invalidate_all
from app.models import CartItem, Dish, Order, OrderItem, Review, ReviewPhoto, User
from app.schemas import OrderItemOut, OrderOut
from app.services import cart as cart_service
from app.settings import settings

logger = logging.getLogger("kitchen.orders")

PENDING = "pending"
COOKING = "cooking"
READY = "ready"
COMPLETED = "completed"
CANCELLED = "cancelled"

STATUSES = (PENDING, COOKING, READY, COMPLETED, CANCELLED)
TERMINAL = frozenset({COMPLETED, CANCELLED})

TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({COOKING, CANCELLED}),
    COOKING: frozenset({READY, CANCELLED}),
    READY: frozenset({COMPLETED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}


@dataclass
class CartLine:
    """One line of a cart snapshot handed to create_order."""
    dish_id: int
    quantity: int = 1
    special_notes: Optional[str] = None
    added_by: Optional[int] = None


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def sources_for(target: str) -> list[str]:
    """Statuses from which `target` is reachable in one move."""
    return [status for status, targets in TRANSITIONS.items() if target in targets]


def snapshot_cart(db: Session) -> list[CartLine]:
    """Every line in the shared cart, regardless of contributor."""
    items = db.scalars(select(CartItem).order_by(CartItem.added_at, CartItem.id)).all()
    return [
        CartLine(
            dish_id=i.dish_id,
            quantity=i.quantity,
            special_notes=i.special_notes,
            added_by=i.user_id,
        )
        for i in items
    ]


def create_order(
    db: Session,
    cache: Optional[Cache],
    user_id: Optional[int],
    lines: Optional[Iterable[CartLine]] = None,
    note: Optional[str] = None,
    notifier=None,
) -> Order:
    """Check out the shared cart.

    Lines whose dish no longer exists are skipped; the rest are priced at the
    dish's current price. Order, line items and the cart clear commit together.
    """
    if not user_id:
        raise ValidationError("Missing user_id")
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")

    lines = list(lines) if lines is not None else snapshot_cart(db)
    if not lines:
        raise ValidationError("Cannot place an order with no items")
    for line in lines:
        if line.quantity is None or line.quantity < 1:
            raise ValidationError("Line quantity must be at least 1")
    contributors = {line.added_by for line in lines if line.added_by and line.added_by != user_id}
    if contributors:
        known = set(db.scalars(select(User.id).where(User.id.in_(contributors))))
        unknown = sorted(contributors - known)
        if unknown:
            raise ValidationError(f"Unknown contributor id(s): {', '.join(map(str, unknown))}")

    total = 0.0
    resolved: list[OrderItem] = []
    skipped = 0
    for line in lines:
        dish = db.get(Dish, line.dish_id)
        if dish is None:
            skipped += 1
            continue
        total += dish.price * line.quantity
        resolved.append(OrderItem(
            dish_id=dish.id,
            quantity=line.quantity,
            price_at_order=dish.price,
            special_notes=line.special_notes or None,
            added_by=line.added_by or user_id,
        ))

    if skipped:
        logger.warning(f"Skipped {skipped} cart line(s) whose dish no longer exists")

    order = Order(
        user_id=user_id,
        status=PENDING,
        total_price=total,
        notes=note or None,
    )
    try:
        db.add(order)
        db.flush()
        for item in resolved:
            item.order_id = order.id
            db.add(item)
        cart_service.clear_all(db, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Order creation failed, rolled back")
        raise

    db.refresh(order)
    logger.info(f"Order {order.id} created by user {user_id}: {len(resolved)} line(s), total={total:.2f}")

    if cache is not None:
        invalidate_all(cache, "orders", cart_service.CACHE_PREFIX, "stats")

    if notifier is not None:
        try:
            notifier.notify_new_order(len(resolved), note)
        except Exception:
            logger.exception(f"New-order notification failed for order {order.id}")

    return order


def transition(db: Session, cache: Optional[Cache], order_id: int, target: str) -> Order:
    if target not in STATUSES:
        raise ValidationError(f"Unknown status '{target}'")

    sources = sources_for(target)
    values = {"status": target}
    if target == COMPLETED:
        values["completed_at"] = datetime.now(timezone.utc)

    # Guarded on the current status so a concurrent move can't be overwritten
    try:
        moved = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status.in_(sources))
            .values(**values)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
    except Exception:
        db.rollback()
        raise

    order = db.get(Order, order_id, populate_existing=True)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    if not moved:
        raise IllegalTransitionError(order_id, order.status, target)

    logger.info(f"Order {order_id}: -> {target}")

    if cache is not None:
        invalidate_all(cache, "orders", "stats")
    return order


def delete_order(db: Session, cache: Optional[Cache], order_id: int) -> None:
    """Delete an order with its line items, reviews and review photos. Missing ids are a no-op."""
    review_ids = select(Review.id).where(Review.order_id == order_id)
    try:
        db.execute(delete(ReviewPhoto).where(ReviewPhoto.review_id.in_(review_ids)))
        db.execute(delete(Review).where(Review.order_id == order_id))
        db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        deleted = db.execute(delete(Order).where(Order.id == order_id)).rowcount
        db.commit()
    except Exception:
        db.rollback()
        raise

    if deleted:
        logger.info(f"Order {order_id} deleted")
    if cache is not None:
        invalidate_all(cache, "orders", "reviews", "stats")


def _order_items(db: Session, order_ids: list[int]) -> dict[int, list[OrderItemOut]]:
    if not order_ids:
        return {}
    contributor = aliased(User)
    rows = db.execute(
        select(OrderItem, Dish.name, Dish.thumbnail_url, contributor.name)
        .outerjoin(Dish, OrderItem.dish_id == Dish.id)
        .outerjoin(contributor, OrderItem.added_by == contributor.id)
        .where(OrderItem.order_id.in_(order_ids))
        .order_by(OrderItem.id)
    ).all()

    by_order: dict[int, list[OrderItemOut]] = {}
    for item, dish_name, dish_thumb, added_by_name in rows:
        by_order.setdefault(item.order_id, []).append(OrderItemOut(
            id=item.id,
            dish_id=item.dish_id,
            quantity=item.quantity,
            price_at_order=item.price_at_order,
            special_notes=item.special_notes,
            dish_name=dish_name,
            dish_thumbnail=dish_thumb,
            added_by=item.added_by,
            added_by_name=added_by_name,
        ))
    return by_order


def _to_out(order: Order, items: list[OrderItemOut]) -> OrderOut:
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total_price=order.total_price,
        notes=order.notes,
        created_at=order.created_at,
        completed_at=order.completed_at,
        items=items,
    )


def load_orders(db: Session, user_id: Optional[int] = None) -> list[OrderOut]:
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    orders = db.scalars(query).all()
    items = _order_items(db, [o.id for o in orders])
    return [_to_out(o, items.get(o.id, [])) for o in orders]


def list_orders(
    db: Session,
    cache: Optional[Cache],
    user_id: Optional[int] = None,
    status: Optional[str] = None,
) -> list[dict]:
    """Orders newest first with their line items, as JSON-ready dicts.

    The cache holds one listing per user scope; the status filter is applied on
    top so every status view shares it.
    """
    if status is not None and status not in STATUSES:
        raise ValidationError(f"Unknown status '{status}'")

    def compute():
        return [o.model_dump(mode="json") for o in load_orders(db, user_id)]

    if cache is None:
        result = compute()
    else:
        key = f"orders:user:{user_id}" if user_id is not None else "orders:list"
        result, _ = cache.get_or_set(key, settings.cache_ttl_orders, compute)

    if status:
        return [o for o in result if o["status"] == status]
    return result


def get_order(db: Session, order_id: int) -> OrderOut:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return _to_out(order, _order_items(db, [order.id]).get(order.id, []))
