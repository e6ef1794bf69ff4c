from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..core.errors import ValidationError
from ..deps import Cache, get_cache, get_db, get_principal
from ..policy import Capability, require, require_status_driver
from ..services import orders as order_service
from ..services.identity import Principal
from ..services.notifications import OrderNotifier, get_notifier

router = APIRouter()


@router.get("/orders", response_model=list[schemas.OrderOut])
def list_orders(
    user_id: Optional[int] = None,
    status: Optional[str] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Orders newest first, optionally for one user and/or one status."""
    require(principal, Capability.VIEW_ORDERS)
    return order_service.list_orders(db, cache, user_id=user_id, status=status)


@router.get("/orders/{order_id}", response_model=schemas.OrderOut)
def get_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    require(principal, Capability.VIEW_ORDERS)
    return order_service.get_order(db, order_id)


@router.post("/orders", response_model=schemas.OrderOut, status_code=status.HTTP_201_CREATED)
def create_order(
    body: schemas.OrderCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """Check out the shared cart (or an explicit snapshot of it)."""
    require(principal, Capability.PLACE_ORDER)
    lines = None
    if body.items is not None:
        lines = [order_service.CartLine(**line.model_dump()) for line in body.items]
    order = order_service.create_order(
        db, cache,
        user_id=principal.user_id,
        lines=lines,
        note=body.notes,
        notifier=notifier,
    )
    return order_service.get_order(db, order.id)


@router.post("/orders/{order_id}/status", response_model=schemas.OrderOut)
def update_order_status(
    order_id: int,
    body: schemas.OrderStatusUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    if body.status not in order_service.STATUSES:
        raise ValidationError(f"Unknown status '{body.status}'")
    require_status_driver(principal, body.status)
    order = order_service.transition(db, cache, order_id, body.status)
    return order_service.get_order(db, order.id)


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Delete an order with its items, reviews and review photos."""
    require(principal, Capability.DELETE_ORDER)
    order_service.delete_order(db, cache, order_id)
