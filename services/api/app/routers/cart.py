from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import Cache, get_cache, get_db, get_principal
from ..policy import Capability, require
from ..services import cart as cart_service
from ..services.identity import Principal

router = APIRouter()


@router.get("/cart", response_model=list[schemas.CartItemOut])
def get_cart(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """The shared household cart, every contributor's lines included."""
    require(principal, Capability.USE_CART)
    return cart_service.list_cart(db)


@router.post("/cart", response_model=schemas.CartItemOut, status_code=status.HTTP_201_CREATED)
def add_to_cart(
    body: schemas.CartAdd,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.USE_CART)
    item = cart_service.add_item(
        db, cache,
        user_id=principal.user_id,
        dish_id=body.dish_id,
        quantity=body.quantity,
        note=body.special_notes,
    )
    return next(i for i in cart_service.list_cart(db) if i.id == item.id)


@router.put("/cart/{cart_item_id}")
def set_cart_quantity(
    cart_item_id: int,
    body: schemas.CartQuantity,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Set a line's quantity; zero or less removes it."""
    require(principal, Capability.USE_CART)
    item = cart_service.set_quantity(db, cache, cart_item_id, body.quantity)
    return {"ok": True, "removed": item is None}


@router.delete("/cart/{cart_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_cart(
    cart_item_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.USE_CART)
    cart_service.remove_item(db, cache, cart_item_id)


@router.delete("/cart", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.USE_CART)
    cart_service.clear_all(db)
    cache.invalidate(cart_service.CACHE_PREFIX)
