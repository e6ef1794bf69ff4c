from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import Cache, get_cache, get_db, get_principal_optional, get_visitor_settings
from ..policy import Capability, require
from ..services import menu as menu_service
from ..services.identity import Principal

router = APIRouter()


@router.get("/dishes", response_model=list[schemas.DishOut])
def list_dishes(
    category: Optional[str] = None,
    available: bool = True,
    principal: Optional[Principal] = Depends(get_principal_optional),
    visitor: schemas.VisitorSettings = Depends(get_visitor_settings),
    db: Session = Depends(get_db),
):
    """Menu with rating summaries. `available=false` includes unavailable dishes."""
    require(principal, Capability.VIEW_MENU, visitor)
    return menu_service.list_dishes(db, category=category, available_only=available)


@router.get("/dishes/{dish_id}", response_model=schemas.DishOut)
def get_dish(
    dish_id: int,
    principal: Optional[Principal] = Depends(get_principal_optional),
    visitor: schemas.VisitorSettings = Depends(get_visitor_settings),
    db: Session = Depends(get_db),
):
    require(principal, Capability.VIEW_MENU, visitor)
    return menu_service.get_dish(db, dish_id)


@router.post("/dishes", response_model=schemas.DishOut, status_code=status.HTTP_201_CREATED)
def create_dish(
    body: schemas.DishCreate,
    principal: Optional[Principal] = Depends(get_principal_optional),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.MANAGE_MENU)
    return menu_service.create_dish(db, cache, body)


@router.patch("/dishes/{dish_id}", response_model=schemas.DishOut)
def update_dish(
    dish_id: int,
    body: schemas.DishUpdate,
    principal: Optional[Principal] = Depends(get_principal_optional),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.MANAGE_MENU)
    return menu_service.update_dish(db, cache, dish_id, body)


@router.delete("/dishes/{dish_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dish(
    dish_id: int,
    principal: Optional[Principal] = Depends(get_principal_optional),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.MANAGE_MENU)
    menu_service.delete_dish(db, cache, dish_id)
