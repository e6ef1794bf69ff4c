import logging
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.infra.cache import Cache, invalidate_all
from app.models import DISH_CATEGORIES, CartItem, Dish, OrderItem, Review, ReviewPhoto
from app.schemas import DishCreate, DishOut, DishUpdate

logger = logging.getLogger("kitchen.menu")


def _check_category(category: Optional[str]) -> None:
    if category is not None and category not in DISH_CATEGORIES:
        raise ValidationError(
            f"Unknown category '{category}'. Expected one of: {', '.join(DISH_CATEGORIES)}"
        )


def get_dish(db: Session, dish_id: int) -> Dish:
    dish = db.get(Dish, dish_id)
    if dish is None:
        raise NotFoundError(f"Dish {dish_id} not found")
    return dish


def list_dishes(db: Session, category: Optional[str] = None, available_only: bool = True) -> list[DishOut]:
    """Menu with each dish's rating summary."""
    query = select(Dish).order_by(Dish.category, Dish.id)
    if category:
        query = query.where(Dish.category == category)
    if available_only:
        query = query.where(Dish.is_available.is_(True))
    dishes = db.scalars(query).all()

    ratings = {
        dish_id: (avg, count)
        for dish_id, avg, count in db.execute(
            select(Review.dish_id, func.avg(Review.rating), func.count(Review.id))
            .group_by(Review.dish_id)
        ).all()
    }

    result = []
    for d in dishes:
        out = DishOut.model_validate(d)
        if d.id in ratings:
            avg, count = ratings[d.id]
            out.avg_rating = round(float(avg), 1)
            out.review_count = int(count)
        result.append(out)
    return result


def create_dish(db: Session, cache: Optional[Cache], data: DishCreate) -> Dish:
    _check_category(data.category)
    dish = Dish(**data.model_dump())
    db.add(dish)
    db.commit()
    db.refresh(dish)
    logger.info(f"Dish {dish.id} '{dish.name}' added to menu")
    if cache is not None:
        cache.invalidate("stats")
    return dish


def update_dish(db: Session, cache: Optional[Cache], dish_id: int, data: DishUpdate) -> Dish:
    """Partial update. Existing orders keep the price they were placed at."""
    dish = get_dish(db, dish_id)
    update_data = data.model_dump(exclude_unset=True)
    _check_category(update_data.get("category"))
    for field, value in update_data.items():
        setattr(dish, field, value)
    db.commit()
    db.refresh(dish)
    if cache is not None:
        invalidate_all(cache, "stats", "cart")
    return dish


def delete_dish(db: Session, cache: Optional[Cache], dish_id: int) -> None:
    """Remove a dish from the menu.

    Its cart lines and reviews go with it; historical order lines stay, with
    dish_id nulled and price_at_order intact.
    """
    review_ids = select(Review.id).where(Review.dish_id == dish_id)
    try:
        db.execute(delete(CartItem).where(CartItem.dish_id == dish_id))
        db.execute(delete(ReviewPhoto).where(ReviewPhoto.review_id.in_(review_ids)))
        db.execute(delete(Review).where(Review.dish_id == dish_id))
        db.execute(update(OrderItem).where(OrderItem.dish_id == dish_id).values(dish_id=None))
        deleted = db.execute(delete(Dish).where(Dish.id == dish_id)).rowcount
        db.commit()
    except Exception:
        db.rollback()
        raise

    if deleted:
        logger.info(f"Dish {dish_id} removed from menu")
    if cache is not None:
        invalidate_all(cache, "cart", "orders", "reviews", "stats")
