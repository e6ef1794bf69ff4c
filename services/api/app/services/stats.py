"""Household statistics.

Everything here is derived from the current orders, reviews and dishes; nothing
is written. The whole result is cached as one object under the "stats" prefix,
which every order/review/dish write invalidates.

Ties (best/worst rated, top dishes, favorites) resolve to the lowest dish id.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.infra.cache import Cache
from app.models import NAMED_ROLES, Dish, Order, OrderItem, Review, User
from app.schemas import (
    CategoryCount,
    DayCount,
    DishCount,
    DishRating,
    SpicePoint,
    StatsOut,
    UserFavorite,
)
from app.settings import settings

logger = logging.getLogger("kitchen.stats")

TOP_N = 5
DAYS_PER_MONTH = 30
RANGE_MONTHS = {"1m": 1, "3m": 3, "6m": 6, "all": None}


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def window_start(range_key: str, now: datetime) -> Optional[datetime]:
    if range_key not in RANGE_MONTHS:
        raise ValueError(f"Unknown stats range '{range_key}'")
    months = RANGE_MONTHS[range_key]
    if months is None:
        return None
    return now - timedelta(days=months * DAYS_PER_MONTH)


def _dish_counts(db: Session, *conditions, limit: int = TOP_N) -> list[DishCount]:
    total = func.sum(OrderItem.quantity)
    query = (
        select(OrderItem.dish_id, Dish.name, total)
        .join(Order, OrderItem.order_id == Order.id)
        .outerjoin(Dish, OrderItem.dish_id == Dish.id)
        .where(OrderItem.dish_id.is_not(None), *conditions)
        .group_by(OrderItem.dish_id, Dish.name)
        .order_by(total.desc(), OrderItem.dish_id.asc())
        .limit(limit)
    )
    return [
        DishCount(dish_id=dish_id, dish_name=name, total_ordered=int(count or 0))
        for dish_id, name, count in db.execute(query).all()
    ]


def _rating_extreme(db: Session, best: bool) -> Optional[DishRating]:
    avg = func.avg(Review.rating)
    query = (
        select(Review.dish_id, Dish.name, avg, func.count(Review.id))
        .outerjoin(Dish, Review.dish_id == Dish.id)
        .group_by(Review.dish_id, Dish.name)
        .order_by(avg.desc() if best else avg.asc(), Review.dish_id.asc())
        .limit(1)
    )
    row = db.execute(query).first()
    if row is None:
        return None
    dish_id, name, avg_rating, count = row
    return DishRating(
        dish_id=dish_id,
        dish_name=name,
        avg_rating=round(float(avg_rating), 1),
        review_count=int(count),
    )


def _favorites(db: Session) -> list[UserFavorite]:
    members = db.scalars(
        select(User).where(User.role.in_(NAMED_ROLES)).order_by(User.id)
    ).all()
    favorites = []
    for member in members:
        top = _dish_counts(db, Order.user_id == member.id, limit=1)
        favorites.append(UserFavorite(
            user_id=member.id,
            user_name=member.name,
            role=member.role,
            favorite=top[0] if top else None,
        ))
    return favorites


def _category_stats(db: Session) -> list[CategoryCount]:
    rows = db.execute(
        select(Dish.category, func.sum(OrderItem.quantity))
        .select_from(OrderItem)
        .join(Dish, OrderItem.dish_id == Dish.id)
        .group_by(Dish.category)
        .order_by(Dish.category)
    ).all()
    return [CategoryCount(category=c, count=int(n or 0)) for c, n in rows]


def _orders_by_day(db: Session) -> list[DayCount]:
    buckets = [0] * 7
    for created_at in db.scalars(select(Order.created_at)):
        # Python: Monday == 0; report Sunday == 0
        buckets[(created_at.weekday() + 1) % 7] += 1
    return [DayCount(day=d, count=c) for d, c in enumerate(buckets)]


def _spice_trend(db: Session, since: Optional[datetime]) -> list[SpicePoint]:
    rows = db.execute(
        select(Order.id, Order.user_id, User.name, Order.created_at, func.avg(Dish.spice_level))
        .outerjoin(OrderItem, OrderItem.order_id == Order.id)
        .outerjoin(Dish, OrderItem.dish_id == Dish.id)
        .outerjoin(User, Order.user_id == User.id)
        .group_by(Order.id, Order.user_id, User.name, Order.created_at)
        .order_by(Order.created_at, Order.id)
    ).all()

    points = []
    for order_id, user_id, user_name, created_at, avg_spice in rows:
        created_at = _as_utc(created_at)
        if since is not None and created_at < since:
            continue
        points.append(SpicePoint(
            order_id=order_id,
            user_id=user_id,
            user_name=user_name,
            date=created_at,
            avg_spice=round(float(avg_spice or 0), 1),
        ))
    return points


def days_together(since: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if since is None:
        return None
    today = today or date.today()
    return (today - since).days


def compute_stats(db: Session, range_key: str = "all", now: Optional[datetime] = None) -> StatsOut:
    now = now or datetime.now(timezone.utc)
    since = window_start(range_key, now)

    total_orders = db.scalar(select(func.count(Order.id))) or 0
    completed_orders = db.scalar(
        select(func.count(Order.id)).where(Order.status == "completed")
    ) or 0
    served = db.scalar(
        select(func.coalesce(func.sum(OrderItem.quantity), 0))
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .where(Order.status == "completed")
    ) or 0
    avg_rating = db.scalar(select(func.avg(Review.rating)))

    return StatsOut(
        range=range_key,
        total_orders=total_orders,
        completed_orders=completed_orders,
        total_dishes_served=int(served),
        average_rating=round(float(avg_rating), 1) if avg_rating is not None else 0.0,
        top_dishes=_dish_counts(db),
        best_rated=_rating_extreme(db, best=True),
        worst_rated=_rating_extreme(db, best=False),
        favorites=_favorites(db),
        category_stats=_category_stats(db),
        orders_by_day=_orders_by_day(db),
        spice_trend=_spice_trend(db, since),
        days_together=days_together(settings.household_since, now.date()),
    )


def get_stats(db: Session, cache: Optional[Cache], range_key: str = "all") -> dict:
    def compute():
        return compute_stats(db, range_key).model_dump(mode="json")

    if cache is None:
        return compute()
    result, hit = cache.get_or_set(f"stats:summary:{range_key}", settings.cache_ttl_stats, compute)
    if not hit:
        logger.debug(f"Recomputed stats for range={range_key}")
    return result
