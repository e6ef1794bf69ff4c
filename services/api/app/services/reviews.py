import logging
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.infra.cache import Cache, invalidate_all
from app.models import Dish, Order, Review, ReviewPhoto, User
from app.schemas import ReviewOut, ReviewPhotoIn, ReviewPhotoOut
from app.settings import settings

logger = logging.getLogger("kitchen.reviews")


def clamp_rating(rating: int) -> int:
    return min(5, max(1, int(rating)))


def _existing(db: Session, user_id: int, dish_id: int, order_id: int) -> Optional[Review]:
    return db.scalar(
        select(Review).where(
            Review.user_id == user_id,
            Review.dish_id == dish_id,
            Review.order_id == order_id,
        )
    )


def submit_review(
    db: Session,
    cache: Optional[Cache],
    user_id: Optional[int],
    dish_id: Optional[int],
    rating: Optional[int],
    order_id: Optional[int] = None,
    comment: Optional[str] = None,
    photos: Optional[Iterable[ReviewPhotoIn]] = None,
) -> Review:
    """Create a review, or update the one this user already left for the dish on this order."""
    if not user_id or not dish_id or not rating:
        raise ValidationError("Missing required fields")
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")
    if db.get(Dish, dish_id) is None:
        raise NotFoundError(f"Dish {dish_id} not found")
    if order_id is not None and db.get(Order, order_id) is None:
        raise NotFoundError(f"Order {order_id} not found")

    # Standalone reviews (no order) are never merged
    existing = _existing(db, user_id, dish_id, order_id) if order_id is not None else None

    try:
        if existing is None:
            try:
                with db.begin_nested():
                    review = Review(
                        user_id=user_id,
                        dish_id=dish_id,
                        order_id=order_id,
                        rating=clamp_rating(rating),
                        comment=comment or None,
                    )
                    db.add(review)
            except IntegrityError:
                # A concurrent submission for the same order got in first
                logger.info(f"Review insert raced for user={user_id} dish={dish_id} order={order_id}, updating")
                existing = _existing(db, user_id, dish_id, order_id)
                if existing is None:
                    raise

        if existing is not None:
            review = existing
            review.rating = clamp_rating(rating)
            review.comment = comment or None

        for photo in photos or []:
            db.add(ReviewPhoto(
                review_id=review.id,
                image_url=photo.image_url,
                thumbnail_url=photo.thumbnail_url,
            ))

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(review)
    logger.info(f"Review {review.id} {'updated' if existing else 'created'} for dish {dish_id}")

    if cache is not None:
        invalidate_all(cache, "reviews", "stats")
    return review


def delete_review(db: Session, cache: Optional[Cache], review_id: int) -> None:
    """Delete a review and its photos. Missing ids are a no-op."""
    db.execute(delete(ReviewPhoto).where(ReviewPhoto.review_id == review_id))
    db.execute(delete(Review).where(Review.id == review_id))
    db.commit()
    if cache is not None:
        invalidate_all(cache, "reviews", "stats")


def review_out(review: Review, user_name: Optional[str] = None, dish_name: Optional[str] = None) -> ReviewOut:
    return ReviewOut(
        id=review.id,
        user_id=review.user_id,
        dish_id=review.dish_id,
        order_id=review.order_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        user_name=user_name,
        dish_name=dish_name,
        photos=[ReviewPhotoOut.model_validate(p) for p in review.photos],
    )


def load_reviews(db: Session, dish_id: Optional[int] = None) -> list[ReviewOut]:
    query = (
        select(Review, User.name, Dish.name)
        .outerjoin(User, Review.user_id == User.id)
        .outerjoin(Dish, Review.dish_id == Dish.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    if dish_id is not None:
        query = query.where(Review.dish_id == dish_id)
    return [review_out(r, user_name, dish_name) for r, user_name, dish_name in db.execute(query).all()]


def list_reviews(db: Session, cache: Optional[Cache], dish_id: Optional[int] = None) -> list[dict]:
    def compute():
        return [r.model_dump(mode="json") for r in load_reviews(db, dish_id)]

    if cache is None:
        return compute()
    key = f"reviews:dish:{dish_id}" if dish_id is not None else "reviews:list"
    result, _ = cache.get_or_set(key, settings.cache_ttl_reviews, compute)
    return result
