from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import Cache, get_cache, get_db, get_principal_optional, get_visitor_settings
from ..policy import Capability, require
from ..services import reviews as review_service
from ..services.identity import Principal

router = APIRouter()


@router.get("/reviews", response_model=list[schemas.ReviewOut])
def list_reviews(
    dish_id: Optional[int] = None,
    principal: Optional[Principal] = Depends(get_principal_optional),
    visitor: schemas.VisitorSettings = Depends(get_visitor_settings),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.VIEW_REVIEWS, visitor)
    return review_service.list_reviews(db, cache, dish_id=dish_id)


@router.post("/reviews", response_model=schemas.ReviewOut)
def submit_review(
    body: schemas.ReviewCreate,
    principal: Optional[Principal] = Depends(get_principal_optional),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Create a review, or update this user's review of the dish on the same order."""
    require(principal, Capability.REVIEW)
    review = review_service.submit_review(
        db, cache,
        user_id=principal.user_id,
        dish_id=body.dish_id,
        rating=body.rating,
        order_id=body.order_id,
        comment=body.comment,
        photos=body.photos,
    )
    return review_service.review_out(review)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    principal: Optional[Principal] = Depends(get_principal_optional),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    require(principal, Capability.REVIEW)
    review_service.delete_review(db, cache, review_id)
