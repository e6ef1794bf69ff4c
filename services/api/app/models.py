"""SQLAlchemy ORM models for the household kitchen.

Tables:
- users: Household members and visitors, bound to a device fingerprint
- dishes: The menu
- cart_items: The single shared cart (one row per contributor + dish)
- orders / order_items: Checked-out carts with prices frozen at order time
- reviews / review_photos: Ratings left on dishes, optionally tied to an order
- settings: Flat key/value store (visitor toggles, admin credentials)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Text,
    Integer,
    Boolean,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


ROLE_FULFILLER = "fulfiller"
ROLE_ORDERER = "orderer"
ROLE_VISITOR = "visitor"
ROLES = (ROLE_FULFILLER, ROLE_ORDERER, ROLE_VISITOR)
NAMED_ROLES = (ROLE_FULFILLER, ROLE_ORDERER)

DISH_CATEGORIES = ("Mains", "Appetizers", "Soups", "Sides", "Noodles", "Desserts", "Drinks")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Household member or anonymous visitor."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_VISITOR)
    fingerprint: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)
    device_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    is_whitelisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Dish(Base):
    __tablename__ = "dishes"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_dishes_price_non_negative"),
        CheckConstraint("spice_level BETWEEN 0 AND 5", name="ck_dishes_spice_level"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # 0 == free household meal
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_recommended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    spice_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prep_time: Mapped[int] = mapped_column(Integer, nullable=False, default=15)  # minutes
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class CartItem(Base):
    """Entry in the shared household cart.

    There is exactly one cart. Rows are keyed by contributor so repeated adds of the
    same dish by the same person increment quantity instead of adding rows.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "dish_id", name="uq_cart_items_user_dish"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    dish_id: Mapped[int] = mapped_column(Integer, ForeignKey("dishes.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    special_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship("User")
    dish: Mapped["Dish"] = relationship("Dish")


class Order(Base):
    """Checked-out cart. Only status and completed_at change after creation."""
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    # Status: pending | cooking | ready | completed | cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", order_by="OrderItem.id"
    )


class OrderItem(Base):
    """Line item with the dish price captured when the order was placed."""
    __tablename__ = "order_items"
    __table_args__ = (
        Index("ix_order_items_order_id", "order_id"),
        Index("ix_order_items_dish_id", "dish_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id"), nullable=False)
    # Nulled when the dish is removed from the menu; price_at_order keeps the history
    dish_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("dishes.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_order: Mapped[float] = mapped_column(Float, nullable=False)
    special_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    added_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        Index("ix_reviews_dish_id", "dish_id"),
        Index("ix_reviews_order_id", "order_id"),
        UniqueConstraint("user_id", "dish_id", "order_id", name="uq_reviews_user_dish_order"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    dish_id: Mapped[int] = mapped_column(Integer, ForeignKey("dishes.id"), nullable=False)
    order_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("orders.id"), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    photos: Mapped[list["ReviewPhoto"]] = relationship(
        "ReviewPhoto", back_populates="review", order_by="ReviewPhoto.id"
    )


class ReviewPhoto(Base):
    __tablename__ = "review_photos"
    __table_args__ = (
        Index("ix_review_photos_review_id", "review_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    review_id: Mapped[int] = mapped_column(Integer, ForeignKey("reviews.id"), nullable=False)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    review: Mapped["Review"] = relationship("Review", back_populates="photos")


class Setting(Base):
    """Flat key/value settings (visitor toggles, admin password and token)."""
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
