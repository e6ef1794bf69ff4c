"""Pydantic schemas for the kitchen API.

Request/response models for:
- Identity (auth, users, admin)
- Dishes
- Cart
- Orders (with nested line items)
- Reviews (with photos)
- Statistics
"""

from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, Field


Role = Literal["fulfiller", "orderer", "visitor"]
OrderStatus = Literal["pending", "cooking", "ready", "completed", "cancelled"]
StatsRange = Literal["1m", "3m", "6m", "all"]


# --- Identity ---

class AuthRequest(BaseModel):
    role: Role
    fingerprint: str = Field(..., min_length=1, max_length=128)
    device_name: Optional[str] = Field(None, max_length=200)


class AuthOut(BaseModel):
    authenticated: bool = True
    user_id: Optional[int] = None
    name: Optional[str] = None
    role: Optional[Role] = None
    is_whitelisted: bool = False


class UserOut(BaseModel):
    id: int
    name: str
    role: Role
    fingerprint: Optional[str]
    device_name: Optional[str]
    is_whitelisted: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    id: int
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[Role] = None
    is_whitelisted: Optional[bool] = None
    clear_fingerprint: bool = False


# --- Admin / settings ---

class AdminLogin(BaseModel):
    password: str


class AdminTokenOut(BaseModel):
    token: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class VisitorSettings(BaseModel):
    show_menu: bool = True
    show_stats: bool = False
    show_reviews: bool = False


class VisitorSettingsUpdate(BaseModel):
    show_menu: Optional[bool] = None
    show_stats: Optional[bool] = None
    show_reviews: Optional[bool] = None


class ConfigOut(BaseModel):
    dev_mode: bool
    visitor: VisitorSettings


# --- Dish ---

class DishCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: float = Field(0.0, ge=0)
    category: str
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_available: bool = True
    is_recommended: bool = False
    spice_level: int = Field(0, ge=0, le=5)
    prep_time: int = Field(15, ge=0)


class DishUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_available: Optional[bool] = None
    is_recommended: Optional[bool] = None
    spice_level: Optional[int] = Field(None, ge=0, le=5)
    prep_time: Optional[int] = Field(None, ge=0)


class DishOut(BaseModel):
    id: int
    name: str
    description: str
    price: float
    category: str
    image_url: Optional[str]
    thumbnail_url: Optional[str]
    is_available: bool
    is_recommended: bool
    spice_level: int
    prep_time: int
    created_at: datetime
    avg_rating: Optional[float] = None
    review_count: int = 0

    class Config:
        from_attributes = True


# --- Cart ---

class CartAdd(BaseModel):
    dish_id: Optional[int] = None
    quantity: Optional[int] = None
    special_notes: Optional[str] = None


class CartQuantity(BaseModel):
    quantity: int


class CartItemOut(BaseModel):
    id: int
    user_id: int
    dish_id: int
    quantity: int
    special_notes: Optional[str]
    added_at: datetime
    dish_name: Optional[str]
    dish_price: Optional[float]
    dish_thumbnail: Optional[str]
    user_name: Optional[str]


# --- Order ---

class OrderLine(BaseModel):
    """One line of the cart snapshot submitted at checkout."""
    dish_id: int
    quantity: int = Field(1, ge=1)
    special_notes: Optional[str] = None
    added_by: Optional[int] = None


class OrderCreate(BaseModel):
    notes: Optional[str] = None
    # Omitted -> snapshot the shared cart at checkout time
    items: Optional[list[OrderLine]] = None


class OrderStatusUpdate(BaseModel):
    status: str


class OrderItemOut(BaseModel):
    id: int
    dish_id: Optional[int]
    quantity: int
    price_at_order: float
    special_notes: Optional[str]
    dish_name: Optional[str]
    dish_thumbnail: Optional[str]
    added_by: Optional[int]
    added_by_name: Optional[str]


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    total_price: float
    notes: Optional[str]
    created_at: datetime
    completed_at: Optional[datetime]
    items: list[OrderItemOut] = []


# --- Review ---

class ReviewPhotoIn(BaseModel):
    image_url: str
    thumbnail_url: Optional[str] = None


class ReviewPhotoOut(BaseModel):
    id: int
    image_url: str
    thumbnail_url: Optional[str]

    class Config:
        from_attributes = True


class ReviewCreate(BaseModel):
    dish_id: Optional[int] = None
    order_id: Optional[int] = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    photos: list[ReviewPhotoIn] = []


class ReviewOut(BaseModel):
    id: int
    user_id: int
    dish_id: int
    order_id: Optional[int]
    rating: int
    comment: Optional[str]
    created_at: datetime
    user_name: Optional[str] = None
    dish_name: Optional[str] = None
    photos: list[ReviewPhotoOut] = []


# --- Statistics ---

class DishCount(BaseModel):
    dish_id: Optional[int]
    dish_name: Optional[str]
    total_ordered: int


class DishRating(BaseModel):
    dish_id: int
    dish_name: Optional[str]
    avg_rating: float
    review_count: int


class UserFavorite(BaseModel):
    user_id: int
    user_name: str
    role: Role
    favorite: Optional[DishCount]


class CategoryCount(BaseModel):
    category: Optional[str]
    count: int


class DayCount(BaseModel):
    day: int  # 0 = Sunday ... 6 = Saturday
    count: int


class SpicePoint(BaseModel):
    order_id: int
    user_id: int
    user_name: Optional[str]
    date: datetime
    avg_spice: float


class StatsOut(BaseModel):
    range: StatsRange = "all"
    total_orders: int
    completed_orders: int
    total_dishes_served: int
    average_rating: float
    top_dishes: list[DishCount]
    best_rated: Optional[DishRating]
    worst_rated: Optional[DishRating]
    favorites: list[UserFavorite]
    category_stats: list[CategoryCount]
    orders_by_day: list[DayCount]
    spice_trend: list[SpicePoint]
    days_together: Optional[int] = None
