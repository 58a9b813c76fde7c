"""
Pydantic Schemas for Request/Response Validation

Status, order type, payment and menu enums are the ones declared in
tableside.models, so the API and the stored records share one definition.

Version: 1.0.0
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tableside.models import (
    Allergen,
    MenuCategory,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)


# =============================================================================
# SHARED
# =============================================================================

class DeliveryAddress(BaseModel):
    """Where a delivery order is taken."""
    street: Optional[str] = Field(None, max_length=255, examples=["350 Fifth Avenue"])
    city: Optional[str] = Field(None, max_length=100, examples=["New York"])
    state: Optional[str] = Field(None, max_length=100, examples=["NY"])
    zip_code: Optional[str] = Field(None, max_length=20, examples=["10001"])
    country: Optional[str] = Field(None, max_length=100, examples=["US"])


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


# =============================================================================
# ORDER REQUEST SCHEMAS
# =============================================================================

class OrderLineCreate(BaseModel):
    """One requested line: which menu item, how many, and a kitchen note."""
    menu_item_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = Field(..., ge=1, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=200)


class OrderCreate(BaseModel):
    """Request schema for placing a new order."""

    items: List[OrderLineCreate] = Field(..., min_length=1)
    order_type: OrderType = Field(..., examples=["dine-in"])

    # Dine-in only
    table_number: Optional[int] = Field(None, ge=1, examples=[12])

    # Delivery only
    delivery_address: Optional[DeliveryAddress] = None

    special_instructions: Optional[str] = Field(None, max_length=500)
    payment_method: PaymentMethod = Field(default=PaymentMethod.NOT_PAID)

    @model_validator(mode="after")
    def check_fulfillment_fields(self) -> "OrderCreate":
        if self.order_type == OrderType.DINE_IN and self.table_number is None:
            raise ValueError("Table number is required for dine-in orders")
        if self.order_type == OrderType.DELIVERY and (
            self.delivery_address is None or not self.delivery_address.street
        ):
            raise ValueError("Delivery address with a street is required for delivery orders")
        return self


class OrderUpdate(BaseModel):
    """
    Fields a pending order may still change.

    Status, totals, history and ownership are not part of this schema and
    are rejected if sent.
    """
    model_config = ConfigDict(extra="forbid")

    items: Optional[List[OrderLineCreate]] = Field(None, min_length=1)
    order_type: Optional[OrderType] = None
    table_number: Optional[int] = Field(None, ge=1)
    delivery_address: Optional[DeliveryAddress] = None
    special_instructions: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[PaymentMethod] = None


class OrderStatusUpdate(BaseModel):
    """
    Staff request to move an order to another status.

    ``status`` is checked by the order service so that an unknown value is
    reported as an invalid status rather than a malformed request.
    """
    status: Optional[str] = Field(None, examples=["confirmed"])
    note: Optional[str] = Field(None, max_length=255)


# =============================================================================
# MENU REQUEST SCHEMAS
# =============================================================================

class MenuItemCreate(BaseModel):
    """Request schema for adding a dish to the menu."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100, examples=["Pizza Margherita"])
    description: str = Field(..., min_length=1, max_length=500)
    price: float = Field(..., ge=0, examples=[14.99])
    image: str = Field(default="default-food.jpg", max_length=255)
    category: MenuCategory = Field(..., examples=["main course"])
    is_available: bool = True
    preparation_time: int = Field(default=15, ge=0)
    allergens: List[Allergen] = Field(default_factory=list)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    calories: int = Field(default=0, ge=0)


class MenuItemUpdate(BaseModel):
    """Partial menu item edit. Ratings and the average are not editable."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = Field(None, max_length=255)
    category: Optional[MenuCategory] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    allergens: Optional[List[Allergen]] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    calories: Optional[int] = Field(None, ge=0)


class RatingCreate(BaseModel):
    """A customer's rating; the 1..5 range is enforced by the rating recorder."""
    rating: int = Field(..., examples=[4])
    review: Optional[str] = Field(None, max_length=1000)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class LineItemResponse(BaseModel):
    menu_item_id: str
    name: str
    price: float
    quantity: int
    special_instructions: str = ""


class HistoryEntryResponse(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: str = ""


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    items: List[LineItemResponse]
    order_type: OrderType
    table_number: Optional[int]
    delivery_address: Optional[DeliveryAddress]
    total_amount: float
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    special_instructions: Optional[str]
    estimated_delivery_time: Optional[datetime]
    delivered_at: Optional[datetime]
    order_history: List[HistoryEntryResponse]
    created_at: datetime
    updated_at: Optional[datetime]


class RatingResponse(BaseModel):
    user_id: str
    value: int
    review: str = ""
    date: datetime


class MenuItemResponse(BaseModel):
    """Response schema for a single menu item."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    price: float
    image: str
    category: MenuCategory
    is_available: bool
    preparation_time: int
    allergens: List[Allergen]
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    calories: int
    ratings: List[RatingResponse]
    average_rating: float
    created_at: datetime
    updated_at: Optional[datetime]


class OrderEnvelope(BaseModel):
    success: bool = True
    data: OrderResponse


class OrderListEnvelope(BaseModel):
    """Response for listing multiple orders."""
    success: bool = True
    count: int
    pagination: Optional[Pagination] = None
    data: List[OrderResponse]


class MenuItemEnvelope(BaseModel):
    success: bool = True
    data: MenuItemResponse


class MenuItemListEnvelope(BaseModel):
    success: bool = True
    count: int
    pagination: Pagination
    data: List[MenuItemResponse]


class DeletedEnvelope(BaseModel):
    success: bool = True
    data: dict = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    status: int
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    timestamp: datetime
