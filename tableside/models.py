"""
SQLAlchemy Database Models

Orders and menu items are stored document-style: line items, status
history, ratings and the delivery address live in JSON columns on their
aggregate row.

Both tables carry a ``version`` column registered as the mapper's
``version_id_col``; an UPDATE whose version no longer matches raises
``StaleDataError``, which the services report as a conflict.

Version: 1.0.0
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer, JSON, String, Text

from tableside.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def value_enum(enum_cls) -> Enum:
    """Enum column type that stores the member values rather than their names."""
    return Enum(enum_cls, values_callable=lambda members: [m.value for m in members])


class OrderStatus(str, enum.Enum):
    """Order status workflow, shared by the order and every history entry."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    """How the order reaches the customer."""
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE_PAYMENT = "mobile payment"
    NOT_PAID = "not paid"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class MenuCategory(str, enum.Enum):
    STARTER = "starter"
    MAIN_COURSE = "main course"
    DESSERT = "dessert"
    BEVERAGE = "beverage"
    SIDE = "side"
    SPECIAL = "special"


class Allergen(str, enum.Enum):
    DAIRY = "dairy"
    EGGS = "eggs"
    NUTS = "nuts"
    GLUTEN = "gluten"
    SOY = "soy"
    SEAFOOD = "seafood"
    NONE = "none"


class MenuItem(Base):
    """
    A dish or drink on the menu.

    ``ratings`` holds one entry per rater:
        {"user_id": str, "value": int, "review": str, "date": iso-8601}
    ``average_rating`` is derived from it and only written by the
    rating recorder (see tableside.services.ratings).
    """
    __tablename__ = "menu_items"

    id = Column(String(32), primary_key=True, default=new_id)

    # =========================================================================
    # DESCRIPTION
    # =========================================================================
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    price = Column(Float, nullable=False)
    image = Column(String(255), nullable=False, default="default-food.jpg")
    category = Column(value_enum(MenuCategory), nullable=False, index=True)

    # =========================================================================
    # KITCHEN
    # =========================================================================
    is_available = Column(Boolean, nullable=False, default=True, index=True)
    preparation_time = Column(Integer, nullable=False, default=15)  # minutes
    calories = Column(Integer, nullable=False, default=0)

    # =========================================================================
    # DIETARY
    # =========================================================================
    allergens = Column(JSON, nullable=False, default=list)
    is_vegetarian = Column(Boolean, nullable=False, default=False)
    is_vegan = Column(Boolean, nullable=False, default=False)
    is_gluten_free = Column(Boolean, nullable=False, default=False)

    # =========================================================================
    # RATINGS
    # =========================================================================
    ratings = Column(JSON, nullable=False, default=list)
    average_rating = Column(Float, nullable=False, default=0.0)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} - {self.price:.2f}>"


class Order(Base):
    """
    A customer's order.

    ``items`` entries are frozen at capture time:
        {"menu_item_id", "name", "price", "quantity", "special_instructions"}
    ``order_history`` entries only ever get appended:
        {"status", "timestamp", "note"}
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Float, nullable=False, default=0.0)
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # FULFILLMENT
    # =========================================================================
    order_type = Column(value_enum(OrderType), nullable=False, index=True)
    table_number = Column(Integer, nullable=True)  # dine-in only
    delivery_address = Column(JSON, nullable=True)  # delivery only
    estimated_delivery_time = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_method = Column(value_enum(PaymentMethod), nullable=False, default=PaymentMethod.NOT_PAID)
    payment_status = Column(
        value_enum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True
    )

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        value_enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    order_history = Column(JSON, nullable=False, default=list)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order {self.id} - {self.order_type.value} - {self.user_id} - {self.status.value}>"
