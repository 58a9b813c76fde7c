"""
Order Service

Owns the order lifecycle: placing an order from catalog snapshots, edits
while the order is still pending, staff status changes with an
append-only history, listing and removal.

Status changes are checked against a transition policy, a mapping from
current status to the statuses staff may move it to:

    permissive  every status from every status
    strict      pending -> confirmed -> preparing -> ready -> delivered -> completed,
                cancelled from any non-terminal status, ready -> completed for
                dine-in/takeaway hand-over

Usage:
    from tableside.services.orders import get_order_service

    service = get_order_service()
    order = await service.create_order(db, principal, payload)

Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Mapping, Optional

from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import TransitionPolicyName, get_settings
from tableside.core.errors import InvalidStatus, NotEditable, NotFound, ValidationFailed
from tableside.database import save_changes
from tableside.models import Order, OrderStatus, OrderType, PaymentStatus
from tableside.schemas import DeliveryAddress, OrderCreate, OrderUpdate
from tableside.services.access import (
    Principal,
    ensure_can_edit_order,
    ensure_can_read_order,
    require_admin,
    require_staff,
)
from tableside.services.catalog import compute_total, resolve_lines
from tableside.services.query import page_offset, parse_enum, parse_sort

logger = logging.getLogger(__name__)

TransitionPolicy = Mapping[OrderStatus, frozenset]

PERMISSIVE_TRANSITIONS: TransitionPolicy = {
    status: frozenset(OrderStatus) for status in OrderStatus
}

STRICT_TRANSITIONS: TransitionPolicy = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TRANSITION_POLICIES = {
    TransitionPolicyName.PERMISSIVE: PERMISSIVE_TRANSITIONS,
    TransitionPolicyName.STRICT: STRICT_TRANSITIONS,
}

# Enum columns sort by their string value, not by declaration order
ORDER_SORT_FIELDS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total_amount": Order.total_amount,
    "status": cast(Order.status, String),
    "order_type": cast(Order.order_type, String),
    "payment_status": cast(Order.payment_status, String),
    "table_number": Order.table_number,
}
DEFAULT_ORDER_SORT = "-created_at"

# Fields an edit may not clear
REQUIRED_PATCH_FIELDS = ("items", "order_type", "payment_method")


def history_entry(status: OrderStatus, note: str, at: datetime) -> dict:
    return {"status": status.value, "timestamp": at.isoformat(), "note": note}


def check_fulfillment(
    order_type: OrderType,
    table_number: Optional[int],
    delivery_address: Optional[dict],
) -> tuple[Optional[int], Optional[dict]]:
    """
    Validate the type-conditional fields and drop the ones that don't apply.

    Returns:
        (table_number, delivery_address) as they should be stored
    """
    if order_type == OrderType.DINE_IN:
        if table_number is None:
            raise ValidationFailed("Table number is required for dine-in orders")
        return table_number, None

    if order_type == OrderType.DELIVERY:
        if not delivery_address or not delivery_address.get("street"):
            raise ValidationFailed("Delivery address with a street is required for delivery orders")
        return None, delivery_address

    return None, None


def _address_dict(address: Optional[DeliveryAddress]) -> Optional[dict]:
    return address.model_dump() if address is not None else None


class OrderService:
    """
    Order lifecycle operations.

    Every mutating method ends in one ``save_changes`` call; the version
    column on ``Order`` turns a lost read-modify-write race into a
    ``Conflict`` instead of a silent overwrite.
    """

    def __init__(self, transitions: Optional[TransitionPolicy] = None):
        self.transitions = transitions if transitions is not None else PERMISSIVE_TRANSITIONS

    # =========================================================================
    # LOOKUP
    # =========================================================================

    async def _load(self, session: AsyncSession, order_id: str) -> Order:
        order = await session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found", order_id=order_id)
        return order

    async def get_order(
        self,
        session: AsyncSession,
        order_id: str,
        principal: Principal,
    ) -> Order:
        """Single order, subject to the read policy."""
        order = await self._load(session, order_id)
        ensure_can_read_order(principal, order)
        return order

    async def list_orders(
        self,
        session: AsyncSession,
        principal: Principal,
        status: Optional[str] = None,
        order_type: Optional[str] = None,
        payment_status: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Order], int]:
        """All orders, filtered and paginated (staff/admin)."""
        require_staff(principal)

        conditions = []
        status_enum = parse_enum(OrderStatus, status, "status")
        if status_enum is not None:
            conditions.append(Order.status == status_enum)

        type_enum = parse_enum(OrderType, order_type, "order_type")
        if type_enum is not None:
            conditions.append(Order.order_type == type_enum)

        payment_enum = parse_enum(PaymentStatus, payment_status, "payment_status")
        if payment_enum is not None:
            conditions.append(Order.payment_status == payment_enum)

        order_by = parse_sort(sort, ORDER_SORT_FIELDS, DEFAULT_ORDER_SORT)
        offset = page_offset(page, limit)

        query = (
            select(Order)
            .where(*conditions)
            .order_by(*order_by, Order.id)
            .offset(offset)
            .limit(limit)
        )
        count_query = select(func.count(Order.id)).where(*conditions)

        total = (await session.execute(count_query)).scalar() or 0
        orders = list((await session.execute(query)).scalars().all())
        return orders, total

    async def list_my_orders(
        self,
        session: AsyncSession,
        principal: Principal,
    ) -> list[Order]:
        """The caller's own orders, newest first."""
        result = await session.execute(
            select(Order)
            .where(Order.user_id == principal.user_id)
            .order_by(Order.created_at.desc(), Order.id)
        )
        return list(result.scalars().all())

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_order(
        self,
        session: AsyncSession,
        principal: Principal,
        payload: OrderCreate,
    ) -> Order:
        """
        Place an order for ``principal``.

        Lines are resolved against the menu and frozen; the total is the
        sum of the frozen prices. The order opens as pending with a single
        "Order created" history entry.

        Raises:
            ValidationFailed: Conditional fields missing for the order type
            ItemNotFound: A line references an unknown menu item
            ItemUnavailable: A line references a switched-off menu item
        """
        table_number, delivery_address = check_fulfillment(
            payload.order_type,
            payload.table_number,
            _address_dict(payload.delivery_address),
        )

        lines = await resolve_lines(session, payload.items)
        now = datetime.now(timezone.utc)

        order = Order(
            user_id=principal.user_id,
            items=[line.to_dict() for line in lines],
            total_amount=compute_total(lines),
            order_type=payload.order_type,
            table_number=table_number,
            delivery_address=delivery_address,
            special_instructions=payload.special_instructions,
            payment_method=payload.payment_method,
            payment_status=PaymentStatus.PENDING,
            status=OrderStatus.PENDING,
            order_history=[history_entry(OrderStatus.PENDING, "Order created", now)],
            created_at=now,
            updated_at=now,
        )
        session.add(order)
        await save_changes(session, "Order")

        logger.info(
            f"Order {order.id} created by {principal.user_id}: "
            f"{len(lines)} line(s), {order.order_type.value}, total {order.total_amount:.2f}"
        )
        return order

    # =========================================================================
    # UPDATE
    # =========================================================================

    async def update_order_fields(
        self,
        session: AsyncSession,
        order_id: str,
        principal: Principal,
        patch: OrderUpdate,
    ) -> Order:
        """
        Edit a pending order (owner or staff/admin).

        New items are re-resolved through the catalog and the total is
        recomputed. Status is never changed here.

        Raises:
            NotFound, Forbidden, NotEditable, ValidationFailed,
            ItemNotFound, ItemUnavailable
        """
        order = await self._load(session, order_id)
        ensure_can_edit_order(principal, order)

        if order.status != OrderStatus.PENDING:
            raise NotEditable(order_id=order_id, status=order.status.value)

        changes = patch.model_dump(exclude_unset=True)
        for field in REQUIRED_PATCH_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationFailed(f"{field} cannot be empty")

        order_type = patch.order_type or order.order_type
        table_number = changes.get("table_number", order.table_number)
        delivery_address = (
            _address_dict(patch.delivery_address)
            if "delivery_address" in changes
            else order.delivery_address
        )
        table_number, delivery_address = check_fulfillment(order_type, table_number, delivery_address)

        if patch.items is not None:
            lines = await resolve_lines(session, patch.items)
            order.items = [line.to_dict() for line in lines]
            order.total_amount = compute_total(lines)

        order.order_type = order_type
        order.table_number = table_number
        order.delivery_address = delivery_address
        if "special_instructions" in changes:
            order.special_instructions = patch.special_instructions
        if patch.payment_method is not None:
            order.payment_method = patch.payment_method

        await save_changes(session, f"Order {order_id}")
        logger.info(f"Order {order_id} updated by {principal.user_id}: {sorted(changes)}")
        return order

    # =========================================================================
    # STATUS
    # =========================================================================

    async def transition_order_status(
        self,
        session: AsyncSession,
        order_id: str,
        principal: Principal,
        new_status: Optional[str],
        note: Optional[str] = None,
    ) -> Order:
        """
        Move an order to ``new_status`` (staff/admin).

        Appends exactly one history entry; moving to delivered stamps
        ``delivered_at`` with the same instant.

        Raises:
            Forbidden: Caller is not staff/admin
            InvalidStatus: Unknown status, or not allowed by the policy
            NotFound: No such order
        """
        require_staff(principal)

        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise InvalidStatus(
                f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )

        order = await self._load(session, order_id)

        current = order.status
        if target not in self.transitions.get(current, frozenset()):
            raise InvalidStatus(
                f"Cannot change order status from {current.value} to {target.value}"
            )

        now = datetime.now(timezone.utc)
        order.status = target
        order.order_history = [
            *order.order_history,
            history_entry(target, note or f"Order status changed to {target.value}", now),
        ]
        if target == OrderStatus.DELIVERED:
            order.delivered_at = now

        await save_changes(session, f"Order {order_id}")
        logger.info(
            f"Order {order_id} status {current.value} -> {target.value} by {principal.user_id}"
        )
        return order

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete_order(
        self,
        session: AsyncSession,
        order_id: str,
        principal: Principal,
    ) -> None:
        """Hard delete (admin only)."""
        require_admin(principal)
        order = await self._load(session, order_id)

        await session.delete(order)
        await save_changes(session, f"Order {order_id}")
        logger.info(f"Order {order_id} deleted by {principal.user_id}")


@lru_cache()
def get_order_service() -> OrderService:
    """
    Get the order service configured by STATUS_TRANSITION_POLICY.

    The instance is cached; call ``reset_order_service()`` after changing
    settings.
    """
    settings = get_settings()
    policy = settings.status_transition_policy
    logger.info(f"Order Service: using {policy.value} status transitions")
    return OrderService(TRANSITION_POLICIES[policy])


def reset_order_service() -> None:
    """Clear the cached order service instance."""
    get_order_service.cache_clear()
