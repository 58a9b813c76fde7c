"""
Menu Catalog Lookup

Resolves requested order lines against the menu in a single query and
returns detached name/price snapshots. Orders keep these snapshots, so a
later price change or removal on the menu never touches a placed order.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.errors import ItemNotFound, ItemUnavailable
from tableside.models import MenuItem
from tableside.schemas import OrderLineCreate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineSnapshot:
    """An order line with the catalog's name and price copied in."""
    menu_item_id: str
    name: str
    price: float
    quantity: int
    special_instructions: str = ""

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        """Convert to the stored JSON shape."""
        return {
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "special_instructions": self.special_instructions,
        }


def compute_total(lines: Iterable[LineSnapshot]) -> float:
    """Sum of price x quantity, rounded to cents."""
    return round(sum(line.line_total for line in lines), 2)


async def resolve_lines(
    session: AsyncSession,
    lines: list[OrderLineCreate],
) -> list[LineSnapshot]:
    """
    Look up every requested menu item and snapshot it.

    Args:
        session: Active database session
        lines: Requested lines, in the order the customer listed them

    Returns:
        One snapshot per requested line, same order

    Raises:
        ItemNotFound: Any identifier has no menu item
        ItemUnavailable: A resolved item is switched off (names the item)
    """
    requested_ids = {line.menu_item_id for line in lines}

    result = await session.execute(
        select(MenuItem).where(MenuItem.id.in_(requested_ids))
    )
    found = {item.id: item for item in result.scalars().all()}

    if len(found) < len(requested_ids):
        missing = sorted(requested_ids - found.keys())
        logger.info(f"Order rejected, unknown menu items: {missing}")
        raise ItemNotFound(
            f"One or more menu items not found: {', '.join(missing)}",
            missing=missing,
        )

    snapshots: list[LineSnapshot] = []
    for line in lines:
        item = found[line.menu_item_id]

        if not item.is_available:
            logger.info(f"Order rejected, menu item {item.id} ({item.name}) unavailable")
            raise ItemUnavailable(
                f"{item.name} is currently not available",
                menu_item_id=item.id,
            )

        snapshots.append(
            LineSnapshot(
                menu_item_id=item.id,
                name=item.name,
                price=float(item.price),
                quantity=line.quantity,
                special_instructions=line.special_instructions or "",
            )
        )

    return snapshots
