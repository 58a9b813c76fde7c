"""
Rating Recorder

One rating per user per menu item. Re-rating overwrites the caller's
earlier entry in place; the item's average is recomputed from the full
list right before the change is committed.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.errors import NotFound, RatingOutOfRange
from tableside.database import save_changes
from tableside.models import MenuItem
from tableside.services.access import Principal

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def recompute_average(ratings: Iterable[dict[str, Any]]) -> float:
    """
    Mean of the rating values, rounded half-up to one decimal place.

    >>> recompute_average([{"value": 4}, {"value": 5}])
    4.5
    >>> recompute_average([])
    0.0
    """
    values = [Decimal(r["value"]) for r in ratings]
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


async def rate_menu_item(
    session: AsyncSession,
    item_id: str,
    principal: Principal,
    value: int,
    review: Optional[str] = None,
) -> MenuItem:
    """
    Record ``principal``'s rating of a menu item.

    Raises:
        NotFound: No menu item with ``item_id``
        RatingOutOfRange: ``value`` outside 1..5
    """
    menu_item = await session.get(MenuItem, item_id)
    if menu_item is None:
        raise NotFound("Menu item not found", menu_item_id=item_id)

    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise RatingOutOfRange()

    entry = {
        "user_id": principal.user_id,
        "value": value,
        "review": review or "",
        "date": datetime.now(timezone.utc).isoformat(),
    }

    # JSON columns are replaced, never mutated in place, so the ORM sees the change
    ratings = [dict(r) for r in (menu_item.ratings or [])]
    for index, existing in enumerate(ratings):
        if existing.get("user_id") == principal.user_id:
            ratings[index] = entry
            action = "updated"
            break
    else:
        ratings.append(entry)
        action = "added"

    menu_item.ratings = ratings
    menu_item.average_rating = recompute_average(ratings)

    await save_changes(session, f"Menu item {item_id}")
    logger.info(
        f"Rating {action} on menu item {item_id} by {principal.user_id}: "
        f"{value} (average now {menu_item.average_rating})"
    )
    return menu_item
