"""
Menu Catalog Management

Staff-facing CRUD over menu items plus the public listing. Editing or
deleting an item never reaches into existing orders, which hold their
own snapshots.
"""

import logging
from typing import Optional

from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.errors import NotFound
from tableside.database import save_changes
from tableside.models import MenuCategory, MenuItem
from tableside.schemas import MenuItemCreate, MenuItemUpdate
from tableside.services.access import Principal, require_admin, require_staff
from tableside.services.query import page_offset, parse_bool, parse_enum, parse_sort

logger = logging.getLogger(__name__)

MENU_SORT_FIELDS = {
    "name": MenuItem.name,
    "price": MenuItem.price,
    "category": cast(MenuItem.category, String),
    "average_rating": MenuItem.average_rating,
    "preparation_time": MenuItem.preparation_time,
    "calories": MenuItem.calories,
    "created_at": MenuItem.created_at,
}
DEFAULT_MENU_SORT = "name"


async def list_menu_items(
    session: AsyncSession,
    category: Optional[str] = None,
    is_vegetarian: Optional[str] = None,
    is_available: Optional[str] = None,
    sort: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[MenuItem], int]:
    """Filtered, sorted page of the menu and the total number of matches."""
    conditions = []

    category_enum = parse_enum(MenuCategory, category, "category")
    if category_enum is not None:
        conditions.append(MenuItem.category == category_enum)

    vegetarian = parse_bool(is_vegetarian, "is_vegetarian")
    if vegetarian is not None:
        conditions.append(MenuItem.is_vegetarian == vegetarian)

    available = parse_bool(is_available, "is_available")
    if available is not None:
        conditions.append(MenuItem.is_available == available)

    order_by = parse_sort(sort, MENU_SORT_FIELDS, DEFAULT_MENU_SORT)
    offset = page_offset(page, limit)

    query = (
        select(MenuItem)
        .where(*conditions)
        .order_by(*order_by, MenuItem.id)
        .offset(offset)
        .limit(limit)
    )
    count_query = select(func.count(MenuItem.id)).where(*conditions)

    total = (await session.execute(count_query)).scalar() or 0
    items = list((await session.execute(query)).scalars().all())
    return items, total


async def get_menu_item(session: AsyncSession, item_id: str) -> MenuItem:
    menu_item = await session.get(MenuItem, item_id)
    if menu_item is None:
        raise NotFound("Menu item not found", menu_item_id=item_id)
    return menu_item


async def create_menu_item(
    session: AsyncSession,
    principal: Principal,
    payload: MenuItemCreate,
) -> MenuItem:
    """Add a dish to the menu (staff/admin). Ratings start empty."""
    require_staff(principal)

    data = payload.model_dump()
    data["allergens"] = [a.value for a in payload.allergens]

    menu_item = MenuItem(**data, ratings=[], average_rating=0.0)
    session.add(menu_item)
    await save_changes(session, "Menu item")

    logger.info(f"Menu item {menu_item.id} ({menu_item.name}) created by {principal.user_id}")
    return menu_item


async def update_menu_item(
    session: AsyncSession,
    item_id: str,
    principal: Principal,
    patch: MenuItemUpdate,
) -> MenuItem:
    """Apply a partial edit (staff/admin)."""
    require_staff(principal)
    menu_item = await get_menu_item(session, item_id)

    changes = patch.model_dump(exclude_unset=True, exclude_none=True)
    if "allergens" in changes:
        changes["allergens"] = [a.value for a in patch.allergens]
    for field, value in changes.items():
        setattr(menu_item, field, value)

    await save_changes(session, f"Menu item {item_id}")
    logger.info(f"Menu item {item_id} updated by {principal.user_id}: {sorted(changes)}")
    return menu_item


async def delete_menu_item(
    session: AsyncSession,
    item_id: str,
    principal: Principal,
) -> None:
    """Remove a dish for good (admin only)."""
    require_admin(principal)
    menu_item = await get_menu_item(session, item_id)

    await session.delete(menu_item)
    await save_changes(session, f"Menu item {item_id}")
    logger.info(f"Menu item {item_id} deleted by {principal.user_id}")
