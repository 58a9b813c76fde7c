import pytest

from tableside.core.errors import ItemNotFound, ItemUnavailable
from tableside.schemas import OrderLineCreate
from tableside.services.catalog import LineSnapshot, compute_total, resolve_lines


def line(menu_item_id, quantity=1, note=None):
    return OrderLineCreate(menu_item_id=menu_item_id, quantity=quantity, special_instructions=note)


async def test_resolves_each_line_with_catalog_name_and_price(session, menu):
    snapshots = await resolve_lines(session, [line(menu["pizza"], 2, "no basil"), line(menu["salad"])])

    assert snapshots == [
        LineSnapshot(menu["pizza"], "Pizza", 10.0, 2, "no basil"),
        LineSnapshot(menu["salad"], "Salad", 5.0, 1, ""),
    ]
    assert compute_total(snapshots) == 25.0


async def test_repeated_item_keeps_both_lines(session, menu):
    snapshots = await resolve_lines(session, [line(menu["pizza"]), line(menu["pizza"], 3)])

    assert [s.quantity for s in snapshots] == [1, 3]
    assert compute_total(snapshots) == 40.0


async def test_unknown_item_is_reported(session, menu):
    with pytest.raises(ItemNotFound) as excinfo:
        await resolve_lines(session, [line(menu["pizza"]), line("does-not-exist")])

    assert "does-not-exist" in excinfo.value.message
    assert excinfo.value.context["missing"] == ["does-not-exist"]


async def test_unavailable_item_is_named(session, menu):
    with pytest.raises(ItemUnavailable) as excinfo:
        await resolve_lines(session, [line(menu["pizza"]), line(menu["soup"])])

    assert excinfo.value.message == "Soup of the Day is currently not available"


def test_total_rounds_to_cents():
    lines = [LineSnapshot("a", "A", 0.1, 3), LineSnapshot("b", "B", 0.2, 1)]
    assert compute_total(lines) == 0.5
