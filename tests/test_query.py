import pytest

from tableside.core.errors import ValidationFailed
from tableside.models import Order, OrderStatus
from tableside.services.orders import ORDER_SORT_FIELDS
from tableside.services.query import page_offset, parse_bool, parse_enum, parse_sort

FIELDS = {"created_at": Order.created_at, "total_amount": Order.total_amount}


def rendered(clauses):
    return [str(clause) for clause in clauses]


def test_blank_sort_uses_default():
    assert rendered(parse_sort("  ", FIELDS, "-created_at")) == ["orders.created_at DESC"]


def test_multiple_sort_fields():
    assert rendered(parse_sort("total_amount,-created_at", FIELDS, "created_at")) == [
        "orders.total_amount ASC",
        "orders.created_at DESC",
    ]


def test_unknown_sort_field():
    with pytest.raises(ValidationFailed, match="Cannot sort by 'user_id'"):
        parse_sort("user_id", FIELDS, "created_at")


def test_page_offset():
    assert page_offset(1, 10) == 0
    assert page_offset(3, 25) == 50
    with pytest.raises(ValidationFailed):
        page_offset(0, 10)


def test_parse_enum():
    assert parse_enum(OrderStatus, None, "status") is None
    assert parse_enum(OrderStatus, "ready", "status") == OrderStatus.READY
    with pytest.raises(ValidationFailed, match="Invalid status"):
        parse_enum(OrderStatus, "Ready", "status")


@pytest.mark.parametrize("value, expected", [("true", True), ("FALSE", False), (None, None)])
def test_parse_bool(value, expected):
    assert parse_bool(value, "is_available") is expected


def test_parse_bool_rejects_other_words():
    with pytest.raises(ValidationFailed):
        parse_bool("yes", "is_available")


def test_enum_sort_fields_compare_as_text():
    assert rendered(parse_sort("-status", ORDER_SORT_FIELDS, "created_at")) == [
        "CAST(orders.status AS VARCHAR) DESC"
    ]
