"""
Listing helpers: sort-string parsing and page arithmetic shared by the
menu and order listings.

Sort strings are comma-separated field names, a leading ``-`` meaning
descending: ``"-created_at,total_amount"``.
"""

from typing import Any, Optional

from tableside.core.errors import ValidationFailed


def parse_sort(
    sort: Optional[str],
    allowed: dict[str, Any],
    default: str,
) -> list[Any]:
    """
    Build ORDER BY clauses from a sort string.

    Args:
        sort: Caller-supplied sort string (None or blank uses ``default``)
        allowed: Public field name -> mapped column
        default: Sort string used when the caller gives none

    Raises:
        ValidationFailed: A field is not sortable
    """
    sort_string = sort if sort and sort.strip() else default
    clauses = []

    for raw in sort_string.split(","):
        field = raw.strip()
        if not field:
            continue
        descending = field.startswith("-")
        name = field.lstrip("-+")
        column = allowed.get(name)
        if column is None:
            raise ValidationFailed(
                f"Cannot sort by '{name}'. Options: {sorted(allowed)}"
            )
        clauses.append(column.desc() if descending else column.asc())

    return clauses


def page_offset(page: int, limit: int) -> int:
    """Offset of a 1-indexed page."""
    if page < 1:
        raise ValidationFailed("Page must be at least 1")
    if limit < 1:
        raise ValidationFailed("Limit must be at least 1")
    return (page - 1) * limit


def parse_enum(enum_cls, value: Optional[str], field: str):
    """Convert a query-string filter to its enum member, or None when absent."""
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationFailed(
            f"Invalid {field}. Options: {[e.value for e in enum_cls]}"
        )


def parse_bool(value: Optional[str], field: str) -> Optional[bool]:
    """Query-string booleans: only 'true' and 'false' are accepted."""
    if value is None or value == "":
        return None
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValidationFailed(f"Invalid {field}. Use 'true' or 'false'")
