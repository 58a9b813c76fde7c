import pytest

from tableside.core.errors import Conflict, NotFound, RatingOutOfRange
from tableside.models import MenuItem
from tableside.services.access import Principal, Role
from tableside.services.ratings import rate_menu_item, recompute_average

from conftest import add_menu_item


def ratings_of(*values):
    return [{"user_id": f"u{i}", "value": v} for i, v in enumerate(values)]


class TestRecomputeAverage:
    def test_empty_list_is_zero(self):
        assert recompute_average([]) == 0

    def test_rounds_to_one_decimal(self):
        assert recompute_average(ratings_of(4, 4, 5)) == 4.3
        assert recompute_average(ratings_of(4, 5, 5)) == 4.7

    def test_halves_round_up(self):
        # 9 / 4 = 2.25
        assert recompute_average(ratings_of(2, 2, 2, 3)) == 2.3


class TestRateMenuItem:
    async def test_new_rater_appends_and_recomputes(self, session, staff):
        item = await add_menu_item(session, staff)
        await rate_menu_item(session, item.id, Principal("a", Role.CUSTOMER), 5)
        await rate_menu_item(session, item.id, Principal("b", Role.CUSTOMER), 4)

        rated = await rate_menu_item(session, item.id, Principal("c", Role.CUSTOMER), 2, "too salty")

        assert len(rated.ratings) == 3
        assert rated.ratings[-1]["review"] == "too salty"
        # (5 + 4 + 2) / 3 = 3.67
        assert rated.average_rating == 3.7

    async def test_same_rater_replaces_previous_entry(self, session, staff, customer):
        item = await add_menu_item(session, staff)
        await rate_menu_item(session, item.id, Principal("a", Role.CUSTOMER), 5)
        await rate_menu_item(session, item.id, customer, 1, "cold")

        rated = await rate_menu_item(session, item.id, customer, 3)

        assert len(rated.ratings) == 2
        mine = [r for r in rated.ratings if r["user_id"] == customer.user_id]
        assert len(mine) == 1
        assert mine[0]["value"] == 3
        assert mine[0]["review"] == ""
        assert rated.average_rating == 4.0

    async def test_replacement_is_persisted(self, session_maker, staff, customer):
        async with session_maker() as db:
            item = await add_menu_item(db, staff)
            await rate_menu_item(db, item.id, customer, 2)
            await rate_menu_item(db, item.id, customer, 4)
            item_id = item.id

        async with session_maker() as db:
            stored = await db.get(MenuItem, item_id)
            assert [r["value"] for r in stored.ratings] == [4]
            assert stored.average_rating == 4.0

    @pytest.mark.parametrize("value", [0, 6, -1])
    async def test_out_of_range_is_rejected(self, session, staff, customer, value):
        item = await add_menu_item(session, staff)

        with pytest.raises(RatingOutOfRange):
            await rate_menu_item(session, item.id, customer, value)

        assert item.ratings == []
        assert item.average_rating == 0

    async def test_unknown_item(self, session, customer):
        with pytest.raises(NotFound):
            await rate_menu_item(session, "missing", customer, 3)


class TestConcurrentRatings:
    async def test_lost_rating_race_is_rejected(self, session_maker, staff, customer, other_customer):
        async with session_maker() as db:
            item_id = (await add_menu_item(db, staff)).id

        async with session_maker() as first, session_maker() as second:
            stale = await first.get(MenuItem, item_id)

            await rate_menu_item(second, item_id, other_customer, 5)

            with pytest.raises(Conflict):
                await rate_menu_item(first, item_id, customer, 1)
            assert stale is not None

        async with session_maker() as db:
            stored = await db.get(MenuItem, item_id)
            assert [(r["user_id"], r["value"]) for r in stored.ratings] == [(other_customer.user_id, 5)]
            assert stored.average_rating == 5.0
