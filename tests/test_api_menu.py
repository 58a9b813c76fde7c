import pytest

from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER, STAFF

NEW_DISH = {
    "name": "Tiramisu",
    "description": "Mascarpone, espresso, cocoa",
    "price": 7.5,
    "category": "dessert",
    "allergens": ["dairy", "eggs"],
    "is_vegetarian": True,
}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "healthy"


async def test_unknown_route_uses_error_body(client):
    response = await client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["error"]["status"] == 404


class TestMenuCrud:
    async def test_staff_creates_and_anyone_reads(self, client):
        response = await client.post("/api/menu", json=NEW_DISH, headers=STAFF)
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["ratings"] == []
        assert created["average_rating"] == 0
        assert created["allergens"] == ["dairy", "eggs"]

        response = await client.get(f"/api/menu/{created['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Tiramisu"

    async def test_customer_cannot_create(self, client):
        response = await client.post("/api/menu", json=NEW_DISH, headers=CUSTOMER)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == (
            "User role customer is not authorized to access this route"
        )

    async def test_ratings_cannot_be_written_directly(self, client, menu):
        response = await client.put(
            f"/api/menu/{menu['pizza']}", json={"average_rating": 5}, headers=STAFF
        )
        assert response.status_code == 400

    async def test_delete_is_admin_only(self, client, menu):
        response = await client.delete(f"/api/menu/{menu['salad']}", headers=STAFF)
        assert response.status_code == 403

        response = await client.delete(f"/api/menu/{menu['salad']}", headers=ADMIN)
        assert response.status_code == 200

        response = await client.get(f"/api/menu/{menu['salad']}")
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Menu item not found"


class TestMenuListing:
    async def test_sorted_by_name_by_default(self, client, menu):
        response = await client.get("/api/menu")
        body = response.json()

        assert [i["name"] for i in body["data"]] == ["Pizza", "Salad", "Soup of the Day"]
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 3}

    async def test_filters(self, client, menu):
        response = await client.get("/api/menu", params={"is_available": "false"})
        assert [i["name"] for i in response.json()["data"]] == ["Soup of the Day"]

        response = await client.get("/api/menu", params={"category": "side"})
        assert [i["name"] for i in response.json()["data"]] == ["Salad"]

    async def test_sort_by_price_descending(self, client, menu):
        response = await client.get("/api/menu", params={"sort": "-price"})
        assert [i["price"] for i in response.json()["data"]] == [10.0, 6.0, 5.0]

    async def test_sort_by_category_value(self, client, menu):
        response = await client.get("/api/menu", params={"sort": "category"})
        assert [i["category"] for i in response.json()["data"]] == ["main course", "side", "starter"]

        response = await client.get("/api/menu", params={"sort": "-category"})
        assert [i["name"] for i in response.json()["data"]] == ["Soup of the Day", "Salad", "Pizza"]

    @pytest.mark.parametrize(
        "params",
        [{"category": "soup"}, {"is_vegetarian": "maybe"}, {"sort": "secret"}],
    )
    async def test_bad_query(self, client, params):
        response = await client.get("/api/menu", params=params)
        assert response.status_code == 400


class TestRateEndpoint:
    async def test_rate_and_rerate(self, client, menu):
        url = f"/api/menu/{menu['pizza']}/rate"
        await client.post(url, json={"rating": 5}, headers=CUSTOMER)
        await client.post(url, json={"rating": 2}, headers=OTHER_CUSTOMER)

        response = await client.post(url, json={"rating": 4, "review": "better"}, headers=CUSTOMER)

        data = response.json()["data"]
        assert response.status_code == 200
        assert len(data["ratings"]) == 2
        assert data["average_rating"] == 3.0

    @pytest.mark.parametrize("value", [0, 6])
    async def test_out_of_range(self, client, menu, value):
        response = await client.post(
            f"/api/menu/{menu['pizza']}/rate", json={"rating": value}, headers=CUSTOMER
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Rating must be a number between 1 and 5"

    async def test_requires_principal(self, client, menu):
        response = await client.post(f"/api/menu/{menu['pizza']}/rate", json={"rating": 3})
        assert response.status_code == 401

    async def test_unknown_item(self, client):
        response = await client.post("/api/menu/missing/rate", json={"rating": 3}, headers=CUSTOMER)
        assert response.status_code == 404
