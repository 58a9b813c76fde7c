"""
Order Flow Simulation Script

Seeds a menu, fires concurrent orders from random customers, then has
several staff members race to move the same orders along. Lost races
come back as 409 conflicts instead of silently overwriting each other.

Run against a live server from project root:
    uvicorn tableside.main:app --port 8001
    python scripts/simulate.py --orders 50

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

STAFF_HEADERS = {"X-User-Id": "staff-sim", "X-User-Role": "staff"}

MENU_ITEMS = [
    {"name": "Bruschetta", "description": "Grilled bread, tomato, basil", "price": 6.5, "category": "starter", "is_vegetarian": True},
    {"name": "Pizza Margherita", "description": "Tomato, mozzarella, basil", "price": 14.99, "category": "main course", "is_vegetarian": True},
    {"name": "Pasta Carbonara", "description": "Egg, pecorino, guanciale", "price": 13.99, "category": "main course", "allergens": ["eggs", "dairy", "gluten"]},
    {"name": "Caesar Salad", "description": "Romaine, parmesan, croutons", "price": 8.99, "category": "side"},
    {"name": "Tiramisu", "description": "Mascarpone and espresso", "price": 7.99, "category": "dessert", "allergens": ["dairy", "eggs"]},
    {"name": "Sparkling Water", "description": "750ml bottle", "price": 3.49, "category": "beverage", "is_vegan": True},
]
STATUS_FLOW = ["confirmed", "preparing", "ready", "delivered", "completed"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave"]


def customer_headers(customer_num: int) -> dict[str, str]:
    return {"X-User-Id": f"customer-{customer_num}", "X-User-Role": "customer"}


def generate_order_payload(menu_ids: list[str]) -> dict[str, Any]:
    """Random order across the three fulfillment types."""
    lines = [
        {"menu_item_id": menu_id, "quantity": random.randint(1, 3)}
        for menu_id in random.sample(menu_ids, random.randint(1, 3))
    ]
    order_type = random.choice(["dine-in", "takeaway", "delivery"])
    payload: dict[str, Any] = {"items": lines, "order_type": order_type}

    if order_type == "dine-in":
        payload["table_number"] = random.randint(1, 20)
    elif order_type == "delivery":
        payload["delivery_address"] = {
            "street": f"{random.randint(1, 999)} {random.choice(STREETS)}",
            "city": "New York",
            "zip_code": "10001",
        }
    return payload


# =============================================================================
# SEEDING
# =============================================================================

async def seed_menu(client: httpx.AsyncClient) -> list[str]:
    """Create the sample menu and return the new item ids."""
    menu_ids = []
    for item in MENU_ITEMS:
        response = await client.post(f"{API_BASE_URL}/api/menu", json=item, headers=STAFF_HEADERS)
        response.raise_for_status()
        menu_ids.append(response.json()["data"]["id"])
    print(f"Seeded {len(menu_ids)} menu items")
    return menu_ids


# =============================================================================
# ORDER FLOW
# =============================================================================

async def place_order(
    client: httpx.AsyncClient,
    order_num: int,
    menu_ids: list[str],
) -> dict[str, Any]:
    """Place one order as a random customer."""
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(menu_ids),
            headers=customer_headers(random.randint(1, 20)),
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 201:
            data = response.json()["data"]
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["id"],
                "total": data["total_amount"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def advance_order(client: httpx.AsyncClient, order_id: str, status: str) -> int:
    """One staff status change; returns the HTTP status code."""
    response = await client.put(
        f"{API_BASE_URL}/api/orders/{order_id}/status",
        json={"status": status},
        headers=STAFF_HEADERS,
        timeout=30.0,
    )
    return response.status_code


async def run_simulation(num_orders: int = TOTAL_ORDERS, racers: int = 2) -> dict[str, Any]:
    """
    Run the simulation.

    Args:
        num_orders: Number of orders to place concurrently
        racers: Staff requests sent at once for every status step
    """
    print("=" * 70)
    print("ORDER FLOW SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu_ids = await seed_menu(client)

        results = await asyncio.gather(
            *[place_order(client, i + 1, menu_ids) for i in range(num_orders)]
        )
        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        status_codes: dict[int, int] = {}
        for status in STATUS_FLOW:
            codes = await asyncio.gather(*[
                advance_order(client, r["order_id"], status)
                for r in successful
                for _ in range(racers)
            ])
            for code in codes:
                status_codes[code] = status_codes.get(code, 0) + 1

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print(f"\nAverage Response: {avg_time}s")
        print(f"Total Revenue: ${total_revenue:.2f}")

    print(f"\nStatus change responses: {dict(sorted(status_codes.items()))}")
    print(f"   409 = lost race, rejected as stale")

    if failed:
        print(f"\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "status_codes": status_codes,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Flow Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--racers", type=int, default=2, help="Concurrent staff updates per step")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    asyncio.run(run_simulation(num_orders=args.orders, racers=args.racers))
