"""
                        Services Module

Business logic behind the HTTP routes.

Services:
    - access: principal headers and the order access policy
    - catalog: menu lookups that snapshot order lines
    - menu: menu item management and listing
    - orders: order lifecycle and status history
    - ratings: one-rating-per-user recorder and average
"""

from tableside.services.access import Principal, Role, get_principal
from tableside.services.orders import OrderService, get_order_service

__all__ = ["Principal", "Role", "get_principal", "OrderService", "get_order_service"]
