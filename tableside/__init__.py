"""
                Tableside Ordering

Backend for contactless restaurant ordering: menu catalog with
customer ratings, orders with frozen line-item snapshots and an
append-only status history, and a staff/customer access policy.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
