"""Client classification enums.

Values are the stored representation; services compare against the
enum members, never against raw strings.
"""

from __future__ import annotations

from enum import StrEnum


class PlanType(StrEnum):
    """Service plan a client is billed under."""

    SIMPLE = "simple"
    VIP = "vip"


class ClientStatus(StrEnum):
    """Whether the client is currently serviced."""

    ACTIVE = "active"
    PENDING = "pending"


class PaymentStatus(StrEnum):
    """Status of the client's current invoice."""

    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class OrderStatus(StrEnum):
    """Delivery status for store orders."""

    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
