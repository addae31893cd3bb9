"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime

def now_utc() -> datetime:
    """Current UTC time (the default service clock)."""
    return datetime.now(UTC)

def money(value: float) -> float:
    """Round a currency amount to cents."""
    return round(value, 2)
