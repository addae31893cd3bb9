"""Section models for ``poolctl.toml``.

Every field has a default, so the file only lists what differs and a
fresh data root needs no config at all.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """[store]"""

    model_config = {"frozen": True}

    # None -> {data_root}/.poolctl/poolctl.db
    path: Path | None = None


class AutomationConfig(BaseModel):
    """[automation] notice period, restock rules and run-marker job names."""

    model_config = {"frozen": True}

    price_change_notice_days: int = Field(default=30, gt=0)
    fallback_restock_quantity: float = Field(default=5, gt=0)
    low_stock_ratio: float = Field(default=0.3, ge=0, le=1)
    replenishment_job: str = "replenishment-scan"
    price_change_job: str = "price-change-check"


class AdvanceConfig(BaseModel):
    """[advance] gates for advance payment requests."""

    model_config = {"frozen": True}

    adoption_cap_percent: float = Field(default=10.0, ge=0, le=100)
    due_date_block_days: int = Field(default=15, ge=0)
