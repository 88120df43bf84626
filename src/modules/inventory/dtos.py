"""Inventory DTOs (wire shapes of the inventory service)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class InventoryDTO(BaseModel):
    """Stock level for one SKU as reported by ``GET /sku/{sku}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    sku: str
    quantity: int = Field(ge=0)


class StockAdjustmentDTO(BaseModel):
    """Body of ``PATCH /sku/{sku}/decrement``."""

    model_config = ConfigDict(frozen=True)

    amount: int = Field(ge=1)
