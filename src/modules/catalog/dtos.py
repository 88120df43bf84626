"""Catalog DTOs.

Mirror of the product catalog's ``GET /sku/{sku}`` response.  Only the
fields the order service relies on are declared; extra fields are ignored.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from modules.orders.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS


class ProductDTO(BaseModel):
    """Immutable product snapshot resolved from the catalog.

    ``price`` must fit the order's money columns exactly; a sub-cent price
    fails validation instead of being rounded on save.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    sku: str
    name: str
    price: Decimal = Field(
        ge=0, max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES
    )
