"""Inventory gateway exceptions."""

from __future__ import annotations

from modules.core.remote import RemoteServiceError


class StockConflict(RemoteServiceError):
    """The inventory refused a decrement: remaining quantity < amount."""
