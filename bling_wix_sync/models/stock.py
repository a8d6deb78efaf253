"""
Stock records exchanged between Bling and the Wix ingestion endpoint.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StockRecord(BaseModel):
    """Normalized stock line for a single product.

    Serialized with the receiver's field names (``codigo``, ``descricao``,
    ``estoque``) when dumped ``by_alias``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str = Field(..., alias="codigo")
    description: str = Field("", alias="descricao")
    quantity: int = Field(0, alias="estoque", ge=0)

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _clamp_quantity(cls, value: Any) -> int:
        # Bling reports negative virtual balances for oversold items.
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
        if math.isnan(number) or number <= 0:
            return 0
        if math.isinf(number):
            raise ValueError("stock quantity must be finite")
        return int(number)

    @classmethod
    def from_bling(cls, product: Dict[str, Any]) -> "StockRecord":
        """Build a record from a raw ``GET /produtos`` entry."""
        stock = product.get("estoque")
        if not isinstance(stock, dict):
            stock = {}
        return cls(
            code=product.get("codigo"),
            description=product.get("nome"),
            quantity=stock.get("saldoVirtualTotal", 0),
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class CacheEntry(BaseModel):
    """Snapshot of the last successful catalog fetch."""

    model_config = ConfigDict(frozen=True)

    records: List[StockRecord]
    captured_at: float = Field(..., description="Clock reading when captured.")

    def age(self, now: float) -> float:
        return now - self.captured_at


__all__ = ["CacheEntry", "StockRecord"]
