# FILE: pharmaledger/schemas/ledger.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertState(str, Enum):
    OK = "ok"
    LOW_STOCK = "low_stock"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class EntryKind(str, Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"


# -------------------------
# Snapshots / records (returned by the engine)
# -------------------------
class ProductSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    code: str
    name: str
    quantity: int
    quantity_minimum: int
    purchase_cost: Decimal
    sale_price: Decimal
    expiry_date: date
    ledger_seq: int


class PurchaseRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    product_id: int
    supplier_id: Optional[int] = None
    actor_id: int

    quantity: int
    unit_cost: Decimal
    total: Decimal

    ledger_seq: int
    quantity_after: int
    committed_at: datetime
    notes: Optional[str] = None

    # derived right after commit, not stored
    alert_state: Optional[AlertState] = None


class SaleRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    product_id: int
    actor_id: int

    quantity: int
    unit_price: Decimal
    total: Decimal
    unit_cost_at_sale: Decimal
    profit: Decimal

    ledger_seq: int
    quantity_after: int
    committed_at: datetime
    notes: Optional[str] = None

    alert_state: Optional[AlertState] = None


class LedgerEntry(BaseModel):
    """One line of a product's merged purchase/sale history."""
    model_config = ConfigDict(frozen=True)

    kind: EntryKind
    event_id: int
    ledger_seq: int
    quantity_change: int  # +IN / -OUT
    quantity_after: int
    unit_amount: Decimal
    total: Decimal
    profit: Optional[Decimal] = None
    actor_id: int
    committed_at: datetime


# -------------------------
# Inbound payloads (HTTP)
# -------------------------
class PurchaseIn(BaseModel):
    product_id: int
    supplier_id: Optional[int] = None
    quantity: int
    unit_cost: Decimal
    actor_id: int
    notes: Optional[str] = Field(default=None, max_length=1000)


class SaleIn(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    actor_id: int
    notes: Optional[str] = Field(default=None, max_length=1000)


class AlertOut(BaseModel):
    product_id: int
    code: str
    alert_state: AlertState
    as_of: date
