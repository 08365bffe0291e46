from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from pharmaledger.schemas.ledger import AlertState


class DashboardSummaryOut(BaseModel):
    period_start: datetime
    period_end: datetime

    total_sales: Decimal
    total_purchases: Decimal
    net_profit: Decimal
    sales_count: int
    purchases_count: int

    low_stock_products: int
    expiring_products: int


class TopProductOut(BaseModel):
    product_id: int
    code: str
    name: str
    quantity_sold: int
    revenue: Decimal


class DailySalesOut(BaseModel):
    day: date
    total: Decimal


class ProductAlertRow(BaseModel):
    product_id: int
    code: str
    name: str
    quantity: int
    quantity_minimum: int
    expiry_date: date
    alert_state: AlertState


class AlertsOverviewOut(BaseModel):
    as_of: date
    counts: dict
    items: List[ProductAlertRow]
