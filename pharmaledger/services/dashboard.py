# FILE: pharmaledger/services/dashboard.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pharmaledger.models.ledger import PurchaseEvent, SaleEvent
from pharmaledger.models.product import Product
from pharmaledger.schemas.dashboard import (
    AlertsOverviewOut,
    DailySalesOut,
    DashboardSummaryOut,
    ProductAlertRow,
    TopProductOut,
)
from pharmaledger.schemas.ledger import AlertState, ProductSnapshot
from pharmaledger.services.alerts import EXPIRY_WINDOW_DAYS, classify

ZERO = Decimal("0.00")


# ---------- Helpers: time range ----------


def dt_range(d_from: date, d_to: date) -> Tuple[datetime, datetime]:
    """
    Convert date range [date_from, date_to] into datetime range [start, end).
    """
    start = datetime.combine(d_from, time.min)
    end = datetime.combine(d_to + timedelta(days=1), time.min)  # exclusive
    return start, end


def month_range(today: date) -> Tuple[datetime, datetime]:
    """First day of today's month up to the end of today."""
    return dt_range(today.replace(day=1), today)


def _money(val: Any) -> Decimal:
    if val is None:
        return ZERO
    return Decimal(str(val)).quantize(Decimal("0.01"))


# ---------- Cards ----------


def summary(db: Session, start: datetime, end: datetime, today: date) -> DashboardSummaryOut:
    sales_total, sales_profit, sales_count = db.execute(
        select(
            func.coalesce(func.sum(SaleEvent.total), 0),
            func.coalesce(func.sum(SaleEvent.profit), 0),
            func.count(SaleEvent.id),
        ).where(SaleEvent.committed_at >= start, SaleEvent.committed_at < end)
    ).one()

    purchases_total, purchases_count = db.execute(
        select(
            func.coalesce(func.sum(PurchaseEvent.total), 0),
            func.count(PurchaseEvent.id),
        ).where(PurchaseEvent.committed_at >= start, PurchaseEvent.committed_at < end)
    ).one()

    low_stock = db.execute(
        select(func.count(Product.id)).where(Product.quantity <= Product.quantity_minimum)
    ).scalar_one()

    # not yet expired, expiring inside the window
    expiring = db.execute(
        select(func.count(Product.id)).where(
            Product.expiry_date >= today,
            Product.expiry_date <= today + timedelta(days=EXPIRY_WINDOW_DAYS),
        )
    ).scalar_one()

    return DashboardSummaryOut(
        period_start=start,
        period_end=end,
        total_sales=_money(sales_total),
        total_purchases=_money(purchases_total),
        net_profit=_money(sales_profit),
        sales_count=int(sales_count or 0),
        purchases_count=int(purchases_count or 0),
        low_stock_products=int(low_stock or 0),
        expiring_products=int(expiring or 0),
    )


def top_products(
    db: Session,
    start: datetime,
    end: datetime,
    limit: int = 5,
) -> List[TopProductOut]:
    sold = func.sum(SaleEvent.quantity).label("quantity_sold")
    rows = db.execute(
        select(
            Product.id,
            Product.code,
            Product.name,
            sold,
            func.sum(SaleEvent.total).label("revenue"),
        )
        .select_from(SaleEvent)
        .join(Product, Product.id == SaleEvent.product_id)
        .where(SaleEvent.committed_at >= start, SaleEvent.committed_at < end)
        .group_by(Product.id, Product.code, Product.name)
        .order_by(sold.desc(), Product.id.asc())
        .limit(limit)
    ).all()

    return [
        TopProductOut(
            product_id=r.id,
            code=r.code,
            name=r.name,
            quantity_sold=int(r.quantity_sold or 0),
            revenue=_money(r.revenue),
        )
        for r in rows
    ]


def daily_sales(db: Session, today: date, days: int = 7) -> List[DailySalesOut]:
    """Sales total per day for the last ``days`` days (today included), zero-filled."""
    first = today - timedelta(days=days - 1)
    start, end = dt_range(first, today)

    totals: Dict[date, Decimal] = {}
    rows = db.execute(
        select(SaleEvent.committed_at, SaleEvent.total)
        .where(SaleEvent.committed_at >= start, SaleEvent.committed_at < end)
    ).all()
    for committed_at, total in rows:
        d = committed_at.date()
        totals[d] = totals.get(d, ZERO) + _money(total)

    out: List[DailySalesOut] = []
    for i in range(days):
        d = first + timedelta(days=i)
        out.append(DailySalesOut(day=d, total=totals.get(d, ZERO)))
    return out


def alerts_overview(db: Session, today: date) -> AlertsOverviewOut:
    counts = {s.value: 0 for s in AlertState}
    items: List[ProductAlertRow] = []

    for p in db.execute(select(Product).order_by(Product.name.asc())).scalars():
        snap = ProductSnapshot.model_validate(p)
        state = classify(snap, today)
        counts[state.value] += 1
        items.append(ProductAlertRow(
            product_id=snap.id,
            code=snap.code,
            name=snap.name,
            quantity=snap.quantity,
            quantity_minimum=snap.quantity_minimum,
            expiry_date=snap.expiry_date,
            alert_state=state,
        ))

    return AlertsOverviewOut(as_of=today, counts=counts, items=items)
