# FILE: pharmaledger/api/routes_dashboard.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_db, get_today
from pharmaledger.api.response import ok
from pharmaledger.services import dashboard as dashboard_service
from pharmaledger.utils.timezone import utcnow

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _period(date_from: Optional[date], date_to: Optional[date]):
    # event timestamps are UTC, so the default window is the current UTC month
    if date_from is None and date_to is None:
        return dashboard_service.month_range(utcnow().date())
    d_to = date_to or utcnow().date()
    d_from = date_from or d_to.replace(day=1)
    return dashboard_service.dt_range(d_from, d_to)


@router.get("/summary")
def dashboard_summary(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    start, end = _period(date_from, date_to)
    return ok(dashboard_service.summary(db, start, end, today))


@router.get("/top-products")
def dashboard_top_products(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    start, end = _period(date_from, date_to)
    return ok(dashboard_service.top_products(db, start, end, limit=limit))


@router.get("/daily-sales")
def dashboard_daily_sales(
    days: int = Query(7, ge=1, le=90),
    db: Session = Depends(get_db),
):
    return ok(dashboard_service.daily_sales(db, utcnow().date(), days=days))


@router.get("/alerts")
def dashboard_alerts(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    return ok(dashboard_service.alerts_overview(db, today))
