# FILE: pharmaledger/api/routes_ledger.py
from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_db, get_ledger, get_today
from pharmaledger.api.response import from_result, ok
from pharmaledger.schemas.ledger import AlertOut, PurchaseIn, SaleIn
from pharmaledger.services.dashboard import dt_range
from pharmaledger.services.event_log import EventLog
from pharmaledger.services.excel_export import build_purchases_excel, build_sales_excel
from pharmaledger.services.ledger import MAX_ID, LedgerEngine

router = APIRouter(prefix="/ledger", tags=["Stock Ledger"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

event_log = EventLog()


def _window(date_from: Optional[date], date_to: Optional[date]):
    start = end = None
    if date_from:
        start, _ = dt_range(date_from, date_from)
    if date_to:
        _, end = dt_range(date_to, date_to)
    return start, end


def _xlsx(build, rows, filename: str) -> StreamingResponse:
    buf = BytesIO()
    build(buf, rows)
    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================
# Writes
# ============================================================
@router.post("/purchases")
def record_purchase(
    payload: PurchaseIn,
    ledger: LedgerEngine = Depends(get_ledger),
):
    result = ledger.record_purchase(
        product_id=payload.product_id,
        quantity=payload.quantity,
        unit_cost=payload.unit_cost,
        actor_id=payload.actor_id,
        supplier_id=payload.supplier_id,
        notes=payload.notes,
    )
    return from_result(result, status_code=201)


@router.post("/sales")
def record_sale(
    payload: SaleIn,
    ledger: LedgerEngine = Depends(get_ledger),
):
    result = ledger.record_sale(
        product_id=payload.product_id,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
        actor_id=payload.actor_id,
        notes=payload.notes,
    )
    return from_result(result, status_code=201)


# ============================================================
# Products (read-only)
# ============================================================
@router.get("/products/by-code/{code}")
def product_by_code(code: str, ledger: LedgerEngine = Depends(get_ledger)):
    return from_result(ledger.get_product_snapshot_by_code(code))


@router.get("/products/{product_id}")
def product_snapshot(product_id: int, ledger: LedgerEngine = Depends(get_ledger)):
    return from_result(ledger.get_product_snapshot(product_id))


@router.get("/products/{product_id}/alert")
def product_alert(
    product_id: int,
    ledger: LedgerEngine = Depends(get_ledger),
    today: date = Depends(get_today),
):
    snap = ledger.get_product_snapshot(product_id).unwrap()
    state = ledger.classify_product(product_id, today=today).unwrap()
    return ok(AlertOut(product_id=snap.id, code=snap.code, alert_state=state, as_of=today))


@router.get("/products/{product_id}/history")
def product_history(
    product_id: int,
    db: Session = Depends(get_db),
    ledger: LedgerEngine = Depends(get_ledger),
):
    snap = ledger.get_product_snapshot(product_id).unwrap()
    entries = event_log.product_history(db, product_id)
    return ok(entries, meta={"product_id": snap.id, "quantity": snap.quantity, "ledger_seq": snap.ledger_seq})


# ============================================================
# Event log queries
# ============================================================
@router.get("/purchases")
def list_purchases(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    product_id: Optional[int] = Query(None, ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
):
    start, end = _window(date_from, date_to)
    rows = event_log.purchases_between(db, start, end, product_id=product_id)
    return ok(rows, meta={"count": len(rows)})


@router.get("/sales")
def list_sales(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    product_id: Optional[int] = Query(None, ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
):
    start, end = _window(date_from, date_to)
    rows = event_log.sales_between(db, start, end, product_id=product_id)
    return ok(rows, meta={"count": len(rows)})


@router.get("/purchases/export")
def export_purchases(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    product_id: Optional[int] = Query(None, ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
):
    start, end = _window(date_from, date_to)
    rows = event_log.purchases_between(db, start, end, product_id=product_id)
    return _xlsx(build_purchases_excel, rows, "purchases.xlsx")


@router.get("/sales/export")
def export_sales(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    product_id: Optional[int] = Query(None, ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
):
    start, end = _window(date_from, date_to)
    rows = event_log.sales_between(db, start, end, product_id=product_id)
    return _xlsx(build_sales_excel, rows, "sales.xlsx")
