from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from openpyxl import Workbook
from openpyxl.utils import get_column_letter


def _money(x) -> float:
    return float(Decimal(str(x or "0")))


def _autosize(ws, n_cols: int) -> None:
    for col in range(1, n_cols + 1):
        ws.column_dimensions[get_column_letter(col)].width = 18


def build_sales_excel(fp, sales: Iterable):
    wb = Workbook()
    ws = wb.active
    ws.title = "Sales"

    headers = [
        "Sale ID", "Committed At", "Product ID", "Actor ID", "Quantity",
        "Unit Price", "Total", "Unit Cost", "Profit", "Stock After", "Notes",
    ]
    ws.append(headers)

    for s in sales:
        ws.append([
            s.id,
            s.committed_at,
            s.product_id,
            s.actor_id,
            int(s.quantity),
            _money(s.unit_price),
            _money(s.total),
            _money(s.unit_cost_at_sale),
            _money(s.profit),
            int(s.quantity_after),
            s.notes or "",
        ])

    _autosize(ws, len(headers))
    wb.save(fp)


def build_purchases_excel(fp, purchases: Iterable):
    wb = Workbook()
    ws = wb.active
    ws.title = "Purchases"

    headers = [
        "Purchase ID", "Committed At", "Product ID", "Supplier ID", "Actor ID",
        "Quantity", "Unit Cost", "Total", "Stock After", "Notes",
    ]
    ws.append(headers)

    for p in purchases:
        ws.append([
            p.id,
            p.committed_at,
            p.product_id,
            p.supplier_id or "",
            p.actor_id,
            int(p.quantity),
            _money(p.unit_cost),
            _money(p.total),
            int(p.quantity_after),
            p.notes or "",
        ])

    _autosize(ws, len(headers))
    wb.save(fp)
