# FILE: pharmaledger/services/event_log.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pharmaledger.models.ledger import PurchaseEvent, SaleEvent
from pharmaledger.schemas.ledger import (
    EntryKind,
    LedgerEntry,
    PurchaseRecord,
    SaleRecord,
)


class EventLog:
    """
    Append-only history of committed purchases and sales.

    Appends only ``flush`` inside the caller's transaction, so the row becomes
    visible together with the quantity change or not at all. There is no
    update or delete path.
    """

    # -------------------------
    # Writes
    # -------------------------
    def append_purchase(
        self,
        db: Session,
        *,
        product_id: int,
        supplier_id: Optional[int],
        actor_id: int,
        quantity: int,
        unit_cost: Decimal,
        total: Decimal,
        ledger_seq: int,
        quantity_after: int,
        committed_at: datetime,
        notes: Optional[str] = None,
    ) -> PurchaseEvent:
        ev = PurchaseEvent(
            product_id=product_id,
            supplier_id=supplier_id,
            actor_id=actor_id,
            quantity=quantity,
            unit_cost=unit_cost,
            total=total,
            ledger_seq=ledger_seq,
            quantity_after=quantity_after,
            committed_at=committed_at,
            notes=notes,
        )
        db.add(ev)
        db.flush()
        return ev

    def append_sale(
        self,
        db: Session,
        *,
        product_id: int,
        actor_id: int,
        quantity: int,
        unit_price: Decimal,
        total: Decimal,
        unit_cost_at_sale: Decimal,
        profit: Decimal,
        ledger_seq: int,
        quantity_after: int,
        committed_at: datetime,
        notes: Optional[str] = None,
    ) -> SaleEvent:
        ev = SaleEvent(
            product_id=product_id,
            actor_id=actor_id,
            quantity=quantity,
            unit_price=unit_price,
            total=total,
            unit_cost_at_sale=unit_cost_at_sale,
            profit=profit,
            ledger_seq=ledger_seq,
            quantity_after=quantity_after,
            committed_at=committed_at,
            notes=notes,
        )
        db.add(ev)
        db.flush()
        return ev

    # -------------------------
    # Range queries
    # -------------------------
    def purchases_between(
        self,
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        product_id: Optional[int] = None,
    ) -> List[PurchaseRecord]:
        """Purchases committed in [start, end), oldest first."""
        q = select(PurchaseEvent)
        if start is not None:
            q = q.where(PurchaseEvent.committed_at >= start)
        if end is not None:
            q = q.where(PurchaseEvent.committed_at < end)
        if product_id is not None:
            q = q.where(PurchaseEvent.product_id == product_id)
        q = q.order_by(PurchaseEvent.committed_at.asc(), PurchaseEvent.id.asc())
        return [PurchaseRecord.model_validate(r) for r in db.execute(q).scalars().all()]

    def sales_between(
        self,
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        product_id: Optional[int] = None,
    ) -> List[SaleRecord]:
        """Sales committed in [start, end), oldest first."""
        q = select(SaleEvent)
        if start is not None:
            q = q.where(SaleEvent.committed_at >= start)
        if end is not None:
            q = q.where(SaleEvent.committed_at < end)
        if product_id is not None:
            q = q.where(SaleEvent.product_id == product_id)
        q = q.order_by(SaleEvent.committed_at.asc(), SaleEvent.id.asc())
        return [SaleRecord.model_validate(r) for r in db.execute(q).scalars().all()]

    # -------------------------
    # Per-product history / replay
    # -------------------------
    def product_history(self, db: Session, product_id: int) -> List[LedgerEntry]:
        """Purchases and sales of one product merged in commit (ledger_seq) order."""
        entries: List[LedgerEntry] = []

        for p in db.execute(
            select(PurchaseEvent).where(PurchaseEvent.product_id == product_id)
        ).scalars():
            entries.append(LedgerEntry(
                kind=EntryKind.PURCHASE,
                event_id=p.id,
                ledger_seq=p.ledger_seq,
                quantity_change=p.quantity,
                quantity_after=p.quantity_after,
                unit_amount=p.unit_cost,
                total=p.total,
                actor_id=p.actor_id,
                committed_at=p.committed_at,
            ))

        for s in db.execute(
            select(SaleEvent).where(SaleEvent.product_id == product_id)
        ).scalars():
            entries.append(LedgerEntry(
                kind=EntryKind.SALE,
                event_id=s.id,
                ledger_seq=s.ledger_seq,
                quantity_change=-s.quantity,
                quantity_after=s.quantity_after,
                unit_amount=s.unit_price,
                total=s.total,
                profit=s.profit,
                actor_id=s.actor_id,
                committed_at=s.committed_at,
            ))

        entries.sort(key=lambda e: e.ledger_seq)
        return entries

    def replay_quantity(self, db: Session, product_id: int) -> int:
        """sum(purchased) - sum(sold) for the product, rebuilt from the log."""
        bought = db.execute(
            select(func.coalesce(func.sum(PurchaseEvent.quantity), 0))
            .where(PurchaseEvent.product_id == product_id)
        ).scalar_one()
        sold = db.execute(
            select(func.coalesce(func.sum(SaleEvent.quantity), 0))
            .where(SaleEvent.product_id == product_id)
        ).scalar_one()
        return int(bought) - int(sold)
