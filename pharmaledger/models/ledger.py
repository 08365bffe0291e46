# FILE: pharmaledger/models/ledger.py
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import (
    Column, Integer, DateTime, Numeric, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from pharmaledger.db.base import Base

Money = Numeric(10, 2)
# quantity × Money can outgrow Numeric(10, 2)
Amount = Numeric(14, 2)
MAX_AMOUNT = Decimal("999999999999.99")


# -------------------------
# Event log (insert-only)
# -------------------------
class PurchaseEvent(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchases_quantity_positive"),
        CheckConstraint("unit_cost >= 0", name="ck_purchases_unit_cost_non_negative"),
        UniqueConstraint("product_id", "ledger_seq", name="uq_purchases_product_seq"),
        Index("ix_purchases_product_time", "product_id", "committed_at"),
        Index("ix_purchases_time", "committed_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Money, nullable=False)
    total = Column(Amount, nullable=False)

    ledger_seq = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)

    committed_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    product = relationship("Product", back_populates="purchases")
    supplier = relationship("Supplier", back_populates="purchases")
    actor = relationship("User")


class SaleEvent(Base):
    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sales_unit_price_non_negative"),
        UniqueConstraint("product_id", "ledger_seq", name="uq_sales_product_seq"),
        Index("ix_sales_product_time", "product_id", "committed_at"),
        Index("ix_sales_time", "committed_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total = Column(Amount, nullable=False)

    # purchase cost read in the same transaction; profit is never recomputed
    unit_cost_at_sale = Column(Money, nullable=False)
    profit = Column(Amount, nullable=False)

    ledger_seq = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)

    committed_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    product = relationship("Product", back_populates="sales")
    actor = relationship("User")
