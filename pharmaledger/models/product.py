# FILE: pharmaledger/models/product.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, Text,
    ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from pharmaledger.db.base import Base

Money = Numeric(10, 2)

# signed 32-bit INT, the same on SQLite and MySQL
MAX_QUANTITY = 2**31 - 1


class Product(Base):
    """
    A stocked item.

    - quantity is mutated ONLY through ProductStore.apply_delta
    - ledger_seq counts committed quantity mutations (per-product commit order)
    - every other column belongs to the reference-data screens
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("quantity_minimum >= 0", name="ck_products_quantity_minimum_non_negative"),
        CheckConstraint("purchase_cost >= 0", name="ck_products_purchase_cost_non_negative"),
        CheckConstraint("sale_price >= 0", name="ck_products_sale_price_non_negative"),
        Index("ix_products_expiry_date", "expiry_date"),
        Index("ix_products_quantity", "quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    purchase_cost = Column(Money, nullable=False)
    sale_price = Column(Money, nullable=False)

    quantity = Column(Integer, nullable=False, default=0)
    quantity_minimum = Column(Integer, nullable=False, default=10)
    expiry_date = Column(Date, nullable=False)

    ledger_seq = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    category = relationship("Category", back_populates="products")
    purchases = relationship("PurchaseEvent", back_populates="product")
    sales = relationship("SaleEvent", back_populates="product")
