"""
Shared fixtures: a file-backed SQLite ledger per test, a fixed clock, and
factories for operators, suppliers and products.
"""

from __future__ import annotations

import os

# must be set before pharmaledger.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from pharmaledger.db.base import Base
from pharmaledger.db.session import make_engine, make_session_factory
from pharmaledger.models import Product, Supplier, User
from pharmaledger.services.ledger import LedgerEngine
from pharmaledger.services.locks import KeyLocks

TODAY = date(2026, 3, 15)
NOW = datetime(2026, 3, 15, 12, 0, 0)


class FixedClock:
    """Commit-timestamp source that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ══════════════════════════════════════════════════════════════
# DATABASE
# ══════════════════════════════════════════════════════════════

@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


# ══════════════════════════════════════════════════════════════
# LEDGER
# ══════════════════════════════════════════════════════════════

@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def locks():
    return KeyLocks()


@pytest.fixture
def ledger(session_factory, clock, locks):
    return LedgerEngine(
        session_factory,
        locks=locks,
        lock_timeout=10,
        max_retries=3,
        clock=clock,
        today=lambda: TODAY,
    )


# ══════════════════════════════════════════════════════════════
# REFERENCE DATA FACTORIES
# ══════════════════════════════════════════════════════════════

@pytest.fixture
def actor(session_factory) -> int:
    with session_factory() as db, db.begin():
        u = User(name="Operator", email="operator@pharmacy.test", role="seller")
        db.add(u)
        db.flush()
        return u.id


@pytest.fixture
def supplier(session_factory) -> int:
    with session_factory() as db, db.begin():
        s = Supplier(name="Acme Pharma")
        db.add(s)
        db.flush()
        return s.id


@pytest.fixture
def make_product(session_factory):
    counter = {"n": 0}

    def _make(
        *,
        code: str | None = None,
        name: str = "Dipyrone 500mg",
        purchase_cost: str = "12.00",
        sale_price: str = "20.00",
        quantity_minimum: int = 10,
        expiry_date: date | None = None,
    ) -> int:
        counter["n"] += 1
        with session_factory() as db, db.begin():
            p = Product(
                code=code or f"P{counter['n']:04d}",
                name=name,
                purchase_cost=Decimal(purchase_cost),
                sale_price=Decimal(sale_price),
                quantity=0,
                quantity_minimum=quantity_minimum,
                expiry_date=expiry_date or TODAY + timedelta(days=365),
            )
            db.add(p)
            db.flush()
            return p.id

    return _make


@pytest.fixture
def stock_in(ledger, actor):
    """Bring a product's stock up through a purchase so the log accounts for it."""

    def _stock_in(product_id: int, quantity: int, unit_cost: str = "12.00") -> None:
        result = ledger.record_purchase(product_id, quantity, unit_cost, actor)
        assert result.ok, result.error

    return _stock_in


@pytest.fixture
def read_quantity(session_factory):
    def _read(product_id: int) -> int:
        with session_factory() as db:
            return db.execute(
                select(Product.quantity).where(Product.id == product_id)
            ).scalar_one()

    return _read
