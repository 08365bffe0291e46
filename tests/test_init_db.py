"""
Schema bootstrap and seed data.
"""

from __future__ import annotations

from sqlalchemy import func, select

from pharmaledger.db.init_db import DEFAULT_CATEGORIES, print_tables, seed_categories, seed_demo
from pharmaledger.models import Category, Product, User


def test_tables_exist(engine):
    names = print_tables(engine)
    assert {"products", "purchases", "sales", "users", "suppliers", "categories"} <= names


def test_seeding_is_repeatable(session_factory):
    for _ in range(2):
        with session_factory() as db, db.begin():
            seed_categories(db)
            seed_demo(db)

    with session_factory() as db:
        assert db.execute(select(func.count(Category.id))).scalar_one() == len(DEFAULT_CATEGORIES)
        assert db.execute(select(func.count(User.id))).scalar_one() == 1
        products = db.execute(select(Product)).scalars().all()

    assert len(products) == 3
    # opening stock always goes through a purchase
    assert all(p.quantity == 0 and p.ledger_seq == 0 for p in products)
