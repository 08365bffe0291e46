# pharmaledger/db/init_db.py
from __future__ import annotations

import argparse
import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmaledger.db.base import Base
from pharmaledger.models import Category, Product, Supplier, User

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Medicines",
    "Generics",
    "Cosmetics",
    "Hygiene",
    "Supplements",
    "Other",
]


def print_tables(eng: Engine) -> set:
    names = set(inspect(eng).get_table_names())
    print("Existing tables:", sorted(names))
    return names


def create_tables(eng: Engine) -> None:
    Base.metadata.create_all(bind=eng)


def seed_categories(db: Session) -> None:
    """
    Seed ONLY missing categories; safe to run multiple times.
    """
    existing = set(db.execute(select(Category.name)).scalars().all())
    for name in DEFAULT_CATEGORIES:
        if name not in existing:
            db.add(Category(name=name))
    db.flush()


def seed_demo(db: Session) -> None:
    """
    Demo operator, supplier and products.
    Products start at quantity 0: opening stock must go through a purchase so
    the event log accounts for every unit.
    """
    if db.execute(select(User.id).where(User.email == "admin@pharmacy.local")).first() is None:
        db.add(User(name="Admin", email="admin@pharmacy.local", role="admin"))
    if db.execute(select(Supplier.id).where(Supplier.name == "Demo Distributor")).first() is None:
        db.add(Supplier(name="Demo Distributor"))

    medicines = db.execute(
        select(Category).where(Category.name == "Medicines")
    ).scalar_one_or_none()
    today = date.today()
    demo = [
        ("DIP500", "Dipyrone 500mg", Decimal("4.20"), Decimal("8.90"), today + timedelta(days=365)),
        ("AMX875", "Amoxicillin 875mg", Decimal("18.00"), Decimal("32.50"), today + timedelta(days=20)),
        ("VITC1G", "Vitamin C 1g", Decimal("6.10"), Decimal("14.00"), today + timedelta(days=540)),
    ]
    for code, name, cost, price, expiry in demo:
        if db.execute(select(Product.id).where(Product.code == code)).first() is None:
            db.add(Product(
                code=code,
                name=name,
                category_id=getattr(medicines, "id", None),
                purchase_cost=cost,
                sale_price=price,
                quantity=0,
                quantity_minimum=10,
                expiry_date=expiry,
            ))
    db.flush()


def main(argv=None) -> int:
    from pharmaledger.db.session import engine, SessionLocal

    parser = argparse.ArgumentParser(description="Create ledger tables")
    parser.add_argument("--seed-demo", action="store_true", help="insert demo operator / products")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    try:
        create_tables(engine)
        print_tables(engine)
        with SessionLocal() as db, db.begin():
            seed_categories(db)
            if args.seed_demo:
                seed_demo(db)
    except SQLAlchemyError:
        logger.exception("Schema creation failed")
        return 1
    logger.info("Database ready")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
