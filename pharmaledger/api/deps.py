# pharmaledger/api/deps.py
from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import Generator

from sqlalchemy.orm import Session

from pharmaledger.db.session import SessionLocal
from pharmaledger.services.ledger import LedgerEngine
from pharmaledger.utils.timezone import today_local


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache(maxsize=1)
def _default_ledger() -> LedgerEngine:
    # one engine per process so every request shares the per-product locks
    return LedgerEngine(SessionLocal)


def get_ledger() -> LedgerEngine:
    return _default_ledger()


def get_today() -> date:
    return today_local()
