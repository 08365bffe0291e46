# pharmaledger/db/session.py
import math
from typing import Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pharmaledger.core.config import settings

_engines: Dict[str, Engine] = {}


def _sqlite_pragmas(dbapi_conn, _record) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def _mysql_lock_wait(seconds: int):
    def _on_connect(dbapi_conn, _record) -> None:
        cur = dbapi_conn.cursor()
        cur.execute(f"SET SESSION innodb_lock_wait_timeout = {seconds}")
        cur.close()

    return _on_connect


def make_engine(
    db_uri: str,
    *,
    echo: bool = False,
    lock_timeout: Optional[float] = None,
) -> Engine:
    """
    Build an Engine for the given URI.

    Row/file lock waits are bounded by ``lock_timeout`` (default
    LEDGER_LOCK_TIMEOUT_SECONDS), the same bound the ledger uses for its
    per-product lock, so cross-process contention also ends in BUSY on time.
    """
    if lock_timeout is None:
        lock_timeout = settings.LEDGER_LOCK_TIMEOUT_SECONDS

    if db_uri.startswith("sqlite"):
        eng = create_engine(
            db_uri,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": max(lock_timeout, 0)},
            future=True,
        )
        event.listen(eng, "connect", _sqlite_pragmas)
        return eng

    eng = create_engine(
        db_uri,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
        future=True,
    )
    if db_uri.startswith("mysql"):
        # innodb takes whole seconds, minimum 1
        event.listen(eng, "connect", _mysql_lock_wait(max(1, math.ceil(lock_timeout))))
    return eng


def get_or_create_engine(db_uri: str) -> Engine:
    eng = _engines.get(db_uri)
    if eng is None:
        eng = make_engine(db_uri, echo=settings.SQL_ECHO)
        _engines[db_uri] = eng
    return eng


def make_session_factory(eng: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=eng,
        future=True,
    )


engine: Engine = get_or_create_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = make_session_factory(engine)
