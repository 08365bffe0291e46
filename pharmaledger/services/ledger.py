# FILE: pharmaledger/services/ledger.py
"""
Stock ledger engine.

Every purchase / sale is one unit of work:

    per-product lock -> row lock -> checks -> guarded quantity UPDATE
    -> event append -> commit

Any failure before commit rolls everything back, so a quantity change is never
visible without its event row (and the other way round). Public methods
return a LedgerResult; LedgerError never escapes the engine.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pharmaledger.core.config import settings
from pharmaledger.models.ledger import MAX_AMOUNT
from pharmaledger.models.product import MAX_QUANTITY
from pharmaledger.models.reference import Supplier
from pharmaledger.models.user import User
from pharmaledger.schemas.ledger import (
    AlertState,
    ProductSnapshot,
    PurchaseRecord,
    SaleRecord,
)
from pharmaledger.services.alerts import classify
from pharmaledger.services.errors import (
    Busy,
    InsufficientStock,
    InvalidInput,
    LedgerError,
    LedgerResult,
    NotFound,
    StaleVersion,
    StorageFailure,
)
from pharmaledger.services.event_log import EventLog
from pharmaledger.services.locks import KeyLocks
from pharmaledger.services.product_store import ProductStore
from pharmaledger.utils.timezone import today_local, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

CENT = Decimal("0.01")
# Numeric(10, 2)
MAX_MONEY = Decimal("99999999.99")
NOTES_MAX_LEN = 1000
# integer primary keys share the INT column range
MAX_ID = MAX_QUANTITY

_LOCK_CONTENTION_MARKERS = (
    "database is locked",      # sqlite
    "lock wait timeout",       # mysql 1205
    "deadlock found",          # mysql 1213
    "could not obtain lock",   # postgres 55P03
    "deadlock detected",       # postgres 40P01
)


# -------------------------
# Input normalisation
# -------------------------
def _quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput("quantity must be an integer", quantity=value)
    if value <= 0:
        raise InvalidInput("quantity must be > 0", quantity=value)
    if value > MAX_QUANTITY:
        raise InvalidInput(f"quantity must be <= {MAX_QUANTITY}", quantity=value)
    return value


def _amount(value: Decimal, field: str) -> Decimal:
    """Round a derived amount and make sure it fits Numeric(14, 2)."""
    value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if abs(value) > MAX_AMOUNT:
        raise InvalidInput(f"{field} is too large", **{field: str(value)})
    return value


def _money(value: Any, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required", **{field: value})
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field} must be a decimal number", **{field: str(value)})
    if not amount.is_finite():
        raise InvalidInput(f"{field} must be a finite number", **{field: str(value)})
    if amount < 0:
        raise InvalidInput(f"{field} must be >= 0", **{field: str(value)})
    if amount > MAX_MONEY:
        raise InvalidInput(f"{field} is too large", **{field: str(value)})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _ref_id(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_ID:
        raise InvalidInput(f"{field} must be an integer in 1..{MAX_ID}", **{field: value})
    return value


def _notes(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput("notes must be text")
    value = value.strip()
    if len(value) > NOTES_MAX_LEN:
        raise InvalidInput(f"notes must be at most {NOTES_MAX_LEN} characters")
    return value or None


def _is_lock_contention(exc: OperationalError) -> bool:
    msg = str(getattr(exc, "orig", None) or exc).lower()
    return any(m in msg for m in _LOCK_CONTENTION_MARKERS)


class LedgerEngine:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        store: Optional[ProductStore] = None,
        event_log: Optional[EventLog] = None,
        locks: Optional[KeyLocks] = None,
        lock_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
        today: Callable[[], date] = today_local,
    ) -> None:
        self._session_factory = session_factory
        self._store = store or ProductStore()
        self._log = event_log or EventLog()
        self._locks = locks or KeyLocks()
        self._lock_timeout = (
            settings.LEDGER_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        )
        self._max_retries = max(1, settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries)
        self._clock = clock
        self._today = today

    # =========================================================
    # Public operations
    # =========================================================
    def record_purchase(
        self,
        product_id: int,
        quantity: int,
        unit_cost: Any,
        actor_id: int,
        supplier_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> LedgerResult[PurchaseRecord]:
        return self._run(
            "record_purchase",
            lambda: self._purchase(product_id, quantity, unit_cost, actor_id, supplier_id, notes),
        )

    def record_sale(
        self,
        product_id: int,
        quantity: int,
        unit_price: Any,
        actor_id: int,
        notes: Optional[str] = None,
    ) -> LedgerResult[SaleRecord]:
        return self._run(
            "record_sale",
            lambda: self._sale(product_id, quantity, unit_price, actor_id, notes),
        )

    def get_product_snapshot(self, product_id: int) -> LedgerResult[ProductSnapshot]:
        def _read() -> ProductSnapshot:
            pid = _ref_id(product_id, "product_id")
            with self._session_factory() as db:
                return self._store.read(db, pid)

        return self._run("get_product_snapshot", _read)

    def get_product_snapshot_by_code(self, code: str) -> LedgerResult[ProductSnapshot]:
        def _read() -> ProductSnapshot:
            if not isinstance(code, str) or not code.strip():
                raise InvalidInput("code is required")
            with self._session_factory() as db:
                return self._store.read_by_code(db, code)

        return self._run("get_product_snapshot_by_code", _read)

    def classify_product(
        self,
        product_id: int,
        today: Optional[date] = None,
    ) -> LedgerResult[AlertState]:
        snap = self.get_product_snapshot(product_id)
        if not snap.ok:
            return LedgerResult.failure(snap.error)
        return LedgerResult.success(classify(snap.value, today or self._today()))

    # =========================================================
    # Boundary
    # =========================================================
    def _run(self, op: str, fn: Callable[[], T]) -> LedgerResult[T]:
        try:
            return LedgerResult.success(fn())
        except InvalidInput as exc:
            logger.info("%s rejected: %s %s", op, exc.message, exc.details)
            return LedgerResult.failure(exc.to_failure())
        except LedgerError as exc:
            logger.warning("%s failed [%s]: %s", op, exc.code.value, exc.message)
            return LedgerResult.failure(exc.to_failure())
        except OperationalError as exc:
            if _is_lock_contention(exc):
                logger.warning("%s hit lock contention: %s", op, exc.orig)
                return LedgerResult.failure(
                    Busy("Storage is busy, retry later").to_failure()
                )
            logger.exception("%s storage failure", op)
            return LedgerResult.failure(
                StorageFailure(f"Storage failure: {exc.orig}").to_failure()
            )
        except SQLAlchemyError as exc:
            logger.exception("%s storage failure", op)
            return LedgerResult.failure(
                StorageFailure(f"Storage failure: {exc}").to_failure()
            )

    def _with_retries(self, product_id: int, attempt_fn: Callable[[], T]) -> T:
        """
        Hold the product's lock and run one unit of work, retrying when the
        guarded UPDATE lost a race on ledger_seq. Every retry re-reads the row,
        so the stock check is redone against the fresh quantity.
        """
        with self._locks.hold(product_id, self._lock_timeout):
            for attempt in range(1, self._max_retries + 1):
                try:
                    return attempt_fn()
                except StaleVersion:
                    logger.info(
                        "ledger_seq moved for product %s (attempt %s/%s)",
                        product_id, attempt, self._max_retries,
                    )
        raise Busy(
            f"Product {product_id} is being updated concurrently, retry later",
            product_id=product_id,
        )

    # =========================================================
    # Purchases
    # =========================================================
    def _purchase(
        self,
        product_id: Any,
        quantity: Any,
        unit_cost: Any,
        actor_id: Any,
        supplier_id: Any,
        notes: Any,
    ) -> PurchaseRecord:
        pid = _ref_id(product_id, "product_id")
        qty = _quantity(quantity)
        cost = _money(unit_cost, "unit_cost")
        aid = _ref_id(actor_id, "actor_id")
        sid = None if supplier_id is None else _ref_id(supplier_id, "supplier_id")
        text = _notes(notes)
        total = _amount(cost * qty, "total")

        def _attempt() -> PurchaseRecord:
            with self._session_factory() as db:
                with db.begin():
                    snap = self._store.lock(db, pid)
                    self._require_actor(db, aid)
                    if sid is not None:
                        self._require_supplier(db, sid)

                    new_qty, new_seq = self._store.apply_delta(
                        db, pid, qty, expected_seq=snap.ledger_seq
                    )
                    ev = self._log.append_purchase(
                        db,
                        product_id=pid,
                        supplier_id=sid,
                        actor_id=aid,
                        quantity=qty,
                        unit_cost=cost,
                        total=total,
                        ledger_seq=new_seq,
                        quantity_after=new_qty,
                        committed_at=self._clock(),
                        notes=text,
                    )
                    record = PurchaseRecord.model_validate(ev)

            after = snap.model_copy(update={"quantity": new_qty, "ledger_seq": new_seq})
            return record.model_copy(update={"alert_state": self._post_write_alert(after)})

        record = self._with_retries(pid, _attempt)
        logger.info(
            "Purchase #%s committed | product=%s qty=+%s unit_cost=%s total=%s on_hand=%s",
            record.id, pid, qty, cost, total, record.quantity_after,
        )
        return record

    # =========================================================
    # Sales
    # =========================================================
    def _sale(
        self,
        product_id: Any,
        quantity: Any,
        unit_price: Any,
        actor_id: Any,
        notes: Any,
    ) -> SaleRecord:
        pid = _ref_id(product_id, "product_id")
        qty = _quantity(quantity)
        price = _money(unit_price, "unit_price")
        aid = _ref_id(actor_id, "actor_id")
        text = _notes(notes)
        total = _amount(price * qty, "total")

        def _attempt() -> SaleRecord:
            with self._session_factory() as db:
                with db.begin():
                    snap = self._store.lock(db, pid)
                    self._require_actor(db, aid)

                    if qty > snap.quantity:
                        raise InsufficientStock(
                            f"Insufficient stock for product {pid}: "
                            f"requested {qty}, on hand {snap.quantity}",
                            product_id=pid,
                            requested=qty,
                            on_hand=snap.quantity,
                        )

                    # cost is read under the same lock as the write
                    cost = snap.purchase_cost
                    profit = _amount((price - cost) * qty, "profit")

                    new_qty, new_seq = self._store.apply_delta(
                        db, pid, -qty, expected_seq=snap.ledger_seq
                    )
                    ev = self._log.append_sale(
                        db,
                        product_id=pid,
                        actor_id=aid,
                        quantity=qty,
                        unit_price=price,
                        total=total,
                        unit_cost_at_sale=cost,
                        profit=profit,
                        ledger_seq=new_seq,
                        quantity_after=new_qty,
                        committed_at=self._clock(),
                        notes=text,
                    )
                    record = SaleRecord.model_validate(ev)

            after = snap.model_copy(update={"quantity": new_qty, "ledger_seq": new_seq})
            return record.model_copy(update={"alert_state": self._post_write_alert(after)})

        record = self._with_retries(pid, _attempt)
        logger.info(
            "Sale #%s committed | product=%s qty=-%s unit_price=%s total=%s profit=%s on_hand=%s",
            record.id, pid, qty, price, total, record.profit, record.quantity_after,
        )
        return record

    # =========================================================
    # Helpers
    # =========================================================
    def _require_actor(self, db: Session, actor_id: int) -> None:
        if db.get(User, actor_id) is None:
            raise NotFound(f"Actor {actor_id} not found", actor_id=actor_id)

    def _require_supplier(self, db: Session, supplier_id: int) -> None:
        if db.get(Supplier, supplier_id) is None:
            raise NotFound(f"Supplier {supplier_id} not found", supplier_id=supplier_id)

    def _post_write_alert(self, snap: ProductSnapshot) -> AlertState:
        state = classify(snap, self._today())
        if state is not AlertState.OK:
            logger.warning(
                "Product %s (%s) is %s | qty=%s min=%s expiry=%s",
                snap.id, snap.code, state.value,
                snap.quantity, snap.quantity_minimum, snap.expiry_date,
            )
        return state
