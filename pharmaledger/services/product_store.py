# FILE: pharmaledger/services/product_store.py
from __future__ import annotations

from typing import Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pharmaledger.models.product import MAX_QUANTITY, Product
from pharmaledger.schemas.ledger import ProductSnapshot
from pharmaledger.services.errors import (
    InsufficientStock,
    InvalidInput,
    NotFound,
    StaleVersion,
)
from pharmaledger.utils.timezone import utcnow


class ProductStore:
    """
    Key-addressed access to Product rows.

    ``apply_delta`` is the only code path in the project that writes
    Product.quantity. Everything else here is read-only.
    """

    def read(self, db: Session, product_id: int) -> ProductSnapshot:
        row = db.execute(
            select(Product).where(Product.id == product_id)
        ).scalar_one_or_none()
        if row is None:
            raise NotFound(f"Product {product_id} not found", product_id=product_id)
        return ProductSnapshot.model_validate(row)

    def read_by_code(self, db: Session, code: str) -> ProductSnapshot:
        code = (code or "").strip()
        row = db.execute(
            select(Product).where(Product.code == code)
        ).scalar_one_or_none()
        if row is None:
            raise NotFound(f"Product with code '{code}' not found", code=code)
        return ProductSnapshot.model_validate(row)

    def lock(self, db: Session, product_id: int) -> ProductSnapshot:
        """
        Read the row FOR UPDATE so cost and quantity stay consistent until commit.
        (SQLite ignores FOR UPDATE; the in-process lock and the seq guard cover it.)
        """
        row = db.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
        ).scalar_one_or_none()
        if row is None:
            raise NotFound(f"Product {product_id} not found", product_id=product_id)
        return ProductSnapshot.model_validate(row)

    def apply_delta(
        self,
        db: Session,
        product_id: int,
        delta: int,
        *,
        expected_seq: int,
    ) -> Tuple[int, int]:
        """
        Add ``delta`` (signed) to the product's quantity.

        Single guarded UPDATE: it only matches when ledger_seq is still
        ``expected_seq`` and the new quantity stays within 0..MAX_QUANTITY.
        Returns (new_quantity, new_ledger_seq).
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidInput("delta must be a non-zero integer", delta=delta)
        if abs(delta) > MAX_QUANTITY:
            raise InvalidInput(f"delta must be within +/-{MAX_QUANTITY}", delta=delta)

        # bounds written so neither side of the comparison leaves the INT range
        in_range = (
            Product.quantity <= MAX_QUANTITY - delta
            if delta > 0
            else Product.quantity >= -delta
        )
        res = db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.ledger_seq == expected_seq,
                in_range,
            )
            .values(
                quantity=Product.quantity + delta,
                ledger_seq=Product.ledger_seq + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        current = db.execute(
            select(Product.quantity, Product.ledger_seq).where(Product.id == product_id)
        ).first()
        if current is None:
            raise NotFound(f"Product {product_id} not found", product_id=product_id)

        if res.rowcount == 1:
            return int(current.quantity), int(current.ledger_seq)

        if current.ledger_seq != expected_seq:
            raise StaleVersion(product_id)

        if delta > 0:
            raise InvalidInput(
                f"Stock for product {product_id} would exceed {MAX_QUANTITY}",
                product_id=product_id,
                requested=delta,
                on_hand=int(current.quantity),
            )

        raise InsufficientStock(
            f"Insufficient stock for product {product_id}: "
            f"requested {abs(delta)}, on hand {current.quantity}",
            product_id=product_id,
            requested=abs(delta),
            on_hand=int(current.quantity),
        )
