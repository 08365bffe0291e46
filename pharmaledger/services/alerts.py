# FILE: pharmaledger/services/alerts.py
from __future__ import annotations

from datetime import date, timedelta

from pharmaledger.schemas.ledger import AlertState

# fixed business rule: products expiring within this many days are flagged
EXPIRY_WINDOW_DAYS = 30


def classify(snapshot, today: date) -> AlertState:
    """
    Alert state of a product snapshot as of ``today``.

    Priority: low stock first (even when the product is also expired or near
    expiry), then expired, then expiring within EXPIRY_WINDOW_DAYS.
    ``snapshot`` is anything exposing quantity / quantity_minimum / expiry_date.
    """
    if snapshot.quantity <= snapshot.quantity_minimum:
        return AlertState.LOW_STOCK
    if snapshot.expiry_date < today:
        return AlertState.EXPIRED
    if snapshot.expiry_date <= today + timedelta(days=EXPIRY_WINDOW_DAYS):
        return AlertState.EXPIRING_SOON
    return AlertState.OK
