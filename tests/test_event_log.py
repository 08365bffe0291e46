"""
EventLog: half-open range queries, per-product history, replay.
"""

from __future__ import annotations

from datetime import datetime

from pharmaledger.schemas.ledger import EntryKind
from pharmaledger.services.event_log import EventLog

from conftest import NOW

log = EventLog()


def _seed_timeline(ledger, clock, actor, make_product):
    """Two products, events one hour apart starting at NOW."""
    a = make_product(code="A001")
    b = make_product(code="B001")
    ledger.record_purchase(a, 10, "2.00", actor).unwrap()      # 12:00
    clock.advance(hours=1)
    ledger.record_purchase(b, 5, "3.00", actor).unwrap()       # 13:00
    clock.advance(hours=1)
    ledger.record_sale(a, 4, "5.00", actor).unwrap()           # 14:00
    clock.advance(hours=1)
    ledger.record_sale(b, 1, "6.00", actor).unwrap()           # 15:00
    clock.advance(hours=1)
    ledger.record_sale(a, 2, "5.00", actor).unwrap()           # 16:00
    return a, b


def test_sales_between_is_half_open(ledger, clock, actor, make_product, session_factory):
    _seed_timeline(ledger, clock, actor, make_product)
    start = NOW.replace(hour=14)
    end = NOW.replace(hour=16)

    with session_factory() as db:
        rows = log.sales_between(db, start, end)

    assert [r.committed_at.hour for r in rows] == [14, 15]


def test_sales_between_without_bounds_returns_all_oldest_first(ledger, clock, actor, make_product, session_factory):
    _seed_timeline(ledger, clock, actor, make_product)
    with session_factory() as db:
        rows = log.sales_between(db)
    hours = [r.committed_at.hour for r in rows]
    assert hours == sorted(hours) == [14, 15, 16]


def test_product_filter(ledger, clock, actor, make_product, session_factory):
    a, b = _seed_timeline(ledger, clock, actor, make_product)
    with session_factory() as db:
        sales_a = log.sales_between(db, product_id=a)
        purchases_b = log.purchases_between(db, product_id=b)
    assert [s.quantity for s in sales_a] == [4, 2]
    assert [p.quantity for p in purchases_b] == [5]


def test_empty_window(ledger, clock, actor, make_product, session_factory):
    _seed_timeline(ledger, clock, actor, make_product)
    with session_factory() as db:
        assert log.purchases_between(db, datetime(2030, 1, 1), datetime(2030, 2, 1)) == []


def test_product_history_merges_in_commit_order(ledger, clock, actor, make_product, session_factory):
    a, _ = _seed_timeline(ledger, clock, actor, make_product)

    with session_factory() as db:
        history = log.product_history(db, a)

    assert [e.kind for e in history] == [EntryKind.PURCHASE, EntryKind.SALE, EntryKind.SALE]
    assert [e.quantity_change for e in history] == [10, -4, -2]
    assert [e.quantity_after for e in history] == [10, 6, 4]
    assert [e.ledger_seq for e in history] == [1, 2, 3]
    assert history[0].profit is None
    assert history[1].profit is not None


def test_replay_matches_stored_quantity(ledger, clock, actor, make_product, session_factory, read_quantity):
    a, b = _seed_timeline(ledger, clock, actor, make_product)
    with session_factory() as db:
        assert log.replay_quantity(db, a) == read_quantity(a) == 4
        assert log.replay_quantity(db, b) == read_quantity(b) == 4


def test_replay_of_untouched_product_is_zero(make_product, session_factory):
    pid = make_product()
    with session_factory() as db:
        assert log.replay_quantity(db, pid) == 0
        assert log.product_history(db, pid) == []
