"""
KeyLocks: per-key exclusion with bounded wait.
"""

from __future__ import annotations

import threading
import time

import pytest

from pharmaledger.services.errors import Busy, ErrorCode
from pharmaledger.services.locks import KeyLocks


def test_hold_and_release_cleans_up():
    locks = KeyLocks()
    with locks.hold(1, timeout=1):
        assert len(locks) == 1
    assert len(locks) == 0


def test_same_key_times_out():
    locks = KeyLocks()
    with locks.hold("A", timeout=1):
        with pytest.raises(Busy) as info:
            with locks.hold("A", timeout=0.01):
                pass
    assert info.value.code is ErrorCode.BUSY
    assert info.value.details["product_id"] == "A"
    assert len(locks) == 0


def test_different_keys_are_independent():
    locks = KeyLocks()
    with locks.hold(1, timeout=1):
        with locks.hold(2, timeout=0.01):
            assert len(locks) == 2


def test_waiter_gets_lock_after_release():
    locks = KeyLocks()
    order = []
    entered = threading.Event()

    def holder():
        with locks.hold(7, timeout=1):
            entered.set()
            time.sleep(0.05)
            order.append("holder")

    t = threading.Thread(target=holder)
    t.start()
    entered.wait(1)

    with locks.hold(7, timeout=2):
        order.append("waiter")
    t.join()

    assert order == ["holder", "waiter"]
    assert len(locks) == 0


def test_exception_inside_hold_releases():
    locks = KeyLocks()
    with pytest.raises(RuntimeError):
        with locks.hold(3, timeout=1):
            raise RuntimeError("boom")
    with locks.hold(3, timeout=0.01):
        pass
