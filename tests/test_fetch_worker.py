"""
tests/test_fetch_worker.py

ThreadRunner: fetches run on a worker thread and report back on the
caller's thread.
"""
from __future__ import annotations

import threading
import time

from PyQt6.QtTest import QTest

from session.worker import ThreadRunner


def _wait_for(predicate, timeout_s: float = 5.0):
    deadline = time.monotonic() + timeout_s
    while not predicate() and time.monotonic() < deadline:
        QTest.qWait(10)
    return predicate()


def test_success_delivered_on_main_thread(qapp):
    runner = ThreadRunner()
    results, errors, threads = [], [], []

    def fetch():
        threads.append(threading.get_ident())
        return 42

    def on_success(value):
        threads.append(threading.get_ident())
        results.append(value)

    runner(fetch, on_success, errors.append)
    assert _wait_for(lambda: results)
    assert results == [42]
    assert errors == []
    worker_thread, callback_thread = threads
    assert worker_thread != threading.get_ident()
    assert callback_thread == threading.get_ident()
    assert _wait_for(lambda: runner.active_count() == 0)


def test_failure_message(qapp):
    runner = ThreadRunner()
    results, errors = [], []

    def fetch():
        raise ValueError("boom")

    runner(fetch, results.append, errors.append)
    assert _wait_for(lambda: errors)
    assert errors == ["boom"]
    assert results == []


def test_wait_all_outlasts_slow_fetch(qapp):
    runner = ThreadRunner()
    returned = threading.Event()
    results = []

    def fetch():
        time.sleep(0.3)
        returned.set()
        return "late"

    runner(fetch, results.append, lambda message: None)
    runner.wait_all()

    assert returned.is_set()
    assert all(job.thread.isFinished() for job in runner._jobs)
    assert _wait_for(lambda: runner.active_count() == 0)
    assert results == ["late"]
