"""
session/worker.py

Background fetch worker for backend calls.
Runs one blocking fetch in a separate thread to avoid blocking the UI.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Set

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

log = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[str], None]


class FetchWorker(QObject):
    """
    Background worker that calls a single fetch function.

    Signals:
        finished(object): Emitted with the fetch result on success
        failed(str): Emitted with an error message on failure
    """

    finished = pyqtSignal(object)
    failed = pyqtSignal(str)

    def __init__(self, fn: Callable[[], Any]):
        super().__init__()
        self.fn = fn

    def run(self):
        """Execute the fetch."""
        try:
            result = self.fn()
            self.finished.emit(result)
        except Exception as e:
            log.debug("Fetch failed", exc_info=True)
            self.failed.emit(str(e) or type(e).__name__)


class _FetchJob(QObject):
    """Owns one worker/thread pair and relays its results on the caller's thread."""

    done = pyqtSignal(object)

    def __init__(self, fn: Callable[[], Any], on_success: SuccessCallback, on_failure: FailureCallback):
        super().__init__()
        self.on_success = on_success
        self.on_failure = on_failure

        self.thread = QThread()
        self.worker = FetchWorker(fn)
        self.worker.moveToThread(self.thread)

        self.thread.started.connect(self.worker.run)
        self.worker.finished.connect(self._on_finished)
        self.worker.failed.connect(self._on_failed)

        self.worker.finished.connect(self.thread.quit)
        self.worker.failed.connect(self.thread.quit)

        self.thread.finished.connect(self._on_thread_finished)

    @pyqtSlot(object)
    def _on_finished(self, result):
        self.on_success(result)

    @pyqtSlot(str)
    def _on_failed(self, message: str):
        self.on_failure(message)

    @pyqtSlot()
    def _on_thread_finished(self):
        self.done.emit(self)


class ThreadRunner(QObject):
    """Run fetches on worker threads; callbacks fire on the thread that created the runner.

    Called as ``runner(fn, on_success, on_failure)``.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._jobs: Set[_FetchJob] = set()

    def __call__(self, fn: Callable[[], Any], on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        job = _FetchJob(fn, on_success, on_failure)
        self._jobs.add(job)
        job.done.connect(self._forget)
        job.thread.start()

    @pyqtSlot(object)
    def _forget(self, job):
        # finished is emitted just before the thread exits
        job.thread.wait()
        self._jobs.discard(job)

    def active_count(self) -> int:
        return len(self._jobs)

    def wait_all(self) -> None:
        """Block until running fetches finish (used on shutdown).

        A blocking fetch cannot be interrupted, so this waits without a
        deadline; the API client's request timeout bounds each call.
        quit() is queued ahead of the thread's event loop so it exits as soon
        as the fetch returns, even while this thread is blocked here.
        """
        for job in list(self._jobs):
            job.thread.quit()
            job.thread.wait()
