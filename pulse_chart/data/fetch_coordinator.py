# pulse_chart/data/fetch_coordinator.py
"""
Background fetch coordination.

Feed calls run in QThread workers so the UI thread never blocks on the
network. Each call is tagged with a purpose ('candles', 'compare', 'search',
'quote') and a request id; only the newest request of a purpose may deliver
its result. Anything older is dropped on arrival, whatever order the
responses come back in.
"""
import itertools
import logging
from typing import Any, Callable, Dict, Optional, Set, Tuple

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

logger = logging.getLogger(__name__)

# Running workers are referenced here until they finish so a closed view
# never destroys a QThread that is still inside a request.
_live_workers: Set['FetchWorker'] = set()


class RequestLedger:
    """Latest request id per purpose; no Qt involved"""

    def __init__(self):
        self._latest: Dict[str, int] = {}
        self._ids = itertools.count(1)
        self.closed = False

    def begin(self, purpose: str) -> int:
        request_id = next(self._ids)
        if not self.closed:
            self._latest[purpose] = request_id
        return request_id

    def is_current(self, purpose: str, request_id: int) -> bool:
        return not self.closed and self._latest.get(purpose) == request_id

    def cancel(self, purpose: str) -> None:
        self._latest.pop(purpose, None)

    def close(self) -> None:
        self.closed = True
        self._latest.clear()


class FetchWorker(QThread):
    """Runs one feed call off the UI thread"""
    result_ready = pyqtSignal(str, int, object)
    error_occurred = pyqtSignal(str, int, object)

    def __init__(self, purpose: str, request_id: int, fn: Callable,
                 args: Tuple = (), kwargs: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.purpose = purpose
        self.request_id = request_id
        self.fn = fn
        self.args = args
        self.kwargs = kwargs or {}

    def run(self):
        try:
            result = self.fn(*self.args, **self.kwargs)
        except Exception as e:
            logger.error(f"Error in FetchWorker ({self.purpose}): {e}")
            self.error_occurred.emit(self.purpose, self.request_id, e)
            return

        if self.isInterruptionRequested():
            return
        self.result_ready.emit(self.purpose, self.request_id, result)


class FetchCoordinator(QObject):
    """
    Starts workers and routes their results to callbacks on the UI thread.

    Usage:
        coordinator.request('candles', client.fetch_candles, 'AAPL', '1mo', '5m',
                            on_result=self._on_candles, on_error=self._on_error)
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.ledger = RequestLedger()
        self._handlers: Dict[Tuple[str, int], Tuple[Optional[Callable], Optional[Callable]]] = {}
        self._workers: Set[FetchWorker] = set()

    def request(self, purpose: str, fn: Callable, *args,
                on_result: Optional[Callable] = None,
                on_error: Optional[Callable] = None, **kwargs) -> int:
        """Start a fetch, superseding any in-flight fetch of the same purpose"""
        if self.ledger.closed:
            logger.debug(f"Ignoring {purpose} request on a closed coordinator")
            return 0

        self._interrupt(purpose)
        request_id = self.ledger.begin(purpose)
        self._handlers[(purpose, request_id)] = (on_result, on_error)

        worker = FetchWorker(purpose, request_id, fn, args, kwargs)
        worker.result_ready.connect(self._on_worker_result)
        worker.error_occurred.connect(self._on_worker_error)
        worker.finished.connect(self._on_worker_finished)
        self._workers.add(worker)
        _live_workers.add(worker)
        worker.start()
        return request_id

    def cancel(self, purpose: str) -> None:
        self._interrupt(purpose)
        self.ledger.cancel(purpose)

    def shutdown(self) -> None:
        """Abandon every in-flight fetch; nothing is delivered afterwards"""
        self.ledger.close()
        self._handlers.clear()
        for worker in list(self._workers):
            worker.requestInterruption()

    def _interrupt(self, purpose: str) -> None:
        for worker in self._workers:
            if worker.purpose == purpose:
                worker.requestInterruption()

    def deliver(self, purpose: str, request_id: int, payload: Any, failed: bool = False) -> bool:
        """
        Hand a finished fetch to its callback if it is still the newest.

        Returns:
            True when a callback ran, False when the result was stale
        """
        handlers = self._handlers.pop((purpose, request_id), None)
        if handlers is None or not self.ledger.is_current(purpose, request_id):
            logger.debug(f"Discarding stale {purpose} response #{request_id}")
            return False

        on_result, on_error = handlers
        callback = on_error if failed else on_result
        if callback is not None:
            callback(payload)
        return True

    @pyqtSlot(str, int, object)
    def _on_worker_result(self, purpose, request_id, result):
        self.deliver(purpose, request_id, result)

    @pyqtSlot(str, int, object)
    def _on_worker_error(self, purpose, request_id, error):
        self.deliver(purpose, request_id, error, failed=True)

    @pyqtSlot()
    def _on_worker_finished(self):
        worker = self.sender()
        self._workers.discard(worker)
        _live_workers.discard(worker)
        # Purge handlers of superseded requests that never delivered
        self._handlers = {key: value for key, value in self._handlers.items()
                          if self.ledger.is_current(*key)}
        if worker is not None:
            worker.deleteLater()
