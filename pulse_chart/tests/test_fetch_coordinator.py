# pulse_chart/tests/test_fetch_coordinator.py
"""
Module: Fetch coordination tests
Purpose: Newest-request-wins delivery and shutdown behaviour
"""
from unittest.mock import Mock

import pytest

from pulse_chart.data.fetch_coordinator import FetchCoordinator, RequestLedger


class TestRequestLedger:

    def test_newest_request_is_current(self):
        ledger = RequestLedger()
        first = ledger.begin('candles')
        second = ledger.begin('candles')

        assert not ledger.is_current('candles', first)
        assert ledger.is_current('candles', second)

    def test_purposes_are_independent(self):
        ledger = RequestLedger()
        candles = ledger.begin('candles')
        ledger.begin('compare')
        assert ledger.is_current('candles', candles)

    def test_cancel_and_close(self):
        ledger = RequestLedger()
        request_id = ledger.begin('search')
        ledger.cancel('search')
        assert not ledger.is_current('search', request_id)

        request_id = ledger.begin('candles')
        ledger.close()
        assert not ledger.is_current('candles', request_id)
        assert not ledger.is_current('candles', ledger.begin('candles'))


class TestFetchCoordinator:

    @pytest.fixture
    def coordinator(self, qapp):
        coordinator = FetchCoordinator()
        yield coordinator
        coordinator.shutdown()

    def _register(self, coordinator, purpose, on_result, on_error=None):
        request_id = coordinator.ledger.begin(purpose)
        coordinator._handlers[(purpose, request_id)] = (on_result, on_error)
        return request_id

    def test_stale_response_discarded(self, coordinator):
        """Test an older response arriving after a newer request is dropped"""
        old_cb, new_cb = Mock(), Mock()
        old_id = self._register(coordinator, 'candles', old_cb)
        new_id = self._register(coordinator, 'candles', new_cb)

        assert coordinator.deliver('candles', new_id, 'fresh') is True
        assert coordinator.deliver('candles', old_id, 'stale') is False

        new_cb.assert_called_once_with('fresh')
        old_cb.assert_not_called()

    def test_error_routed_to_error_callback(self, coordinator):
        on_result, on_error = Mock(), Mock()
        request_id = self._register(coordinator, 'quote', on_result, on_error)
        error = RuntimeError("feed down")

        coordinator.deliver('quote', request_id, error, failed=True)

        on_error.assert_called_once_with(error)
        on_result.assert_not_called()

    def test_nothing_delivered_after_shutdown(self, coordinator):
        callback = Mock()
        request_id = self._register(coordinator, 'candles', callback)
        coordinator.shutdown()

        assert coordinator.deliver('candles', request_id, 'late') is False
        assert coordinator.request('candles', Mock()) == 0
        callback.assert_not_called()

    def test_worker_round_trip(self, coordinator, qtbot):
        """Test a real worker thread delivers its result on the UI thread"""
        results = []
        coordinator.request('search', lambda q: [q.upper()], 'msft',
                            on_result=results.append)

        qtbot.waitUntil(lambda: results == [['MSFT']], timeout=2000)

    def test_worker_error(self, coordinator, qtbot):
        errors = []

        def failing():
            raise ValueError("boom")

        coordinator.request('quote', failing, on_error=errors.append)
        qtbot.waitUntil(lambda: len(errors) == 1, timeout=2000)
        assert isinstance(errors[0], ValueError)
