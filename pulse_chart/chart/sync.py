# pulse_chart/chart/sync.py
"""
Visible-range synchronization across panes.

A pan or zoom on any pane is pushed to every other pane. Pushing a range into
a pane fires that pane's own range-changed notification synchronously; the
`syncing` flag makes those nested notifications return immediately so a
change propagates exactly once.
"""
import logging
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Range = Tuple[float, float]


class PaneSynchronizer:

    def __init__(self):
        self.syncing = False
        self.propagation_count = 0
        self._panes: Dict[str, object] = {}
        self._unsubscribers: Dict[str, Callable[[], None]] = {}

    @property
    def pane_names(self):
        return list(self._panes)

    def attach(self, name: str, pane, seed_range: Optional[Range] = None) -> None:
        """
        Start syncing a pane.

        Args:
            name: Pane key ('main', 'rsi', 'macd')
            pane: Object with visible_range/set_visible_range/on_range_changed
            seed_range: Range pushed into the new pane before it joins
        """
        if name in self._panes:
            self.detach(name)

        if seed_range is not None:
            self._apply_guarded({name: pane}, seed_range)
            logger.debug(f"Seeded pane {name} with range {seed_range}")

        self._panes[name] = pane
        self._unsubscribers[name] = pane.on_range_changed(
            lambda lo, hi, source=name: self.on_range_changed(source, lo, hi))

    def detach(self, name: str) -> None:
        unsubscribe = self._unsubscribers.pop(name, None)
        if unsubscribe is not None:
            unsubscribe()
        self._panes.pop(name, None)

    def on_range_changed(self, source: str, lo: float, hi: float) -> None:
        if self.syncing:
            return
        targets = {name: pane for name, pane in self._panes.items() if name != source}
        if not targets:
            return
        self.propagation_count += 1
        self._apply_guarded(targets, (lo, hi))

    def apply(self, visible_range: Range) -> None:
        """Set every attached pane to one range without re-propagation"""
        self._apply_guarded(dict(self._panes), visible_range)

    def _apply_guarded(self, panes: Dict[str, object], visible_range: Range) -> None:
        self.syncing = True
        try:
            for pane in panes.values():
                pane.set_visible_range(*visible_range)
        finally:
            self.syncing = False

    def clear(self) -> None:
        for name in list(self._panes):
            self.detach(name)
