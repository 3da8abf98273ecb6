# pulse_chart/data/preferences.py
"""
Per-symbol timeframe preference store.

A JSON object {symbol: {"minuteIdx": i} | {"rangeIdx": i}} kept in the user's
PulseChart home. Bounded by insertion order: when a write pushes the map past
its cap, the first-inserted symbol is dropped. Rewriting an existing symbol
keeps its original position.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from ..config import get_config, MAX_PREFERENCE_ENTRIES
from .timeframes import TimeframeKind

logger = logging.getLogger(__name__)

MINUTE_KEY = 'minuteIdx'
RANGE_KEY = 'rangeIdx'


class TimeframePreferenceStore:
    """Reads and writes the preference file; corrupt content reads as empty"""

    def __init__(self, path: Optional[Union[str, Path]] = None,
                 max_entries: int = MAX_PREFERENCE_ENTRIES):
        self.path = Path(path) if path else get_config().preferences_path
        self.max_entries = max_entries

    def load_all(self) -> Dict[str, Dict[str, int]]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read timeframe preferences {self.path}: {e}")
            return {}

        try:
            prefs = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring corrupt timeframe preferences in {self.path}")
            return {}

        if not isinstance(prefs, dict):
            logger.warning(f"Ignoring non-object timeframe preferences in {self.path}")
            return {}
        return prefs

    def get(self, symbol: str) -> Optional[Tuple[TimeframeKind, int]]:
        """Stored (kind, index) for a symbol, or None"""
        entry = self.load_all().get(symbol)
        if not isinstance(entry, dict):
            return None
        if isinstance(entry.get(MINUTE_KEY), int):
            return TimeframeKind.MINUTE, entry[MINUTE_KEY]
        if isinstance(entry.get(RANGE_KEY), int):
            return TimeframeKind.RANGE, entry[RANGE_KEY]
        return None

    def save(self, symbol: str, kind: TimeframeKind, index: int) -> None:
        prefs = self.load_all()
        key = MINUTE_KEY if TimeframeKind(kind) == TimeframeKind.MINUTE else RANGE_KEY
        prefs[symbol] = {key: index}

        keys = list(prefs)
        if len(keys) > self.max_entries:
            del prefs[keys[0]]

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix('.tmp')
            tmp_path.write_text(json.dumps(prefs), encoding='utf-8')
            tmp_path.replace(self.path)
        except OSError as e:
            logger.warning(f"Could not save timeframe preference for {symbol}: {e}")
