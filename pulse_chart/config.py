# pulse_chart/config.py - Configuration and constants for the chart workstation
"""
Configuration module for PulseChart.
Handles environment variables, feed settings, storage paths, and module constants.
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
import pytz
from dotenv import load_dotenv

from .exceptions import ChartConfigurationError

# .env lives in the project root (one level up from pulse_chart/)
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

# Candle timestamps arrive as unix seconds (UTC); VWAP day keys are UTC days
FEED_TIMEZONE = pytz.UTC
# Session boundaries and axis labels follow the US equity market clock
DISPLAY_TIMEZONE = pytz.timezone('America/New_York')

WATERMARK = "PulseChart"
PREFERENCES_FILENAME = "timeframes.json"
MAX_PREFERENCE_ENTRIES = 50
FORWARD_PROJECTION_BARS = 120

logger = logging.getLogger(__name__)


class ChartConfig:
    """
    [CLASS SUMMARY]
    Purpose: Centralized configuration for the chart workstation
    Responsibilities:
        - Locate the candle/quote/search feed
        - Define request timeout and retry policy
        - Configure storage paths for preferences, logs and snapshots
        - Provide the poll refresh factor
    Usage:
        config = ChartConfig()
        url = config.endpoints['chart']
    """

    def __init__(self, config_override: Optional[Dict[str, Any]] = None):
        """
        [FUNCTION SUMMARY]
        Purpose: Initialize configuration with environment variables and optional overrides
        Parameters:
            - config_override (dict, optional): Override default settings for testing
        Example: ChartConfig({'max_retries': 0}) -> config that never retries
        """
        self.config_override = config_override or {}

        self._load_api_config()
        self._load_storage_config()
        self._load_refresh_config()
        self.validate()

    def _get(self, key: str, env_name: str, default: Any) -> Any:
        if key in self.config_override:
            return self.config_override[key]
        return os.getenv(env_name, default)

    def _load_api_config(self):
        """
        [FUNCTION SUMMARY]
        Purpose: Load feed location and request policy
        Sets: base_url, endpoints, request_timeout, max_retries, retry_base_delay
        """
        self.base_url = str(self._get('base_url', 'PULSE_CHART_API_URL',
                                      'http://localhost:3001')).rstrip('/')

        self.endpoints = {
            'chart': f"{self.base_url}/api/chart",
            'quote': f"{self.base_url}/api/quote",
            'search': f"{self.base_url}/api/search",
        }

        try:
            self.request_timeout = float(self._get('request_timeout', 'PULSE_CHART_TIMEOUT', 10))
            self.max_retries = int(self._get('max_retries', 'PULSE_CHART_MAX_RETRIES', 2))
            self.retry_base_delay = float(self._get('retry_base_delay',
                                                    'PULSE_CHART_RETRY_BASE_DELAY', 1.0))
        except (TypeError, ValueError) as e:
            raise ChartConfigurationError(f"Invalid request setting: {e}")

    def _load_storage_config(self):
        """
        [FUNCTION SUMMARY]
        Purpose: Configure local storage paths
        Sets: home_dir, log_dir, preferences_path, snapshot_dir
        Note: Directories are created lazily by whoever writes into them
        """
        self.home_dir = Path(self._get('home_dir', 'PULSE_CHART_HOME',
                                       Path.home() / '.pulse_chart')).expanduser()
        self.log_dir = self.home_dir / 'logs'
        self.preferences_path = self.home_dir / PREFERENCES_FILENAME
        self.snapshot_dir = Path(self._get('snapshot_dir', 'PULSE_CHART_SNAPSHOT_DIR',
                                           Path.home() / 'Downloads')).expanduser()
        self.max_preference_entries = int(self.config_override.get(
            'max_preference_entries', MAX_PREFERENCE_ENTRIES))

    def _load_refresh_config(self):
        """Poll cadence multiplier and logging level"""
        try:
            self.refresh_factor = float(self._get('refresh_factor', 'PULSE_CHART_REFRESH_FACTOR', 1))
        except (TypeError, ValueError) as e:
            raise ChartConfigurationError(f"Invalid refresh factor: {e}", setting='refresh_factor')
        self.log_level = str(self._get('log_level', 'PULSE_CHART_LOG_LEVEL', 'INFO')).upper()
        self.forward_projection_bars = int(self.config_override.get(
            'forward_projection_bars', FORWARD_PROJECTION_BARS))

    def validate(self):
        """Reject settings that would break polling or retries"""
        if self.request_timeout <= 0:
            raise ChartConfigurationError("Request timeout must be positive",
                                          setting='request_timeout')
        if self.max_retries < 0:
            raise ChartConfigurationError("max_retries cannot be negative",
                                          setting='max_retries')
        if self.retry_base_delay < 0:
            raise ChartConfigurationError("retry_base_delay cannot be negative",
                                          setting='retry_base_delay')
        if self.refresh_factor <= 0:
            raise ChartConfigurationError("refresh_factor must be positive",
                                          setting='refresh_factor')
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ChartConfigurationError(f"Unknown log level {self.log_level}",
                                          setting='log_level')

    def poll_interval_ms(self, base_ms: int) -> int:
        """Scale a timeframe's poll cadence; 0 stays disabled"""
        if base_ms <= 0:
            return 0
        return int(base_ms * self.refresh_factor)


_config: Optional[ChartConfig] = None


def get_config() -> ChartConfig:
    """Module-wide configuration instance"""
    global _config
    if _config is None:
        _config = ChartConfig()
    return _config
