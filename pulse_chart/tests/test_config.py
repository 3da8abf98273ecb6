# pulse_chart/tests/test_config.py
"""
Module: Configuration tests
"""
from pathlib import Path

import pytest

from pulse_chart.config import ChartConfig
from pulse_chart.exceptions import ChartConfigurationError


class TestChartConfig:

    def test_overrides(self, tmp_path):
        """Test overrides win over environment and defaults"""
        config = ChartConfig({'base_url': 'http://feed.test/', 'home_dir': tmp_path})

        assert config.endpoints['chart'] == 'http://feed.test/api/chart'
        assert config.endpoints['search'] == 'http://feed.test/api/search'
        assert config.preferences_path == Path(tmp_path) / 'timeframes.json'

    def test_environment(self, monkeypatch):
        monkeypatch.setenv('PULSE_CHART_MAX_RETRIES', '5')
        monkeypatch.setenv('PULSE_CHART_REFRESH_FACTOR', '2')
        config = ChartConfig()

        assert config.max_retries == 5
        assert config.poll_interval_ms(10000) == 20000

    def test_disabled_polling_stays_disabled(self):
        assert ChartConfig({'refresh_factor': 3}).poll_interval_ms(0) == 0

    @pytest.mark.parametrize('override, setting', [
        ({'request_timeout': 0}, 'request_timeout'),
        ({'max_retries': -1}, 'max_retries'),
        ({'refresh_factor': 0}, 'refresh_factor'),
        ({'log_level': 'CHATTY'}, 'log_level'),
    ])
    def test_validation(self, override, setting):
        with pytest.raises(ChartConfigurationError) as exc_info:
            ChartConfig(override)
        assert exc_info.value.setting == setting

    def test_non_numeric_setting(self):
        with pytest.raises(ChartConfigurationError):
            ChartConfig({'max_retries': 'many'})
