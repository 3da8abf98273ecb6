# pulse_chart/data/rest_client.py
"""
REST client for the chart data feed
Handles candle, quote-snapshot and instrument-search requests
Retries 429/5xx and connection failures through a urllib3 Retry adapter
All candle timestamps are unix seconds (UTC)
"""
import logging
import time
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import ChartConfig, get_config
from ..exceptions import (
    ChartAPIError, ChartRateLimitError, ChartNetworkError, ChartDataError
)
from ..calculations.sessions import is_regular_hours
from .models import Candle, QuoteSnapshot, InstrumentMatch
from .timeframes import INTRADAY_INTERVALS, is_crypto_symbol

logger = logging.getLogger(__name__)

MIN_CANDLES_FOR_WICK_CLIP = 10
WICK_BODY_MULTIPLE = 10
RETRY_STATUS_CODES = [429, 500, 502, 503, 504]


def clip_extreme_wicks(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Clip wicks longer than 10x the median non-zero body.

    Thin pre/post-market prints produce single-tick spikes that flatten the
    rest of an intraday chart.
    """
    if len(frame) < MIN_CANDLES_FOR_WICK_CLIP:
        return frame

    bodies = (frame['close'] - frame['open']).abs().to_numpy()
    bodies = np.sort(bodies[bodies > 0])
    median_body = bodies[len(bodies) // 2] if len(bodies) else 1.0
    max_wick = median_body * WICK_BODY_MULTIPLE

    body_high = frame[['open', 'close']].max(axis=1)
    body_low = frame[['open', 'close']].min(axis=1)
    return frame.assign(
        high=np.minimum(frame['high'], body_high + max_wick),
        low=np.maximum(frame['low'], body_low - max_wick),
    )


def candles_from_records(records: List[Dict[str, Any]],
                         regular_hours_only: bool = False,
                         clip_wicks: bool = False) -> List[Candle]:
    """
    Build an ordered, duplicate-free candle list from feed records.

    Records without a close are dropped; missing open/high/low fall back to
    the close and missing volume to 0. Later duplicates of a timestamp win.

    Raises:
        ChartDataError: required columns are absent
    """
    if not records:
        return []

    frame = pd.DataFrame.from_records(records)
    missing = {'time', 'close'} - set(frame.columns)
    if missing:
        raise ChartDataError(f"Candle payload missing columns: {sorted(missing)}",
                             field=','.join(sorted(missing)))

    for column in ['open', 'high', 'low']:
        if column not in frame.columns:
            frame[column] = frame['close']
    if 'volume' not in frame.columns:
        frame['volume'] = 0

    frame = frame.dropna(subset=['time', 'close']).copy()
    for column in ['open', 'high', 'low']:
        frame[column] = frame[column].fillna(frame['close'])
    frame['volume'] = frame['volume'].fillna(0)

    frame = frame.astype({'time': 'int64', 'volume': 'int64',
                          'open': 'float64', 'high': 'float64',
                          'low': 'float64', 'close': 'float64'})
    frame = frame.sort_values('time').drop_duplicates(subset='time', keep='last')

    if regular_hours_only:
        frame = frame[frame['time'].map(is_regular_hours).astype(bool)]
    if clip_wicks:
        frame = clip_extreme_wicks(frame)

    return [
        Candle(int(row.time), float(row.open), float(row.high),
               float(row.low), float(row.close), int(row.volume))
        for row in frame.itertuples(index=False)
    ]


class ChartRESTClient:
    """
    REST client for the chart data feed

    Every public call either returns parsed data or raises a ChartError
    subclass; callers decide how to degrade.
    """

    def __init__(self, config: Optional[ChartConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or get_config()
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})

        # Retries live in the transport; Retry-After is honoured on 429/503
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.retry_base_delay,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=["GET"],
            respect_retry_after_header=True,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET through the retrying adapter and map the final outcome.

        By the time a response reaches here the adapter has already spent its
        retries, so any non-200 status is final.
        """
        try:
            response = self.session.get(url, params=params,
                                        timeout=self.config.request_timeout)
        except requests.exceptions.Timeout as e:
            raise ChartNetworkError(f"Request timed out: {e}", url=url)
        except requests.exceptions.ConnectionError as e:
            raise ChartNetworkError(f"Feed unreachable: {e}", url=url)
        except requests.exceptions.RetryError as e:
            raise ChartNetworkError(f"Retries exhausted: {e}", url=url)

        if response.status_code == 200:
            try:
                return response.json()
            except ValueError as e:
                raise ChartDataError(f"Invalid JSON from {url}: {e}")

        if response.status_code == 429:
            retry_after = response.headers.get('Retry-After')
            error = ChartRateLimitError(
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                url=url)
        else:
            error = ChartAPIError(f"Feed returned HTTP {response.status_code}",
                                  status_code=response.status_code,
                                  response_body=response.text[:200], url=url)
        logger.warning(f"{error} ({url})")
        raise error

    def fetch_candles(self, symbol: str, range_: str, interval: str,
                      include_extended_hours: bool = False,
                      bypass_cache: bool = False) -> List[Candle]:
        """
        Fetch candles for one timeframe.

        Args:
            symbol: Instrument symbol, e.g. AAPL or BTC-USD
            range_: Source range ('5d', '1mo', 'max', ...)
            interval: Source interval ('1m', '1h', '1d', ...)
            include_extended_hours: Ask for pre/post-market candles
            bypass_cache: Add a cache-busting parameter (used by polls)

        Returns:
            Candles sorted by time, no duplicate timestamps
        """
        params = {
            'range': range_,
            'interval': interval,
            'includePrePost': 'true' if include_extended_hours else 'false',
        }
        if bypass_cache:
            params['_t'] = int(time.time() * 1000)

        url = f"{self.config.endpoints['chart']}/{requests.utils.quote(symbol, safe='')}"
        payload = self._get_json(url, params)

        records = payload.get('data') if isinstance(payload, dict) else payload
        if records is None:
            raise ChartDataError(f"No candle data in response for {symbol}", field='data')
        if not isinstance(records, list):
            raise ChartDataError(f"Candle data for {symbol} is not a list", field='data')

        intraday_stock = interval in INTRADAY_INTERVALS and not (
            is_crypto_symbol(symbol) or symbol.upper().endswith('=F'))
        candles = candles_from_records(
            records,
            regular_hours_only=intraday_stock and not include_extended_hours,
            clip_wicks=intraday_stock,
        )
        logger.debug(f"Fetched {len(candles)} candles for {symbol} {range_}/{interval}")
        return candles

    def fetch_quote_snapshot(self, symbol: str) -> QuoteSnapshot:
        url = f"{self.config.endpoints['quote']}/{requests.utils.quote(symbol, safe='')}"
        payload = self._get_json(url)
        if not isinstance(payload, dict) or payload.get('price') is None:
            raise ChartDataError(f"Quote for {symbol} has no price", field='price')

        return QuoteSnapshot(
            symbol=payload.get('symbol') or symbol,
            price=float(payload['price']),
            change=float(payload.get('change') or 0.0),
            change_percent=float(payload.get('changePercent') or 0.0),
            name=payload.get('name'),
            volume=payload.get('volume'),
        )

    def search_instruments(self, query: str) -> List[InstrumentMatch]:
        """Symbol search for the compare picker; blank queries short-circuit"""
        query = (query or '').strip()
        if not query:
            return []

        payload = self._get_json(self.config.endpoints['search'], {'q': query})
        results = payload.get('results', []) if isinstance(payload, dict) else []
        return [
            InstrumentMatch(
                symbol=item['symbol'],
                name=item.get('name') or item['symbol'],
                type=item.get('type'),
                exchange=item.get('exchange'),
            )
            for item in results
            if isinstance(item, dict) and item.get('symbol')
        ]
