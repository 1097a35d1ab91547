# backend/price_history/services/market_data/yahoo.py
"""
Yahoo Finance chart API history fetcher.

This module implements the HistoryFetcher interface with a single GET to the
public chart endpoint:

    {chart_api_url}/v8/finance/chart/{symbol}
        ?period1=..&period2=..&interval=1d&events=div|split&includeAdjustedClose=true

Key features:
- One request per symbol, daily bars, splits and dividends together
- Calendar dates computed in exchange-local time (meta.gmtoffset)
- Split-unadjusted close reconstructed from the payload's split events
- The provider's meta blob is kept verbatim and optionally persisted

Limitations:
- Best-effort HTTP: no retry, no backoff. A failed symbol is retried on the
  next sync pass.
- The endpoint is unofficial and undocumented; the payload shape is checked
  and anything unexpected is reported as a FetchError.
"""

import logging
from datetime import date
from typing import Any
from urllib.parse import quote

import requests

from price_history.services.constants import DEFAULT_REQUEST_TIMEOUT, PROVIDER_NAME, SOURCE_YAHOO
from price_history.services.exceptions import FetchError, ProviderUnavailableError
from price_history.services.market_data.base import (
    ChartFetchResult,
    DividendEvent,
    HistoryFetcher,
    PriceRecord,
    SplitEvent,
)
from price_history.services.splits import make_split, parse_ratio_text, split_unadjusted_close
from price_history.services.storage.metadata import ProviderMetadataStore
from price_history.utils.date_utils import day_bounds_timestamps, timestamp_to_date, utc_now_iso
from price_history.utils.numbers import to_decimal, to_int

logger = logging.getLogger(__name__)

DEFAULT_CHART_API_URL = "https://query1.finance.yahoo.com"
CHART_PATH = "/v8/finance/chart/"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; portfolio-price-history)"


def _value_at(values: Any, index: int) -> Any:
    """Element at index of a payload array, or None when absent."""
    if not isinstance(values, list) or index >= len(values):
        return None
    return values[index]


class YahooChartFetcher(HistoryFetcher):
    """
    Daily history from the Yahoo Finance chart API.

    Configuration:
        base_url: Chart API origin (default: https://query1.finance.yahoo.com)
        timeout: Request timeout in seconds (default: 10)
        user_agent: User-Agent header sent with each request
        session: requests.Session to use (one is created when omitted)
        metadata_store: Where to persist the provider meta blob (optional)

    Example:
        fetcher = YahooChartFetcher(timeout=15)
        result = fetcher.fetch_history(
            "2330.TW", "2330:TWSE",
            date(2024, 1, 1), date(2024, 12, 31),
        )
        print(f"Fetched {result.days_fetched} days of data")
    """

    def __init__(
            self,
            base_url: str = DEFAULT_CHART_API_URL,
            timeout: float = DEFAULT_REQUEST_TIMEOUT,
            user_agent: str | None = None,
            session: requests.Session | None = None,
            metadata_store: ProviderMetadataStore | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
            "Accept": "application/json",
        }
        self._metadata_store = metadata_store
        logger.info(f"YahooChartFetcher initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    # =========================================================================
    # FETCH
    # =========================================================================

    def fetch_history(
            self,
            provider_symbol: str,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> ChartFetchResult:
        period1, period2 = day_bounds_timestamps(start_date, end_date)
        url = f"{self._base_url}{CHART_PATH}{quote(provider_symbol, safe='')}"
        params = {
            "period1": period1,
            "period2": period2,
            "interval": "1d",
            "events": "div|split",
            "includeAdjustedClose": "true",
        }

        logger.debug(f"Fetching history for {provider_symbol}: {start_date} to {end_date}")

        try:
            response = self._session.get(
                url,
                params=params,
                headers=self._headers,
                timeout=self._timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"Chart request for {provider_symbol} failed: {e}")
            raise ProviderUnavailableError(self.name, provider_symbol, str(e)) from e
        except requests.RequestException as e:
            logger.error(f"Chart request for {provider_symbol} failed: {e}")
            raise FetchError(self.name, provider_symbol, str(e)) from e

        if not response.text or not response.text.strip():
            raise FetchError(
                self.name, provider_symbol, "empty response body",
                status_code=response.status_code,
            )

        if not response.ok:
            description = self._error_description(response)
            reason = f"HTTP {response.status_code}"
            if description:
                reason = f"{reason}: {description}"
            raise FetchError(self.name, provider_symbol, reason, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(self.name, provider_symbol, "response is not valid JSON") from e

        try:
            result = self._decode(payload, provider_symbol, symbol, start_date, end_date)
        except (TypeError, ValueError, AttributeError, OverflowError) as e:
            logger.error(f"Chart payload for {provider_symbol} does not match the expected schema: {e}")
            raise FetchError(self.name, provider_symbol, f"unexpected payload shape: {e}") from e

        if self._metadata_store is not None and result.meta:
            self._metadata_store.save(symbol, result.meta)

        logger.debug(
            f"Fetched {result.days_fetched} days, {len(result.splits)} splits and "
            f"{len(result.dividends)} dividends for {provider_symbol}"
        )
        return result

    # =========================================================================
    # PAYLOAD DECODING
    # =========================================================================

    @staticmethod
    def _error_description(response: requests.Response) -> str | None:
        """Pull chart.error.description out of an error response, if present."""
        try:
            error = (response.json().get("chart") or {}).get("error") or {}
        except (ValueError, AttributeError):
            return None
        if not isinstance(error, dict):
            return None
        return error.get("description") or error.get("code")

    def _decode(
            self,
            payload: Any,
            provider_symbol: str,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> ChartFetchResult:
        """Decode a chart payload into a ChartFetchResult."""
        chart = payload.get("chart") if isinstance(payload, dict) else None
        if not isinstance(chart, dict):
            raise FetchError(self.name, provider_symbol, "payload has no chart object")

        error = chart.get("error")
        if error:
            description = error.get("description") if isinstance(error, dict) else str(error)
            raise FetchError(self.name, provider_symbol, description or "provider reported an error")

        results = chart.get("result")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise FetchError(self.name, provider_symbol, "payload has no result")
        item = results[0]

        indicators = item.get("indicators")
        if not isinstance(indicators, dict):
            raise FetchError(self.name, provider_symbol, "payload has no indicators")
        quotes = indicators.get("quote")
        if not isinstance(quotes, list) or not quotes or not isinstance(quotes[0], (dict, type(None))):
            raise FetchError(self.name, provider_symbol, "payload has no quote")

        meta = item.get("meta") if isinstance(item.get("meta"), dict) else {}
        gmtoffset = to_int(meta.get("gmtoffset")) or 0
        currency = meta.get("currency")
        events = item.get("events") if isinstance(item.get("events"), dict) else {}

        splits = self._decode_splits(events.get("splits"), gmtoffset)
        dividends = self._decode_dividends(
            events.get("dividends"), gmtoffset, currency or "", start_date, end_date
        )
        prices = self._decode_prices(
            item.get("timestamp"),
            quotes[0] or {},
            indicators.get("adjclose"),
            gmtoffset,
            splits,
            symbol,
            start_date,
            end_date,
        )

        return ChartFetchResult(
            symbol=symbol,
            provider_symbol=provider_symbol,
            start_date=start_date,
            end_date=end_date,
            prices=prices,
            dividends=dividends,
            splits=splits,
            currency=currency,
            meta=meta,
        )

    @staticmethod
    def _decode_prices(
            timestamps: Any,
            quote_block: dict[str, Any],
            adjclose_blocks: Any,
            gmtoffset: int,
            splits: list[SplitEvent],
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> list[PriceRecord]:
        """Build records for in-range timestamps that carry a close, oldest first."""
        if not isinstance(timestamps, list):
            return []

        adjclose: Any = None
        if isinstance(adjclose_blocks, list) and adjclose_blocks and isinstance(adjclose_blocks[0], dict):
            adjclose = adjclose_blocks[0].get("adjclose")

        stamp = utc_now_iso()
        by_date: dict[date, PriceRecord] = {}

        for index, timestamp in enumerate(timestamps):
            if timestamp is None:
                continue
            record_date = timestamp_to_date(timestamp, gmtoffset)
            if record_date < start_date or record_date > end_date:
                continue

            close = to_decimal(_value_at(quote_block.get("close"), index))
            if close is None:
                continue

            # The provider sometimes repeats the live session as an extra bar; the last one wins
            by_date[record_date] = PriceRecord(
                symbol=symbol,
                date=record_date,
                close=close,
                open=to_decimal(_value_at(quote_block.get("open"), index)),
                high=to_decimal(_value_at(quote_block.get("high"), index)),
                low=to_decimal(_value_at(quote_block.get("low"), index)),
                volume=to_int(_value_at(quote_block.get("volume"), index)),
                adjusted_close=to_decimal(_value_at(adjclose, index)),
                split_unadjusted_close=split_unadjusted_close(close, record_date, splits),
                source=SOURCE_YAHOO,
                updated_at=stamp,
            )

        return sorted(by_date.values(), key=lambda r: r.date)

    @staticmethod
    def _decode_splits(raw: Any, gmtoffset: int) -> list[SplitEvent]:
        """Split events from the payload, oldest first."""
        if not isinstance(raw, dict):
            return []

        splits: dict[date, SplitEvent] = {}
        for event in raw.values():
            if not isinstance(event, dict) or event.get("date") is None:
                continue
            split_date = timestamp_to_date(event["date"], gmtoffset)
            numerator, denominator = event.get("numerator"), event.get("denominator")
            if numerator is None or denominator is None:
                numerator, denominator = parse_ratio_text(event.get("splitRatio"))
            splits[split_date] = make_split(split_date, numerator, denominator)

        return sorted(splits.values(), key=lambda s: s.date)

    @staticmethod
    def _decode_dividends(
            raw: Any,
            gmtoffset: int,
            currency: str,
            start_date: date,
            end_date: date,
    ) -> list[DividendEvent]:
        """In-range dividends, one per ex-date, newest first."""
        if not isinstance(raw, dict):
            return []

        stamp = utc_now_iso()
        dividends: dict[date, DividendEvent] = {}
        for event in raw.values():
            if not isinstance(event, dict) or event.get("date") is None:
                continue
            amount = to_decimal(event.get("amount"))
            if amount is None:
                continue
            ex_date = timestamp_to_date(event["date"], gmtoffset)
            if ex_date < start_date or ex_date > end_date:
                continue
            dividends[ex_date] = DividendEvent(
                ex_date=ex_date,
                amount=amount,
                currency=currency,
                updated_at=stamp,
            )

        return sorted(dividends.values(), key=lambda d: d.ex_date, reverse=True)
