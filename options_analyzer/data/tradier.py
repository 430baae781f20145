"""Tradier API data source.

Fetches the underlying quote and option chains (with Greeks) for a ticker.
Chains for several expirations are fetched concurrently; the analytics
engine only ever sees the fully materialized result.

Setup:
    1. Go to https://developer.tradier.com/
    2. Sign up and create an API token
    3. Pass it via --api-key or the TRADIER_TOKEN / TRADIER_SANDBOX_TOKEN env vars
"""

import re
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import requests

from ..utils.error_handling import (
    AuthenticationError,
    DataSourceError,
    DataValidationError,
    RateLimitError,
    retry_with_backoff,
)
from ..utils.logging_config import get_logger
from .loaders import ChainSnapshot, parse_contracts, parse_quote

logger = get_logger("tradier")

SANDBOX_BASE = "https://sandbox.tradier.com/v1"
PRODUCTION_BASE = "https://api.tradier.com/v1"

TICKER_PATTERN = re.compile(r'^[A-Z]{1,5}$')
OCC_DATE_PATTERN = re.compile(r'(\d{6})')

FALLBACK_FRIDAYS = 8


class TradierAPI:
    """Tradier API client."""

    def __init__(self, api_token: str, sandbox: bool = False, timeout: float = 10.0):
        """Initialize Tradier API client.

        Args:
            api_token: Tradier API token
            sandbox: Use sandbox endpoint
            timeout: Per-request timeout in seconds
        """
        self.api_token = api_token
        self.base_url = SANDBOX_BASE if sandbox else PRODUCTION_BASE
        self.headers = {
            'Authorization': f'Bearer {api_token}',
            'Accept': 'application/json'
        }
        self.sandbox = sandbox
        self.timeout = timeout

    def _get(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """Make GET request to Tradier API.

        Args:
            endpoint: API endpoint (e.g., '/markets/quotes')
            params: Query parameters

        Returns:
            JSON response as dictionary

        Raises:
            AuthenticationError: On HTTP 401
            RateLimitError: On HTTP 429
            DataSourceError: On any other non-200 status, or when the request
                itself failed after retries
        """
        try:
            response = self._request(endpoint, params)
        except requests.RequestException as e:
            logger.error("Request to %s failed: %s", endpoint, e)
            raise DataSourceError(f"Request to {endpoint} failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("API authentication failed. Please check the API key.")
        if response.status_code == 429:
            raise RateLimitError("API rate limit exceeded. Please wait a moment and try again.")
        if response.status_code != 200:
            raise DataSourceError(f"API Error {response.status_code}: {response.text}")

        try:
            return response.json() or {}
        except ValueError as e:
            raise DataSourceError(f"Invalid JSON from {endpoint}: {e}") from e

    @retry_with_backoff(
        max_retries=3,
        exceptions=(requests.ConnectionError, requests.Timeout),
    )
    def _request(self, endpoint: str, params: Optional[Dict]) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        return requests.get(url, headers=self.headers, params=params or {}, timeout=self.timeout)

    def get_quote(self, symbol: str) -> Dict:
        """Get quote for underlying symbol.

        Raises:
            DataSourceError: If the provider returns no quote for the symbol
        """
        data = self._get('/markets/quotes', {'symbols': symbol})
        quotes = (data.get('quotes') or {}).get('quote')

        if isinstance(quotes, list):
            quotes = quotes[0] if quotes else None
        if not quotes:
            raise DataSourceError(
                f"Stock quote not found for {symbol}. Please verify the ticker symbol is correct."
            )
        return quotes

    def get_expirations(self, symbol: str) -> List[str]:
        """Get available option expiration dates (YYYY-MM-DD), empty on failure."""
        try:
            data = self._get('/markets/options/expirations', {'symbol': symbol})
        except DataSourceError as e:
            logger.warning("Failed to fetch expirations for %s: %s", symbol, e)
            return []

        expirations = (data.get('expirations') or {}).get('date') or []
        if isinstance(expirations, str):
            expirations = [expirations]
        return list(expirations)

    def get_option_chain(self, symbol: str, expiration: str) -> List[Dict]:
        """Get option chain with Greeks for one expiration, empty on failure."""
        try:
            data = self._get('/markets/options/chains', {
                'symbol': symbol,
                'expiration': expiration,
                'greeks': 'true'
            })
        except DataSourceError as e:
            logger.warning("Failed to fetch chain for %s %s: %s", symbol, expiration, e)
            return []

        options = (data.get('options') or {}).get('option')
        if not options:
            logger.warning("No options found for %s expiring %s", symbol, expiration)
            return []
        if isinstance(options, dict):
            options = [options]
        return options

    def lookup_symbols(self, underlying: str) -> List[Any]:
        """Look up option symbols for an underlying, empty on failure.

        Entries are OCC symbol strings or mappings, depending on the response shape.
        """
        try:
            data = self._get('/markets/options/lookup', {'underlying': underlying})
        except DataSourceError as e:
            logger.warning("Symbols lookup failed for %s: %s", underlying, e)
            return []

        symbols = data.get('symbols')
        if isinstance(symbols, list):
            entries: List[Any] = []
            for entry in symbols:
                if isinstance(entry, dict) and 'options' in entry:
                    options = entry['options']
                    entries.extend(options if isinstance(options, list) else [options])
                else:
                    entries.append(entry)
            return entries
        if isinstance(symbols, dict) and symbols.get('symbol'):
            symbol = symbols['symbol']
            return symbol if isinstance(symbol, list) else [symbol]
        return []


def validate_ticker(ticker: str) -> str:
    """Normalize and validate a ticker (1-5 letters).

    Raises:
        DataValidationError: For empty or malformed tickers
    """
    normalized = (ticker or '').strip().upper()
    if not normalized:
        raise DataValidationError("Please enter a stock ticker symbol")
    if not TICKER_PATTERN.match(normalized):
        raise DataValidationError("Please enter a valid stock ticker (1-5 letters)")
    return normalized


def upcoming_fridays(today: date, count: int = FALLBACK_FRIDAYS) -> List[str]:
    """Next ``count`` Fridays (YYYY-MM-DD), starting next week when today is a Friday."""
    days_to_friday = (4 - today.weekday()) % 7
    if days_to_friday == 0:
        days_to_friday = 7
    first = today + timedelta(days=days_to_friday)
    return [(first + timedelta(weeks=i)).isoformat() for i in range(count)]


def expirations_from_symbols(symbols: List[Any], limit: int = 5) -> List[str]:
    """Extract unique expirations from OCC symbols (YYMMDD block) or lookup mappings."""
    expirations: List[str] = []
    for entry in symbols:
        expiration = None
        if isinstance(entry, str):
            match = OCC_DATE_PATTERN.search(entry)
            if match:
                yymmdd = match.group(1)
                expiration = f"20{yymmdd[0:2]}-{yymmdd[2:4]}-{yymmdd[4:6]}"
        elif isinstance(entry, dict):
            expiration = entry.get('expiration_date') or entry.get('expiration')

        if expiration and expiration not in expirations:
            expirations.append(expiration)
        if len(expirations) >= limit:
            break
    return expirations


def _fetch_chains(api: TradierAPI, ticker: str, expirations: List[str]) -> List[Dict]:
    """Fetch chains for all expirations concurrently, tagging each record with its expiration."""
    if not expirations:
        return []

    with ThreadPoolExecutor(max_workers=len(expirations)) as executor:
        results = list(executor.map(lambda exp: api.get_option_chain(ticker, exp), expirations))

    records: List[Dict] = []
    for expiration, chain in zip(expirations, results):
        for option in chain:
            record = dict(option)
            record['expiration_date'] = expiration
            records.append(record)
    return records


def fetch_option_chains(
    api: TradierAPI,
    ticker: str,
    max_expirations: int = 5,
    today: date | None = None,
) -> List[Dict]:
    """Fetch raw option records for the nearest expirations.

    Strategy:
        1. Expirations listed by the API (first ``max_expirations``)
        2. If none, the next eight Fridays
        3. If no chain came back, expirations found through the symbols lookup

    Returns:
        Raw option records, each with ``expiration_date`` set
    """
    expirations = api.get_expirations(ticker)[:max_expirations]

    if not expirations:
        expirations = upcoming_fridays(today or date.today())
        logger.info("No expirations from API, trying generated Fridays: %s", expirations)

    records = _fetch_chains(api, ticker, expirations)

    if not records:
        logger.info("No chains found for %s, trying symbols lookup", ticker)
        expirations = expirations_from_symbols(api.lookup_symbols(ticker), limit=max_expirations)
        records = _fetch_chains(api, ticker, expirations)

    logger.info("Fetched %d option records for %s across %d expirations",
                len(records), ticker, len(expirations))
    return records


def fetch_snapshot(api: TradierAPI, ticker: str, max_expirations: int = 5) -> ChainSnapshot:
    """Fetch quote and option chains for one ticker.

    The quote and the chains are fetched in parallel.

    Raises:
        DataValidationError: If the ticker is malformed
        DataSourceError: If the quote is unavailable or no chain was found
    """
    ticker = validate_ticker(ticker)

    with ThreadPoolExecutor(max_workers=2) as executor:
        quote_future = executor.submit(api.get_quote, ticker)
        chains_future = executor.submit(fetch_option_chains, api, ticker, max_expirations)
        quote_record = quote_future.result()
        records = chains_future.result()

    contracts = parse_contracts(records, underlying=ticker)
    if not contracts:
        raise DataSourceError(
            f"No option chains found for {ticker}. This stock may not have options available."
        )

    return ChainSnapshot(parse_quote(quote_record), contracts)
