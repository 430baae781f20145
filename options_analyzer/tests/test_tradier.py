"""Tests for the Tradier data source with the HTTP layer mocked out."""

import pytest
import requests
from datetime import date
from unittest.mock import MagicMock, patch

from options_analyzer.data.tradier import (
    PRODUCTION_BASE,
    SANDBOX_BASE,
    TradierAPI,
    expirations_from_symbols,
    fetch_option_chains,
    fetch_snapshot,
    upcoming_fridays,
    validate_ticker,
)
from options_analyzer.utils.error_handling import (
    AuthenticationError,
    DataSourceError,
    DataValidationError,
    RateLimitError,
)

REQUESTS_GET = 'options_analyzer.data.tradier.requests.get'
SLEEP = 'options_analyzer.utils.error_handling.time.sleep'


def make_response(payload=None, status_code=200, text=''):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload
    return response


def option(symbol, option_type='call', strike=100.0, volume=10):
    return {
        'symbol': symbol,
        'root_symbol': 'XYZ',
        'option_type': option_type,
        'strike': strike,
        'bid': 1.0,
        'ask': 1.2,
        'last': 1.1,
        'volume': volume,
        'open_interest': 50,
        'greeks': {'delta': 0.5 if option_type == 'call' else -0.5, 'smv_vol': 0.3},
    }


def router(routes):
    """requests.get replacement answering by endpoint suffix.

    Values are payloads, responses, or callables taking the query params.
    """
    def fake_get(url, headers=None, params=None, timeout=None):
        for suffix, answer in routes.items():
            if url.endswith(suffix):
                if callable(answer):
                    answer = answer(params)
                if isinstance(answer, MagicMock):
                    return answer
                return make_response(answer)
        return make_response(status_code=404, text='not found')
    return fake_get


class TestTradierAPI:
    """Test suite for the TradierAPI client."""

    @pytest.fixture
    def api(self):
        return TradierAPI("token-123")

    def test_base_urls(self):
        assert TradierAPI("t").base_url == PRODUCTION_BASE
        assert TradierAPI("t", sandbox=True).base_url == SANDBOX_BASE

    def test_auth_header_sent(self, api):
        with patch(REQUESTS_GET, return_value=make_response({'quotes': {'quote': {'symbol': 'XYZ'}}})) as get:
            api.get_quote('XYZ')

        _, kwargs = get.call_args
        assert kwargs['headers']['Authorization'] == 'Bearer token-123'
        assert kwargs['params'] == {'symbols': 'XYZ'}
        assert kwargs['timeout'] == 10.0

    def test_get_quote(self, api):
        payload = {'quotes': {'quote': {'symbol': 'XYZ', 'last': 101.5}}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.get_quote('XYZ')['last'] == 101.5

    def test_get_quote_list_shape(self, api):
        payload = {'quotes': {'quote': [{'symbol': 'XYZ', 'last': 1.0}, {'symbol': 'ABC'}]}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.get_quote('XYZ')['symbol'] == 'XYZ'

    def test_get_quote_unmatched_symbol(self, api):
        payload = {'quotes': {'unmatched_symbols': {'symbol': 'NOPE'}}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            with pytest.raises(DataSourceError, match="Stock quote not found"):
                api.get_quote('NOPE')

    @pytest.mark.parametrize("status,error", [
        (401, AuthenticationError),
        (429, RateLimitError),
        (500, DataSourceError),
    ])
    def test_status_mapping(self, api, status, error):
        with patch(REQUESTS_GET, return_value=make_response(status_code=status, text='boom')):
            with pytest.raises(error):
                api.get_quote('XYZ')

    def test_retries_connection_errors(self, api):
        payload = {'quotes': {'quote': {'symbol': 'XYZ'}}}
        responses = [requests.ConnectionError("reset"), make_response(payload)]

        with patch(REQUESTS_GET, side_effect=responses) as get, patch(SLEEP) as sleep:
            quote = api.get_quote('XYZ')

        assert quote['symbol'] == 'XYZ'
        assert get.call_count == 2
        sleep.assert_called_once_with(1.0)

    def test_gives_up_after_three_attempts(self, api):
        with patch(REQUESTS_GET, side_effect=requests.Timeout("slow")) as get, patch(SLEEP):
            with pytest.raises(DataSourceError, match="slow") as excinfo:
                api.get_quote('XYZ')

        assert get.call_count == 3
        assert isinstance(excinfo.value.__cause__, requests.Timeout)

    def test_other_request_errors_wrapped_without_retry(self, api):
        with patch(REQUESTS_GET, side_effect=requests.TooManyRedirects("loop")) as get, patch(SLEEP):
            with pytest.raises(DataSourceError, match="loop"):
                api.get_quote('XYZ')

        assert get.call_count == 1

    def test_expirations_connection_failure_returns_empty(self, api):
        with patch(REQUESTS_GET, side_effect=requests.ConnectionError("down")), patch(SLEEP):
            assert api.get_expirations('XYZ') == []

    def test_status_errors_not_retried(self, api):
        with patch(REQUESTS_GET, return_value=make_response(status_code=401)) as get, patch(SLEEP):
            with pytest.raises(AuthenticationError):
                api.get_quote('XYZ')

        assert get.call_count == 1

    def test_expirations_list(self, api):
        payload = {'expirations': {'date': ['2025-03-21', '2025-03-28']}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.get_expirations('XYZ') == ['2025-03-21', '2025-03-28']

    def test_expirations_single_value(self, api):
        payload = {'expirations': {'date': '2025-03-21'}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.get_expirations('XYZ') == ['2025-03-21']

    @pytest.mark.parametrize("payload", [{'expirations': None}, {}, None])
    def test_expirations_empty(self, api, payload):
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.get_expirations('XYZ') == []

    def test_expirations_error_returns_empty(self, api):
        with patch(REQUESTS_GET, return_value=make_response(status_code=500)):
            assert api.get_expirations('XYZ') == []

    def test_chain_single_option_wrapped(self, api):
        payload = {'options': {'option': option('XYZ250321C00100000')}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            chain = api.get_option_chain('XYZ', '2025-03-21')

        assert len(chain) == 1
        assert chain[0]['symbol'] == 'XYZ250321C00100000'

    def test_chain_requests_greeks(self, api):
        with patch(REQUESTS_GET, return_value=make_response({'options': None})) as get:
            assert api.get_option_chain('XYZ', '2025-03-21') == []

        _, kwargs = get.call_args
        assert kwargs['params']['greeks'] == 'true'
        assert kwargs['params']['expiration'] == '2025-03-21'

    def test_lookup_symbols_nested(self, api):
        payload = {'symbols': [{'rootSymbol': 'XYZ', 'options': ['XYZ250321C00100000', 'XYZ250328P00095000']}]}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.lookup_symbols('XYZ') == ['XYZ250321C00100000', 'XYZ250328P00095000']

    def test_lookup_symbols_flat(self, api):
        payload = {'symbols': {'symbol': 'XYZ250321C00100000'}}
        with patch(REQUESTS_GET, return_value=make_response(payload)):
            assert api.lookup_symbols('XYZ') == ['XYZ250321C00100000']


class TestHelpers:
    """Test suite for ticker and expiration helpers."""

    @pytest.mark.parametrize("raw,expected", [("spy", "SPY"), ("  qqq ", "QQQ"), ("A", "A")])
    def test_validate_ticker(self, raw, expected):
        assert validate_ticker(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "TOOLONG", "BRK.B", "123"])
    def test_validate_ticker_rejects(self, raw):
        with pytest.raises(DataValidationError):
            validate_ticker(raw)

    def test_upcoming_fridays_from_monday(self):
        fridays = upcoming_fridays(date(2025, 3, 17))
        assert fridays[0] == '2025-03-21'
        assert fridays[1] == '2025-03-28'
        assert len(fridays) == 8

    def test_upcoming_fridays_from_friday(self):
        assert upcoming_fridays(date(2025, 3, 21), count=1) == ['2025-03-28']

    def test_upcoming_fridays_from_saturday(self):
        assert upcoming_fridays(date(2025, 3, 22), count=1) == ['2025-03-28']

    def test_expirations_from_occ_symbols(self):
        symbols = ['XYZ250321C00100000', 'XYZ250321P00095000', 'XYZ250328C00100000']
        assert expirations_from_symbols(symbols) == ['2025-03-21', '2025-03-28']

    def test_expirations_from_mappings_limited(self):
        symbols = [{'expiration_date': f'2025-04-{d:02d}'} for d in (4, 11, 17, 25)]
        assert expirations_from_symbols(symbols, limit=2) == ['2025-04-04', '2025-04-11']


class TestFetchOptionChains:
    """Test suite for the chain fetch strategy."""

    def test_listed_expirations_capped(self):
        listed = ['2025-03-21', '2025-03-28', '2025-04-04']
        routes = {
            '/expirations': {'expirations': {'date': listed}},
            '/chains': lambda params: {'options': {'option': [option(f"XYZ-{params['expiration']}")]}},
        }
        with patch(REQUESTS_GET, side_effect=router(routes)):
            records = fetch_option_chains(TradierAPI('t'), 'XYZ', max_expirations=2)

        assert [r['expiration_date'] for r in records] == ['2025-03-21', '2025-03-28']
        assert records[0]['symbol'] == 'XYZ-2025-03-21'

    def test_falls_back_to_fridays(self):
        requested = []

        def chains(params):
            requested.append(params['expiration'])
            if params['expiration'] == '2025-03-28':
                return {'options': {'option': option('XYZ250328C00100000')}}
            return {'options': None}

        routes = {'/expirations': {'expirations': None}, '/chains': chains}
        with patch(REQUESTS_GET, side_effect=router(routes)):
            records = fetch_option_chains(TradierAPI('t'), 'XYZ', today=date(2025, 3, 17))

        assert sorted(requested) == upcoming_fridays(date(2025, 3, 17))
        assert [r['symbol'] for r in records] == ['XYZ250328C00100000']

    def test_falls_back_to_symbols_lookup(self):
        def chains(params):
            if params['expiration'] == '2025-03-20':
                return {'options': {'option': option('XYZ250320C00100000')}}
            return {'options': None}

        routes = {
            '/expirations': {'expirations': None},
            '/lookup': {'symbols': [{'options': ['XYZ250320C00100000']}]},
            '/chains': chains,
        }
        with patch(REQUESTS_GET, side_effect=router(routes)):
            records = fetch_option_chains(TradierAPI('t'), 'XYZ', today=date(2025, 3, 17))

        assert len(records) == 1
        assert records[0]['expiration_date'] == '2025-03-20'

    def test_nothing_found(self):
        routes = {'/expirations': {}, '/lookup': {}, '/chains': {'options': None}}
        with patch(REQUESTS_GET, side_effect=router(routes)):
            assert fetch_option_chains(TradierAPI('t'), 'XYZ', today=date(2025, 3, 17)) == []


class TestFetchSnapshot:
    """Test suite for fetch_snapshot."""

    def test_snapshot(self):
        routes = {
            '/quotes': {'quotes': {'quote': {'symbol': 'XYZ', 'last': 100.0, 'prevclose': 99.0}}},
            '/expirations': {'expirations': {'date': ['2025-03-21']}},
            '/chains': {'options': {'option': [
                option('XYZ250321C00100000'),
                option('XYZ250321P00100000', 'put'),
            ]}},
        }
        with patch(REQUESTS_GET, side_effect=router(routes)):
            snapshot = fetch_snapshot(TradierAPI('t'), ' xyz ')

        assert snapshot.ticker == 'XYZ'
        assert snapshot.spot_price == 100.0
        assert [c.option_type for c in snapshot.contracts] == ['call', 'put']
        assert snapshot.contracts[0].expiration == date(2025, 3, 21)
        assert snapshot.contracts[0].greeks.smv_vol == 0.3

    def test_invalid_ticker_makes_no_request(self):
        with patch(REQUESTS_GET) as get:
            with pytest.raises(DataValidationError):
                fetch_snapshot(TradierAPI('t'), 'NOT A TICKER')
        get.assert_not_called()

    def test_no_chains(self):
        routes = {
            '/quotes': {'quotes': {'quote': {'symbol': 'XYZ', 'last': 100.0}}},
            '/expirations': {'expirations': {'date': ['2025-03-21']}},
            '/lookup': {'symbols': None},
            '/chains': {'options': None},
        }
        with patch(REQUESTS_GET, side_effect=router(routes)):
            with pytest.raises(DataSourceError, match="No option chains found"):
                fetch_snapshot(TradierAPI('t'), 'XYZ')

    def test_missing_quote(self):
        routes = {
            '/quotes': {'quotes': {}},
            '/expirations': {'expirations': {'date': ['2025-03-21']}},
            '/chains': {'options': {'option': option('XYZ250321C00100000')}},
        }
        with patch(REQUESTS_GET, side_effect=router(routes)):
            with pytest.raises(DataSourceError, match="Stock quote not found"):
                fetch_snapshot(TradierAPI('t'), 'XYZ')
