"""Unit tests for the enrichment pass."""

import logging

import pytest
from datetime import date, datetime

from options_analyzer.analytics.enrichment import analyze_chain, enrich_contract
from options_analyzer.data.loaders import parse_contract
from options_analyzer.models.contract import OptionContract, ProviderGreeks
from options_analyzer.models.quote import Quote

NOW = datetime(2025, 2, 19, 12, 0)


def make_contract(symbol, option_type="call", strike=95.0, last=7.0, greeks=None, expiration=None):
    return OptionContract(
        symbol=symbol,
        underlying="XYZ",
        strike=strike,
        option_type=option_type,
        expiration=expiration or date(2025, 3, 21),
        bid=last - 0.1 if last else None,
        ask=last + 0.1 if last else None,
        last=last,
        volume=100,
        greeks=greeks,
    )


class TestEnrichContract:
    """Test suite for enrich_contract."""

    def test_derived_metrics(self):
        enriched = enrich_contract(make_contract("C95"), 100.0, NOW)

        assert enriched.days_to_expiry == 30
        assert enriched.moneyness == pytest.approx(0.05)
        assert enriched.intrinsic_value == pytest.approx(5.0)
        assert enriched.time_value == pytest.approx(2.0)
        assert enriched.break_even == pytest.approx(102.0)
        assert enriched.greeks_score is None

    def test_provider_greeks_used(self):
        block = ProviderGreeks(delta=0.62, gamma=0.03, theta=-0.04, vega=0.11, smv_vol=0.25, mid_iv=0.3)
        enriched = enrich_contract(make_contract("C95", greeks=block), 100.0, NOW)

        assert enriched.greeks.source == "provider"
        assert enriched.greeks.delta == 0.62
        assert enriched.greeks.implied_vol == 0.25

    def test_empty_provider_block_wins_over_estimate(self):
        """A supplied but empty block means provider Greeks of zero, not an estimate."""
        contract = parse_contract({
            'symbol': 'C95', 'underlying': 'XYZ', 'option_type': 'call', 'strike': 95.0,
            'expiration': '2025-03-21', 'last': 7.0, 'greeks': {},
        })
        enriched = enrich_contract(contract, 100.0, NOW)

        assert enriched.greeks.source == "provider"
        assert enriched.greeks.delta == 0.0
        assert enriched.greeks.gamma == 0.0
        assert enriched.greeks.implied_vol == 0.0

    def test_estimated_when_provider_missing(self):
        enriched = enrich_contract(make_contract("C95"), 100.0, NOW)

        assert enriched.greeks.source == "estimated"
        assert 0.0 < enriched.greeks.delta < 1.0
        assert enriched.greeks.gamma > 0
        assert enriched.greeks.theta < 0
        assert enriched.greeks.vega > 0

    def test_no_spot_gives_placeholder(self):
        enriched = enrich_contract(make_contract("C95"), 0.0, NOW)

        assert enriched.greeks.source == "none"
        assert enriched.greeks.delta == 0.0
        assert enriched.moneyness == 0.0
        assert enriched.intrinsic_value == 0.0
        assert enriched.time_value == 0.0

    def test_expired_gives_placeholder(self):
        contract = make_contract("C95", expiration=date(2025, 2, 1))
        enriched = enrich_contract(contract, 100.0, NOW)

        assert enriched.days_to_expiry < 0
        assert enriched.greeks.source == "none"

    def test_no_last_trade(self):
        """Without a last trade the metrics degrade to zero but Greeks still use the mid."""
        contract = OptionContract(
            symbol="C95",
            underlying="XYZ",
            strike=95.0,
            option_type="call",
            expiration=date(2025, 3, 21),
            bid=6.9,
            ask=7.1,
        )
        enriched = enrich_contract(contract, 100.0, NOW)

        assert enriched.time_value == 0.0
        assert enriched.break_even == 0.0
        assert enriched.greeks.source == "estimated"
        assert enriched.greeks.delta > 0

    def test_raw_contract_untouched(self):
        contract = make_contract("C95")
        enriched = enrich_contract(contract, 100.0, NOW)

        assert enriched.contract is contract
        assert contract.greeks is None


class TestAnalyzeChain:
    """Test suite for analyze_chain."""

    @pytest.fixture
    def chain(self):
        return [
            make_contract("C95", greeks=ProviderGreeks(delta=0.7, gamma=0.02, theta=-0.03, vega=0.1)),
            make_contract("P105", option_type="put", strike=105.0, last=6.5),
            make_contract("C110", strike=110.0, last=0.8),
        ]

    def test_input_order_kept(self, chain):
        enriched = analyze_chain(Quote(symbol="XYZ", last=100.0), chain, now=NOW)

        assert [c.symbol for c in enriched] == ["C95", "P105", "C110"]

    def test_mixed_sources(self, chain):
        enriched = analyze_chain(Quote(symbol="XYZ", last=100.0), chain, now=NOW)

        assert [c.greeks.source for c in enriched] == ["provider", "estimated", "estimated"]
        assert enriched[1].greeks.delta < 0

    def test_single_reference_time(self, chain):
        """Every contract of one expiration gets the same day count."""
        enriched = analyze_chain(Quote(symbol="XYZ", last=100.0), chain, now=NOW)

        assert {c.days_to_expiry for c in enriched} == {30}

    def test_missing_quote_degrades_to_zero_spot(self, chain, caplog):
        with caplog.at_level(logging.WARNING, logger="options_analyzer"):
            enriched = analyze_chain(None, chain, now=NOW)

        assert [c.greeks.source for c in enriched] == ["provider", "none", "none"]
        assert all(c.moneyness == 0.0 for c in enriched)
        assert "No underlying price" in caplog.text

    def test_quote_without_last(self, chain):
        enriched = analyze_chain(Quote(symbol="XYZ"), chain, now=NOW)
        assert enriched[2].greeks.source == "none"

    def test_empty_chain(self):
        assert analyze_chain(Quote(symbol="XYZ", last=100.0), [], now=NOW) == []

    def test_logs_source_counts(self, chain, caplog):
        with caplog.at_level(logging.INFO, logger="options_analyzer"):
            analyze_chain(Quote(symbol="XYZ", last=100.0), chain, now=NOW)

        assert "1 provider, 2 estimated, 0 none" in caplog.text

    def test_default_reference_time(self):
        contract = make_contract("FAR", expiration=date(2099, 1, 16))
        enriched = analyze_chain(Quote(symbol="XYZ", last=100.0), [contract])

        assert enriched[0].days_to_expiry > 365
