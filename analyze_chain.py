#!/usr/bin/env python3
"""Analyze an option chain: enrich, recommend, filter and sort.

Usage:
    # Live data from Tradier
    export TRADIER_TOKEN="your_token"
    python3 analyze_chain.py SPY --outlook bullish --sort-by greeks_score

    # Offline chain from CSV (see generate_sample_data.py)
    python3 analyze_chain.py --csv data/SPY_sample_options.csv --spot 560
"""

import argparse
import os
import sys
from pathlib import Path

from options_analyzer.analytics.enrichment import analyze_chain
from options_analyzer.data.filters import (
    ChainFilter,
    filter_and_sort,
    list_expirations,
    volume_leaders,
)
from options_analyzer.data.loaders import (
    ChainSnapshot,
    load_contracts_from_csv,
    save_contracts_to_csv,
)
from options_analyzer.data.tradier import TradierAPI, fetch_snapshot
from options_analyzer.models.quote import Quote
from options_analyzer.output.console import (
    print_chain_table,
    print_expiration_notice,
    print_optimal_contracts,
    print_quote_header,
    print_volume_leaders,
)
from options_analyzer.scoring.scorer import ScoringConfig, parse_outlook
from options_analyzer.scoring.selection import SelectionConfig, select_optimal
from options_analyzer.utils.config import load_params, section
from options_analyzer.utils.error_handling import AnalyzerError, ConfigurationError
from options_analyzer.utils.logging_config import LOG_LEVELS, get_logger, setup_logging

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Analyze option chains with Greeks-based scoring',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument('tickers', nargs='*', help='Stock symbols (e.g., SPY QQQ)')
    parser.add_argument('--csv', help='Load the chain from a CSV file instead of Tradier')
    parser.add_argument('--spot', type=float, help='Underlying price when loading from CSV')
    parser.add_argument('--config', help='YAML parameter file (default: config/default_params.yaml)')
    parser.add_argument('--api-key', help='Tradier API token (or set TRADIER_TOKEN/TRADIER_SANDBOX_TOKEN env var)')
    parser.add_argument('--sandbox', action='store_true', help='Use the Tradier sandbox API')
    parser.add_argument('--outlook', help='Market outlook: bullish, bearish or neutral')
    parser.add_argument('--expiration', help='Only show contracts expiring on YYYY-MM-DD')
    parser.add_argument('--type', dest='option_type', choices=['call', 'put'], help='Only show calls or puts')
    parser.add_argument('--sort-by', help='Sort key (greeks_score, volume, open_interest, delta, ...)')
    parser.add_argument('--limit', type=int, default=40, help='Maximum table rows (default: 40)')
    parser.add_argument('--save-csv', help='Also save the fetched raw chain to this CSV file (suffixed with the ticker when several are given)')
    parser.add_argument('--log-level', default='INFO', type=str.upper, choices=LOG_LEVELS,
                        help='Logging level (default: INFO)')
    parser.add_argument('--log-file', help='Optional log file')

    return parser


def csv_output_path(save_csv: str, ticker: str, multiple: bool) -> Path:
    """Output file for one ticker's raw chain; suffixed with the ticker when several run."""
    path = Path(save_csv)
    if not multiple:
        return path
    return path.with_name(f"{path.stem}_{ticker}{path.suffix}")


def run_analysis(snapshot: ChainSnapshot, params: dict, args: argparse.Namespace):
    """Enrich a snapshot and print quote, recommendations and the chain table."""
    filter_params = dict(section(params, 'filters'))
    if args.expiration is not None:
        filter_params['expiration'] = args.expiration
    if args.option_type is not None:
        filter_params['option_type'] = args.option_type
    if args.sort_by is not None:
        filter_params['sort_by'] = args.sort_by

    outlook = parse_outlook(args.outlook or filter_params.get('market_outlook'))
    chain_filter = ChainFilter.from_dict(filter_params)
    scoring_config = ScoringConfig.from_dict(section(params, 'scoring'))
    selection_config = SelectionConfig.from_dict(section(params, 'selection'))
    rate = section(params, 'engine').get('risk_free_rate', 0.05)

    enriched = analyze_chain(snapshot.quote, snapshot.contracts, rate=rate)
    spot = snapshot.spot_price

    print_quote_header(snapshot.quote)
    print_volume_leaders(volume_leaders(enriched))
    print_expiration_notice(list_expirations(enriched))

    optimal = select_optimal(enriched, spot, outlook, scoring_config, selection_config)
    print_optimal_contracts(optimal)

    view = filter_and_sort(enriched, chain_filter, spot, outlook, scoring_config)
    print_chain_table(view, limit=args.limit)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, log_file=args.log_file)

    try:
        params = load_params(args.config)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    if args.csv:
        try:
            contracts = load_contracts_from_csv(args.csv)
            ticker = args.tickers[0].upper() if args.tickers else contracts[0].underlying
            quote = Quote(symbol=ticker, last=args.spot) if args.spot else None
            run_analysis(ChainSnapshot(quote, contracts), params, args)
        except (AnalyzerError, FileNotFoundError) as e:
            logger.error("Analysis failed: %s", e)
            return 1
        return 0

    if not args.tickers:
        logger.error("Provide at least one ticker or --csv")
        return 2

    tradier_params = section(params, 'tradier')
    sandbox = args.sandbox or tradier_params.get('sandbox', False)
    api_token = args.api_key or os.getenv('TRADIER_SANDBOX_TOKEN' if sandbox else 'TRADIER_TOKEN')
    if not api_token:
        logger.error("No API token provided (use --api-key or set %s)",
                     'TRADIER_SANDBOX_TOKEN' if sandbox else 'TRADIER_TOKEN')
        return 1

    api = TradierAPI(api_token, sandbox=sandbox, timeout=tradier_params.get('timeout', 10.0))
    max_expirations = tradier_params.get('max_expirations', 5)

    failures = 0
    # Each ticker is an independent run
    for ticker in args.tickers:
        try:
            snapshot = fetch_snapshot(api, ticker, max_expirations=max_expirations)
            if args.save_csv:
                output_file = csv_output_path(args.save_csv, snapshot.ticker, len(args.tickers) > 1)
                save_contracts_to_csv(snapshot.contracts, output_file)
                logger.info("Saved raw chain to %s", output_file)
            run_analysis(snapshot, params, args)
        except AnalyzerError as e:
            logger.error("Error analyzing %s: %s", ticker, e)
            failures += 1

    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())
