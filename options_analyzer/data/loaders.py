"""Loaders turning provider payloads and CSV files into model objects."""

import csv
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping

from ..models.contract import OptionContract, ProviderGreeks
from ..models.quote import Quote
from ..utils.error_handling import DataValidationError, safe_float, safe_int
from ..utils.logging_config import get_logger
from .validators import validate_contract_record

logger = get_logger("loaders")

CSV_REQUIRED_FIELDS = {'symbol', 'strike', 'option_type', 'expiration'}

GREEKS_FIELDS = (
    'delta', 'gamma', 'theta', 'vega', 'rho', 'phi',
    'smv_vol', 'mid_iv', 'bid_iv', 'ask_iv',
)

CSV_FIELDNAMES = [
    'symbol', 'underlying', 'option_type', 'strike', 'expiration',
    'bid', 'ask', 'last', 'volume', 'open_interest',
    'delta', 'gamma', 'theta', 'vega', 'rho', 'smv_vol', 'mid_iv', 'bid_iv', 'ask_iv',
]


def parse_date(value: str | date) -> date:
    """Parse an expiration date in ISO (YYYY-MM-DD) or MM/DD/YYYY format."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    try:
        return datetime.strptime(text, '%Y-%m-%d').date()
    except ValueError:
        try:
            return datetime.strptime(text, '%m/%d/%Y').date()
        except ValueError:
            raise DataValidationError(f"Invalid expiration date format: {text}")


def parse_provider_greeks(
    block: Mapping[str, Any] | None,
    require_values: bool = True,
) -> ProviderGreeks | None:
    """Build a ProviderGreeks from a provider's Greeks mapping.

    Args:
        block: Greeks mapping, or a flat CSV row carrying Greeks columns
        require_values: Treat a block without any value as absent. A nested
            provider block is kept even when empty, its fields defaulting to 0.

    Returns:
        None when the block is absent, or empty while values are required
    """
    if block is None:
        return None

    values = {name: safe_float(block.get(name)) for name in GREEKS_FIELDS}
    updated_at = block.get('updated_at') or None

    if require_values and all(v is None for v in values.values()) and updated_at is None:
        return None

    return ProviderGreeks(updated_at=updated_at, **values)


def parse_contract(
    record: Mapping[str, Any],
    underlying: str | None = None,
    expiration: str | date | None = None,
) -> OptionContract:
    """Parse one raw contract record.

    Accepts both the nested provider shape (``greeks`` sub-mapping) and the
    flat CSV shape (Greeks as columns).

    Args:
        record: Raw record
        underlying: Underlying ticker when the record does not carry one
        expiration: Expiration when the record does not carry one

    Raises:
        DataValidationError: If the record fails shape validation
    """
    merged: Dict[str, Any] = dict(record)
    if not merged.get('expiration'):
        merged['expiration'] = merged.get('expiration_date') or expiration

    is_valid, error = validate_contract_record(merged)
    if not is_valid:
        raise DataValidationError(f"Invalid contract {merged.get('symbol', '?')}: {error}")

    if 'greeks' in merged:
        block = merged.get('greeks')
        greeks = None
        if isinstance(block, Mapping):
            greeks = parse_provider_greeks(block, require_values=False)
    else:
        greeks = parse_provider_greeks(merged)

    symbol = str(merged['symbol']).strip()
    ticker = merged.get('underlying') or merged.get('root_symbol') or underlying or ''

    return OptionContract(
        symbol=symbol,
        underlying=str(ticker).strip().upper(),
        strike=float(merged['strike']),
        option_type=str(merged['option_type']).strip().lower(),  # type: ignore[arg-type]
        expiration=parse_date(merged['expiration']),
        bid=safe_float(merged.get('bid')),
        ask=safe_float(merged.get('ask')),
        last=safe_float(merged.get('last')),
        volume=safe_int(merged.get('volume')),
        open_interest=safe_int(merged.get('open_interest')),
        greeks=greeks,
        description=merged.get('description') or None,
    )


def parse_contracts(
    records: List[Mapping[str, Any]],
    underlying: str | None = None,
    expiration: str | date | None = None,
) -> List[OptionContract]:
    """Parse a list of records, skipping and logging invalid ones."""
    contracts = []
    for record in records:
        try:
            contracts.append(parse_contract(record, underlying, expiration))
        except DataValidationError as e:
            logger.warning("Skipping contract record: %s", e)
    return contracts


def parse_quote(record: Mapping[str, Any]) -> Quote:
    """Build a Quote from a provider quote mapping.

    Raises:
        DataValidationError: If the record has no symbol
    """
    symbol = record.get('symbol')
    if not symbol:
        raise DataValidationError("Quote record has no symbol")

    return Quote(
        symbol=str(symbol).strip().upper(),
        description=record.get('description') or None,
        last=safe_float(record.get('last')),
        prevclose=safe_float(record.get('prevclose')),
        bid=safe_float(record.get('bid')),
        ask=safe_float(record.get('ask')),
        volume=safe_int(record.get('volume')),
    )


def load_contracts_from_csv(csv_path: str | Path) -> List[OptionContract]:
    """Load a raw option chain from a CSV file.

    Expected CSV format:
        symbol,underlying,option_type,strike,expiration,bid,ask,last,volume,open_interest
        plus optional Greeks columns (delta,gamma,theta,vega,rho,smv_vol,mid_iv,bid_iv,ask_iv).
        Rows with all Greeks columns empty get no provider Greeks.

    Args:
        csv_path: Path to CSV file

    Returns:
        List of OptionContract objects

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        DataValidationError: If headers are missing or no row is valid
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        logger.error("CSV file not found: %s", csv_path)
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info("Loading option chain from CSV: %s", csv_path)

    contracts = []
    skipped_rows = 0
    row_num = 1

    try:
        with open(csv_path, 'r', newline='') as f:
            reader = csv.DictReader(f)

            if not CSV_REQUIRED_FIELDS.issubset(set(reader.fieldnames or [])):
                missing = CSV_REQUIRED_FIELDS - set(reader.fieldnames or [])
                logger.error("CSV missing required fields: %s", missing)
                raise DataValidationError(f"CSV missing required fields: {missing}")

            for row_num, row in enumerate(reader, start=2):  # header is row 1
                try:
                    contracts.append(parse_contract(row))
                except DataValidationError as e:
                    logger.warning("Skipping row %d in %s: %s", row_num, csv_path.name, e)
                    skipped_rows += 1

    except DataValidationError:
        raise
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        logger.error("Error reading CSV file %s: %s", csv_path, e)
        raise DataValidationError(f"Failed to read CSV file {csv_path}: {e}") from e

    if skipped_rows > 0:
        logger.warning(
            "Skipped %d invalid rows out of %d total rows in %s",
            skipped_rows, row_num - 1, csv_path.name
        )

    if not contracts:
        logger.error("No valid contracts found in %s", csv_path)
        raise DataValidationError(f"No valid contracts found in {csv_path}")

    logger.info("Successfully loaded %d contracts from %s", len(contracts), csv_path.name)
    return contracts


def save_contracts_to_csv(contracts: List[OptionContract], output_file: str | Path):
    """Write raw contracts in the format read by ``load_contracts_from_csv``."""
    rows = []
    for c in contracts:
        g = c.greeks
        rows.append({
            'symbol': c.symbol,
            'underlying': c.underlying,
            'option_type': c.option_type,
            'strike': c.strike,
            'expiration': c.expiration.isoformat(),
            'bid': '' if c.bid is None else c.bid,
            'ask': '' if c.ask is None else c.ask,
            'last': '' if c.last is None else c.last,
            'volume': '' if c.volume is None else c.volume,
            'open_interest': '' if c.open_interest is None else c.open_interest,
            **{
                name: ('' if g is None or getattr(g, name) is None else getattr(g, name))
                for name in ('delta', 'gamma', 'theta', 'vega', 'rho',
                             'smv_vol', 'mid_iv', 'bid_iv', 'ask_iv')
            },
        })

    with open(output_file, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDNAMES)
        writer.writeheader()
        writer.writerows(rows)


class ChainSnapshot:
    """Container for one run's fetched data: underlying quote plus raw chain."""

    def __init__(self, quote: Quote | None, contracts: List[OptionContract]):
        """Initialize chain snapshot.

        Args:
            quote: Underlying quote (None when unavailable)
            contracts: Raw contracts across all fetched expirations
        """
        self.quote = quote
        self.contracts = contracts

    @property
    def ticker(self) -> str:
        """Ticker symbol, from the quote or the first contract."""
        if self.quote is not None:
            return self.quote.symbol
        if not self.contracts:
            raise ValueError("No quote and no contracts in snapshot")
        return self.contracts[0].underlying

    @property
    def spot_price(self) -> float:
        return self.quote.spot if self.quote is not None else 0.0
