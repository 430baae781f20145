"""Shape validation for raw contract records.

Applied at the data-source boundary, before a record becomes an
OptionContract. Malformed records are rejected, never coerced.
"""

from typing import Tuple

from ..utils.error_handling import safe_float
from ..utils.logging_config import get_logger

logger = get_logger("validators")

REQUIRED_FIELDS = ('symbol', 'strike', 'option_type', 'expiration')


def validate_contract_record(record: dict) -> Tuple[bool, str]:
    """Validate a raw contract record for completeness and sanity.

    Args:
        record: Dictionary with at least symbol, strike, option_type, expiration

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> is_valid, error = validate_contract_record(row)
        >>> if not is_valid:
        >>>     logger.warning("Skipping contract: %s", error)
    """
    for field in REQUIRED_FIELDS:
        if record.get(field) in (None, ''):
            return False, f"Missing required field: {field}"

    option_type = str(record['option_type']).strip().lower()
    if option_type not in ('call', 'put'):
        return False, f"Invalid option type: {record['option_type']}"

    strike = safe_float(record['strike'])
    if strike is None or strike <= 0:
        return False, f"Invalid strike price: {record['strike']}"

    for side in ('bid', 'ask', 'last'):
        value = safe_float(record.get(side))
        if value is not None and value < 0:
            return False, f"Negative {side} price: {record[side]}"

    for count in ('volume', 'open_interest'):
        value = safe_float(record.get(count))
        if value is not None and value < 0:
            return False, f"Negative {count}: {record[count]}"

    return True, ""
