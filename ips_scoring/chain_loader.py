"""
Option-chain loading from CSV files and DataFrames.

Accepts the column names common data providers use and tolerates absent
Greeks: empty cells become None rather than zero, so the generator can tell
"no delta" from "zero delta".
"""

import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ips_scoring.exceptions import InvalidLegError
from ips_scoring.models import OptionLeg

logger = logging.getLogger(__name__)

# Canonical column -> accepted aliases (matched case-insensitively)
COLUMN_ALIASES = {
    "strike": ("strike", "strike_price"),
    "expiration": ("expiration", "expiry", "expiration_date", "exp_date"),
    "option_type": ("option_type", "type", "right", "put_call", "optiontype"),
    "bid": ("bid",),
    "ask": ("ask",),
    "delta": ("delta",),
    "iv": ("iv", "implied_volatility", "impliedvolatility"),
    "open_interest": ("open_interest", "openinterest", "oi"),
    "theta": ("theta",),
    "vega": ("vega",),
    "contract_symbol": ("contract_symbol", "contractsymbol", "symbol", "option_symbol"),
    "volume": ("volume",),
}

REQUIRED_COLUMNS = ("strike", "expiration", "option_type", "bid", "ask")

OPTION_TYPE_ALIASES = {
    "c": "call",
    "call": "call",
    "calls": "call",
    "p": "put",
    "put": "put",
    "puts": "put",
}


def _safe_int(value, default: Optional[int] = None) -> Optional[int]:
    """Safely convert value to int, handling NaN and None."""
    if value is None:
        return default
    try:
        if isinstance(value, float) and math.isnan(value):
            return default
        return int(value)
    except (ValueError, TypeError):
        return default


def _safe_float(value, default: Optional[float] = None) -> Optional[float]:
    """Safely convert value to float, handling NaN and None."""
    if value is None:
        return default
    try:
        result = float(value)
        if math.isnan(result):
            return default
        return result
    except (ValueError, TypeError):
        return default


def _parse_expiration(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename provider columns to canonical names.

    Raises:
        ValueError: If a required column is absent under every alias.
    """
    lowered = {str(col).strip().lower(): col for col in df.columns}
    renames = {}

    for canonical, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in lowered:
                renames[lowered[alias]] = canonical
                break

    missing = [col for col in REQUIRED_COLUMNS if col not in renames.values()]
    if missing:
        raise ValueError(f"Option chain is missing required columns: {', '.join(missing)}")

    return df.rename(columns=renames)


def legs_from_dataframe(df: pd.DataFrame) -> list[OptionLeg]:
    """
    Convert an option-chain DataFrame to OptionLeg objects.

    Rows with an unrecognized option type, unparseable expiration or
    impossible values are skipped and logged.

    Args:
        df: Option chain, one contract per row

    Returns:
        List of OptionLeg
    """
    if df.empty:
        return []

    df = normalize_columns(df)
    legs = []
    skipped = 0

    for idx, row in df.iterrows():
        raw_type = str(row.get("option_type", "")).strip().lower()
        option_type = OPTION_TYPE_ALIASES.get(raw_type)
        expiration = _parse_expiration(row.get("expiration"))
        strike = _safe_float(row.get("strike"))

        if option_type is None or expiration is None or strike is None:
            logger.debug(f"Skipping row {idx}: type={raw_type!r} expiration={row.get('expiration')!r}")
            skipped += 1
            continue

        contract_symbol = row.get("contract_symbol")
        if contract_symbol is None or (isinstance(contract_symbol, float) and math.isnan(contract_symbol)):
            contract_symbol = ""

        try:
            leg = OptionLeg(
                strike=strike,
                expiration=expiration,
                option_type=option_type,
                bid=_safe_float(row.get("bid"), 0.0),
                ask=_safe_float(row.get("ask"), 0.0),
                delta=_safe_float(row.get("delta")),
                iv=_safe_float(row.get("iv")),
                open_interest=_safe_int(row.get("open_interest")),
                theta=_safe_float(row.get("theta")),
                vega=_safe_float(row.get("vega")),
                contract_symbol=str(contract_symbol),
                volume=_safe_int(row.get("volume")),
            )
        except InvalidLegError as e:
            logger.warning(f"Skipping row {idx}: {e}")
            skipped += 1
            continue

        legs.append(leg)

    logger.info(f"Loaded {len(legs)} option legs ({skipped} rows skipped)")
    return legs


def load_chain_csv(path: Union[str, Path]) -> list[OptionLeg]:
    """
    Load an option chain from a CSV file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Option chain file not found: {path}")

    df = pd.read_csv(path)
    logger.debug(f"Read {len(df)} rows from {path}")
    return legs_from_dataframe(df)
