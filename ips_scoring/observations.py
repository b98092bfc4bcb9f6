"""
Factor observations derivable from a candidate spread.

Market-data collaborators resolve most factor values; the ones below come
straight from the spread's own legs and geometry, so callers can merge
them with externally resolved values before evaluation. External values
can also be read from a YAML or JSON file.
"""

import math
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import yaml

from ips_scoring.exceptions import InvalidObservationError
from ips_scoring.models import CandidateSpread
from ips_scoring.risk_scoring import score_composite

Observations = Dict[str, Optional[float]]


def candidate_observations(candidate: CandidateSpread, include_composite: bool = True) -> Observations:
    """
    Observations computed from the candidate itself.

    Keys whose source data is absent (e.g. no IV on the short leg) map to
    None, which the aggregator records as missing.
    """
    short = candidate.short_leg
    long = candidate.long_leg

    observations: Observations = {
        "short_delta": abs(short.delta) if short.delta is not None else None,
        "credit": candidate.credit,
        "width": candidate.width,
        "credit_to_width": candidate.credit_to_width,
        "return_on_risk": candidate.return_on_risk,
        "probability_of_profit": candidate.probability_of_profit,
        "dte": float(candidate.days_to_expiration),
        "short_iv": short.iv,
        "short_open_interest": float(short.open_interest) if short.open_interest is not None else None,
        "long_open_interest": float(long.open_interest) if long.open_interest is not None else None,
        "short_theta": short.theta,
        "short_vega": short.vega,
        "bid_ask_spread": short.bid_ask_spread,
        "otm_pct": abs(candidate.underlying_price - short.strike) / candidate.underlying_price,
    }

    if include_composite and candidate.days_to_expiration > 0:
        observations["composite_risk"] = float(score_composite(candidate))

    return observations


def merge_observations(*sources: Mapping[str, Optional[float]]) -> Observations:
    """
    Merge observation mappings; later sources win.

    A None value never overwrites a known value, so a sparse external feed
    cannot erase what the candidate itself provides.
    """
    merged: Observations = {}
    for source in sources:
        for key, value in source.items():
            if value is None and merged.get(key) is not None:
                continue
            merged[key] = value
    return merged


def load_observations_file(file_path: Union[str, Path]) -> Observations:
    """
    Load external observations from a YAML or JSON mapping of factor id to value.

    Null values are kept as None (missing).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a mapping or cannot be parsed.
        InvalidObservationError: If a value is not numeric.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Observations file not found: {file_path}")

    try:
        with open(path, "r") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid observations file {file_path}: {e}")

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Invalid observations file {file_path}: expected a mapping")

    observations: Observations = {}
    for key, value in content.items():
        if value is None:
            observations[str(key)] = None
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidObservationError(str(key), value, "must be a number")
        if math.isinf(value):
            raise InvalidObservationError(str(key), value, "must be finite")
        observations[str(key)] = float(value)

    return observations
