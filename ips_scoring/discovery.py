"""
Candidate discovery for vertical credit spreads.

Turns a flat list of option-chain rows into the set of structurally valid,
liquid short-vertical candidates for one underlying.
"""

import logging
from datetime import date
from typing import Iterable, Optional

from ips_scoring.config import GeneratorFilters
from ips_scoring.exceptions import InvalidCandidateError
from ips_scoring.models import OPTION_TYPES, CandidateSpread, OptionLeg, days_to_expiration

logger = logging.getLogger(__name__)


def group_by_expiration(legs: Iterable[OptionLeg]) -> dict[date, list[OptionLeg]]:
    """
    Group option legs by expiration date.

    Args:
        legs: Option legs

    Returns:
        Dictionary mapping expiration dates to their legs
    """
    groups: dict[date, list[OptionLeg]] = {}

    for leg in legs:
        if leg.expiration not in groups:
            groups[leg.expiration] = []
        groups[leg.expiration].append(leg)

    return groups


def is_out_of_the_money(
    leg: OptionLeg, underlying_price: float, otm_pct: float
) -> bool:
    """
    Check whether a strike is at least ``otm_pct`` out of the money.

    Puts must sit at or below ``price * (1 - otm_pct)``, calls at or above
    ``price * (1 + otm_pct)``.
    """
    if leg.option_type == "put":
        return leg.strike <= underlying_price * (1 - otm_pct)
    return leg.strike >= underlying_price * (1 + otm_pct)


def select_short_legs(
    legs: list[OptionLeg],
    underlying_price: float,
    filters: GeneratorFilters,
) -> list[OptionLeg]:
    """
    Select short-leg candidates from one expiration group.

    Rules:
    - delta present and min_delta <= |delta| <= max_delta (inclusive)
    - strike at least otm_pct out of the money
    - open interest strictly above min_open_interest
    - bid strictly above min_bid

    Args:
        legs: Legs of a single type and expiration
        underlying_price: Current underlying price
        filters: Generator filters

    Returns:
        Eligible short legs
    """
    selected = []

    for leg in legs:
        if leg.delta is None:
            logger.debug(f"Skipping {leg.strike:g} {leg.option_type}: no delta")
            continue
        if not filters.min_delta <= abs(leg.delta) <= filters.max_delta:
            continue
        if not is_out_of_the_money(leg, underlying_price, filters.otm_pct):
            continue
        if leg.open_interest is None or leg.open_interest <= filters.min_open_interest:
            continue
        if leg.bid <= filters.min_bid:
            continue
        selected.append(leg)

    return selected


def select_long_legs(
    legs: list[OptionLeg],
    short_leg: OptionLeg,
    filters: GeneratorFilters,
) -> list[OptionLeg]:
    """
    Select protective long legs for a short leg.

    Puts: strictly between ``short - max_width`` and ``short - min_width``.
    Calls: strictly between ``short + min_width`` and ``short + max_width``.

    Args:
        legs: Legs of the same type and expiration as ``short_leg``
        short_leg: The sold leg
        filters: Generator filters

    Returns:
        Eligible long legs
    """
    short_strike = short_leg.strike

    if short_leg.option_type == "put":
        low = short_strike - filters.max_width
        high = short_strike - filters.min_width
        return [
            leg for leg in legs
            if low < leg.strike < high and leg.strike < short_strike
        ]

    low = short_strike + filters.min_width
    high = short_strike + filters.max_width
    return [
        leg for leg in legs
        if low < leg.strike < high and leg.strike > short_strike
    ]


def construct_candidate(
    symbol: str,
    short_leg: OptionLeg,
    long_leg: OptionLeg,
    underlying_price: float,
    as_of: date,
) -> Optional[CandidateSpread]:
    """
    Construct a candidate, or return None when the pairing is not viable.

    A pairing is not viable when it violates the spread invariants or
    collects no credit.
    """
    try:
        candidate = CandidateSpread(
            symbol=symbol,
            short_leg=short_leg,
            long_leg=long_leg,
            underlying_price=underlying_price,
            as_of=as_of,
        )
    except InvalidCandidateError as e:
        logger.debug(f"Rejected pairing: {e}")
        return None

    if candidate.credit <= 0:
        logger.debug(f"Rejected {candidate.candidate_id}: no credit ({candidate.credit:.2f})")
        return None

    return candidate


def generate_candidates(
    legs: Iterable[OptionLeg],
    underlying_price: float,
    side: str,
    filters: Optional[GeneratorFilters] = None,
    symbol: str = "",
    as_of: Optional[date] = None,
) -> frozenset[CandidateSpread]:
    """
    Generate all viable credit-spread candidates from an option chain.

    Args:
        legs: Option-chain rows (any mix of types and expirations)
        underlying_price: Current underlying price
        side: 'put' for short-put verticals, 'call' for short-call verticals
        filters: Generator filters (defaults if None)
        symbol: Underlying symbol
        as_of: Valuation date for DTE (default: today)

    Returns:
        Set of CandidateSpread; empty when nothing qualifies
    """
    if side not in OPTION_TYPES:
        raise ValueError(f"Invalid side: {side}")
    if underlying_price <= 0:
        raise ValueError("underlying_price must be positive")
    if filters is None:
        filters = GeneratorFilters()
    if as_of is None:
        as_of = date.today()

    same_type = [leg for leg in legs if leg.option_type == side]
    groups = group_by_expiration(same_type)

    candidates = set()

    for expiration, group in groups.items():
        dte = days_to_expiration(expiration, as_of)
        if not filters.min_dte <= dte <= filters.max_dte:
            logger.debug(f"Expiration {expiration} ({dte} DTE) outside DTE range")
            continue

        short_legs = select_short_legs(group, underlying_price, filters)
        logger.debug(f"Expiration {expiration}: {len(short_legs)} short-leg candidates")

        for short_leg in short_legs:
            for long_leg in select_long_legs(group, short_leg, filters):
                candidate = construct_candidate(
                    symbol, short_leg, long_leg, underlying_price, as_of
                )
                if candidate is not None:
                    candidates.add(candidate)

    logger.info(
        f"Generated {len(candidates)} {side} spread candidates for {symbol or 'underlying'} "
        f"from {len(groups)} expirations"
    )
    return frozenset(candidates)
