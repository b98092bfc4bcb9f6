"""Shared fixtures for IPS scoring tests."""

from datetime import date

import pytest

from ips_scoring.models import CandidateSpread, OptionLeg

AS_OF = date(2026, 10, 16)
EXPIRATION = date(2026, 11, 13)  # 28 DTE from AS_OF
FAR_EXPIRATION = date(2027, 1, 15)  # 91 DTE, outside default range


def make_leg(strike, option_type="put", bid=1.0, ask=1.1, delta=-0.2,
             open_interest=500, expiration=EXPIRATION, iv=0.25):
    """Helper to create an option leg for testing."""
    return OptionLeg(
        strike=strike,
        expiration=expiration,
        option_type=option_type,
        bid=bid,
        ask=ask,
        delta=delta,
        iv=iv,
        open_interest=open_interest,
    )


def make_spread(short_strike=470, long_strike=462, short_bid=2.00, long_ask=1.30,
                short_delta=-0.20, symbol="SPY", option_type="put",
                expiration=EXPIRATION, underlying_price=500.0):
    """Helper to create a candidate spread for testing."""
    return CandidateSpread(
        symbol=symbol,
        short_leg=make_leg(short_strike, option_type, bid=short_bid, ask=short_bid + 0.1,
                           delta=short_delta, expiration=expiration),
        long_leg=make_leg(long_strike, option_type, bid=long_ask - 0.1, ask=long_ask,
                          delta=short_delta / 2, expiration=expiration),
        underlying_price=underlying_price,
        as_of=AS_OF,
    )


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def put_chain():
    """
    SPY put chain at $500 with two viable short legs.

    470 pairs only with 462 and 465 only with 458 under default filters.
    """
    return [
        make_leg(470, bid=2.00, ask=2.10, delta=-0.20, open_interest=500),
        make_leg(465, bid=1.60, ask=1.70, delta=-0.16, open_interest=400),
        make_leg(462, bid=1.20, ask=1.30, delta=-0.09, open_interest=300),
        make_leg(460, bid=1.00, ask=1.10, delta=-0.08, open_interest=300),
        make_leg(458, bid=0.90, ask=1.00, delta=-0.07, open_interest=300),
        make_leg(455, bid=0.70, ask=0.80, delta=-0.06, open_interest=300),
        # Outside the default DTE range
        make_leg(470, bid=4.00, ask=4.20, delta=-0.22, expiration=FAR_EXPIRATION),
        make_leg(462, bid=3.00, ask=3.20, delta=-0.15, expiration=FAR_EXPIRATION),
        # Calls are ignored for the put side
        make_leg(530, "call", bid=1.50, ask=1.60, delta=0.20),
        make_leg(538, "call", bid=0.80, ask=0.90, delta=0.10),
    ]
