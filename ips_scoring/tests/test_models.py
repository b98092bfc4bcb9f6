"""Tests for data models."""

from dataclasses import replace
from datetime import date, datetime

import pytest

from conftest import AS_OF, EXPIRATION, make_leg, make_spread
from ips_scoring.exceptions import InvalidCandidateError, InvalidLegError
from ips_scoring.models import CandidateSpread, FactorVerdict, OptionLeg, Severity


class TestOptionLeg:
    """Tests for OptionLeg dataclass."""

    def test_mid_and_spread(self):
        leg = make_leg(100, bid=1.00, ask=1.20)

        assert leg.mid == pytest.approx(1.10)
        assert leg.bid_ask_spread == pytest.approx(0.20)

    def test_greeks_default_to_none(self):
        leg = OptionLeg(strike=100, expiration=EXPIRATION, option_type="put", bid=1.0, ask=1.1)

        assert leg.delta is None
        assert leg.iv is None
        assert leg.open_interest is None

    def test_invalid_option_type(self):
        with pytest.raises(InvalidLegError, match="option_type"):
            make_leg(100, option_type="straddle")

    def test_invalid_strike(self):
        with pytest.raises(InvalidLegError, match="strike"):
            make_leg(0)

    def test_invalid_prices(self):
        with pytest.raises(InvalidLegError, match="bid"):
            make_leg(100, bid=-0.1)

        with pytest.raises(InvalidLegError, match="ask"):
            make_leg(100, ask=-0.1)

    def test_invalid_delta(self):
        with pytest.raises(InvalidLegError, match="delta"):
            make_leg(100, delta=-1.5)


class TestCandidateSpread:
    """Tests for CandidateSpread derived values."""

    @pytest.fixture
    def spread(self):
        """Short 100 put at 1.00 bid, long 95 put at 0.40 ask."""
        return CandidateSpread(
            symbol="XYZ",
            short_leg=make_leg(100, bid=1.00, ask=1.05, delta=-0.20),
            long_leg=make_leg(95, bid=0.35, ask=0.40, delta=-0.10),
            underlying_price=110.0,
            as_of=AS_OF,
        )

    def test_derived_values(self, spread):
        """Width, credit and risk follow from the two legs."""
        assert spread.width == pytest.approx(5.0)
        assert spread.credit == pytest.approx(0.60)
        assert spread.max_profit == pytest.approx(0.60)
        assert spread.max_loss == pytest.approx(4.40)
        assert spread.return_on_risk * 100 == pytest.approx(13.636, abs=1e-3)

    def test_probability_and_dte(self, spread):
        assert spread.probability_of_profit == pytest.approx(0.80)
        assert spread.days_to_expiration == 28

    def test_identity(self, spread):
        assert spread.candidate_id == "XYZ 2026-11-13 100/95 put"
        assert spread.side == "put"
        assert spread.strategy == "put_credit_spread"
        assert spread.expiration == EXPIRATION

    def test_contract_symbols_distinguish_roots(self):
        """The same strikes listed under two roots get distinct identities."""
        def spread_for(root):
            return CandidateSpread(
                symbol="SPX",
                short_leg=replace(make_leg(470, bid=2.00), contract_symbol=f"{root}-470"),
                long_leg=replace(make_leg(462, ask=1.30), contract_symbol=f"{root}-462"),
                underlying_price=500.0,
                as_of=AS_OF,
            )

        spx = spread_for("SPX")
        spxw = spread_for("SPXW")

        assert spx.candidate_id == "SPX 2026-11-13 470/462 put [SPX-470/SPX-462]"
        assert spx.candidate_id != spxw.candidate_id
        assert spx.sort_key != spxw.sort_key

    def test_dte_rounds_to_nearest_day(self):
        """Six days and twenty hours counts as seven days."""
        expiration = datetime(2026, 10, 23, 16)
        spread = CandidateSpread(
            symbol="SPY",
            short_leg=make_leg(470, bid=2.00, expiration=expiration),
            long_leg=make_leg(462, ask=1.30, expiration=expiration),
            underlying_price=500.0,
            as_of=datetime(2026, 10, 16, 20),
        )

        assert spread.days_to_expiration == 7

    def test_breakeven(self, spread):
        assert spread.breakeven == pytest.approx(99.40)

    def test_call_breakeven(self):
        spread = make_spread(530, 538, short_bid=1.50, long_ask=0.90,
                             short_delta=0.20, option_type="call")

        assert spread.breakeven == pytest.approx(530.60)
        assert spread.width == pytest.approx(8.0)

    def test_credit_to_width(self, spread):
        assert spread.credit_to_width == pytest.approx(0.12)

    def test_equal_spreads_hash_equal(self):
        assert make_spread() == make_spread()
        assert len({make_spread(), make_spread()}) == 1

    def test_mixed_types_rejected(self):
        with pytest.raises(InvalidCandidateError, match="same option type"):
            CandidateSpread(
                symbol="XYZ",
                short_leg=make_leg(100, "put"),
                long_leg=make_leg(105, "call", delta=0.1),
                underlying_price=110.0,
                as_of=AS_OF,
            )

    def test_mixed_expirations_rejected(self):
        with pytest.raises(InvalidCandidateError, match="share an expiration"):
            CandidateSpread(
                symbol="XYZ",
                short_leg=make_leg(100),
                long_leg=make_leg(95, expiration=date(2026, 12, 18)),
                underlying_price=110.0,
                as_of=AS_OF,
            )

    def test_short_leg_without_delta_rejected(self):
        with pytest.raises(InvalidCandidateError, match="no delta"):
            CandidateSpread(
                symbol="XYZ",
                short_leg=make_leg(100, delta=None),
                long_leg=make_leg(95),
                underlying_price=110.0,
                as_of=AS_OF,
            )

    def test_zero_width_rejected(self):
        with pytest.raises(InvalidCandidateError, match="width must be positive"):
            CandidateSpread(
                symbol="XYZ",
                short_leg=make_leg(100),
                long_leg=make_leg(100),
                underlying_price=110.0,
                as_of=AS_OF,
            )

    def test_credit_reaching_width_rejected(self):
        """A spread with no risk left is not a valid candidate."""
        with pytest.raises(InvalidCandidateError, match="credit"):
            make_spread(100, 95, short_bid=5.50, long_ask=0.40, underlying_price=110.0)

    def test_to_dict(self, spread):
        data = spread.to_dict()

        assert data["symbol"] == "XYZ"
        assert data["expiration"] == "2026-11-13"
        assert data["credit"] == 0.6
        assert data["max_loss"] == 4.4
        assert data["dte"] == 28


class TestFactorVerdict:
    """Tests for FactorVerdict."""

    def test_weighted_score(self):
        verdict = FactorVerdict("iv_rank", "IV Rank", 60.0, 80.0, 0.5, "≥ 50", Severity.PASS, 0.0)

        assert verdict.weighted_score == pytest.approx(40.0)
        assert verdict.target_met

    def test_missing_verdict(self):
        verdict = FactorVerdict("iv_rank", "IV Rank", None, None, 0.5, "≥ 50", Severity.MISSING)

        assert verdict.is_missing
        assert verdict.weighted_score == 0.0
        assert not verdict.target_met
        assert verdict.to_dict()["sub_score"] is None
