"""
Data models for the IPS scoring engine.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ips_scoring.exceptions import InvalidCandidateError, InvalidLegError

OPTION_TYPES = ("call", "put")


def days_to_expiration(expiration: date, as_of: date) -> int:
    """
    Whole days between ``as_of`` and ``expiration``, rounded to nearest.

    Works with dates or datetimes (both arguments must be the same kind).
    """
    delta = expiration - as_of
    return int(math.floor(delta.total_seconds() / 86400 + 0.5))


class Severity:
    """Per-factor diagnostic labels."""
    PASS = "pass"
    MINOR_MISS = "minor_miss"
    MAJOR_MISS = "major_miss"
    MISSING = "missing"


class Tier:
    """Coarse dashboard grouping of final scores."""
    ELITE = "elite"
    QUALITY = "quality"
    SPECULATIVE = "speculative"
    BELOW_THRESHOLD = "below_threshold"


@dataclass(frozen=True)
class OptionLeg:
    """
    One row of an option chain.

    Attributes:
        strike: Strike price
        expiration: Expiration date
        option_type: 'call' or 'put'
        bid: Bid price
        ask: Ask price
        delta: Option delta (-1..1), None when the feed has no Greeks
        iv: Implied volatility (0-1 scale)
        open_interest: Open interest
        theta: Theta per day
        vega: Vega
        contract_symbol: Full option contract symbol
        volume: Trading volume
    """
    strike: float
    expiration: date
    option_type: str
    bid: float
    ask: float
    delta: Optional[float] = None
    iv: Optional[float] = None
    open_interest: Optional[int] = None
    theta: Optional[float] = None
    vega: Optional[float] = None
    contract_symbol: str = ""
    volume: Optional[int] = None

    def __post_init__(self) -> None:
        if self.option_type not in OPTION_TYPES:
            raise InvalidLegError("option_type", self.option_type, "must be 'call' or 'put'")
        if self.strike <= 0:
            raise InvalidLegError("strike", self.strike, "must be positive")
        if self.bid < 0:
            raise InvalidLegError("bid", self.bid, "must be non-negative")
        if self.ask < 0:
            raise InvalidLegError("ask", self.ask, "must be non-negative")
        if self.delta is not None and not -1 <= self.delta <= 1:
            raise InvalidLegError("delta", self.delta, "must be between -1 and 1")
        if self.iv is not None and self.iv < 0:
            raise InvalidLegError("iv", self.iv, "must be non-negative")
        if self.open_interest is not None and self.open_interest < 0:
            raise InvalidLegError("open_interest", self.open_interest, "must be non-negative")

    @property
    def mid(self) -> float:
        """Mid price ((bid + ask) / 2)."""
        return (self.bid + self.ask) / 2

    @property
    def bid_ask_spread(self) -> float:
        """Bid-ask spread width."""
        return self.ask - self.bid


@dataclass(frozen=True)
class CandidateSpread:
    """
    A vertical credit spread: a sold (short) and a bought (long) option of
    the same type and expiration.

    Derived attributes are computed once at construction. A spread whose
    credit reaches its width has no risk left to take and is rejected, as is
    one whose short leg carries no delta (no probability estimate).
    """
    symbol: str
    short_leg: OptionLeg
    long_leg: OptionLeg
    underlying_price: float
    as_of: date

    width: float = field(init=False)
    credit: float = field(init=False)
    max_profit: float = field(init=False)
    max_loss: float = field(init=False)
    probability_of_profit: float = field(init=False)
    days_to_expiration: int = field(init=False)

    def __post_init__(self) -> None:
        candidate_id = self.candidate_id
        if self.short_leg.option_type != self.long_leg.option_type:
            raise InvalidCandidateError(candidate_id, "legs must be the same option type")
        if self.short_leg.expiration != self.long_leg.expiration:
            raise InvalidCandidateError(candidate_id, "legs must share an expiration")
        if self.short_leg.delta is None:
            raise InvalidCandidateError(candidate_id, "short leg has no delta")

        width = abs(self.short_leg.strike - self.long_leg.strike)
        if width <= 0:
            raise InvalidCandidateError(candidate_id, "width must be positive")

        credit = self.short_leg.bid - self.long_leg.ask
        max_loss = width - credit
        if max_loss <= 0:
            raise InvalidCandidateError(
                candidate_id, f"credit {credit:.2f} >= width {width:.2f}"
            )

        object.__setattr__(self, "width", width)
        object.__setattr__(self, "credit", credit)
        object.__setattr__(self, "max_profit", credit)
        object.__setattr__(self, "max_loss", max_loss)
        object.__setattr__(self, "probability_of_profit", 1 - abs(self.short_leg.delta))
        object.__setattr__(
            self, "days_to_expiration", days_to_expiration(self.short_leg.expiration, self.as_of)
        )

    @property
    def candidate_id(self) -> str:
        """
        Human-readable identifier used in logs, errors and ordering.

        Contract symbols are appended when both legs carry one, so the same
        strikes listed under two roots (SPX/SPXW) stay distinguishable.
        """
        candidate_id = (
            f"{self.symbol} {self.short_leg.expiration.isoformat()} "
            f"{self.short_leg.strike:g}/{self.long_leg.strike:g} {self.short_leg.option_type}"
        )
        if self.short_leg.contract_symbol and self.long_leg.contract_symbol:
            candidate_id += f" [{self.short_leg.contract_symbol}/{self.long_leg.contract_symbol}]"
        return candidate_id

    @property
    def sort_key(self) -> tuple:
        """Deterministic ordering key, unique up to identical leg quotes."""
        return (
            self.candidate_id,
            self.short_leg.bid,
            self.short_leg.ask,
            self.long_leg.bid,
            self.long_leg.ask,
        )

    @property
    def side(self) -> str:
        """'put' or 'call'."""
        return self.short_leg.option_type

    @property
    def strategy(self) -> str:
        """Strategy name used for grouping and diversification."""
        return f"{self.side}_credit_spread"

    @property
    def expiration(self) -> date:
        """Expiration date of the spread."""
        return self.short_leg.expiration

    @property
    def breakeven(self) -> float:
        """Underlying price at which the spread neither gains nor loses at expiration."""
        if self.side == "put":
            return self.short_leg.strike - self.credit
        return self.short_leg.strike + self.credit

    @property
    def credit_to_width(self) -> float:
        """Credit collected as a fraction of spread width."""
        return self.credit / self.width

    @property
    def return_on_risk(self) -> float:
        """Max profit divided by max loss."""
        return self.max_profit / self.max_loss

    def to_dict(self) -> dict:
        """Convert to dictionary for display layers."""
        return {
            "symbol": self.symbol,
            "strategy": self.strategy,
            "expiration": self.expiration.isoformat(),
            "dte": self.days_to_expiration,
            "underlying_price": self.underlying_price,
            "short_strike": self.short_leg.strike,
            "long_strike": self.long_leg.strike,
            "short_delta": self.short_leg.delta,
            "width": round(self.width, 2),
            "credit": round(self.credit, 2),
            "max_profit": round(self.max_profit, 2),
            "max_loss": round(self.max_loss, 2),
            "breakeven": round(self.breakeven, 2),
            "probability_of_profit": round(self.probability_of_profit, 4),
        }


@dataclass(frozen=True)
class FactorVerdict:
    """
    Outcome of one policy factor for one candidate.

    ``sub_score`` and ``distance`` are None when the factor had no
    observation; such verdicts carry severity ``missing``.
    """
    factor_id: str
    name: str
    value: Optional[float]
    sub_score: Optional[float]
    weight: float
    target: str
    severity: str
    distance: Optional[float] = None

    @property
    def is_missing(self) -> bool:
        return self.severity == Severity.MISSING

    @property
    def weighted_score(self) -> float:
        """Contribution to the weighted sum (0 when missing)."""
        if self.sub_score is None:
            return 0.0
        return self.sub_score * self.weight

    @property
    def target_met(self) -> bool:
        """A factor meets its target when its sub-score reaches 70."""
        return self.sub_score is not None and self.sub_score >= 70

    def to_dict(self) -> dict:
        return {
            "factor_id": self.factor_id,
            "name": self.name,
            "value": self.value,
            "sub_score": round(self.sub_score, 2) if self.sub_score is not None else None,
            "weight": self.weight,
            "weighted_score": round(self.weighted_score, 4),
            "target": self.target,
            "distance": round(self.distance, 4) if self.distance is not None else None,
            "severity": self.severity,
            "target_met": self.target_met,
        }


@dataclass(frozen=True)
class ScoreResult:
    """
    Final evaluation of one candidate against one policy.

    ``score`` is the weighted average over observed factors only;
    ``weight_coverage`` reports how much of the configured weight was
    actually observed.
    """
    score: float
    grade: str
    compliance: str
    tier: str
    weight_coverage: float
    verdicts: tuple[FactorVerdict, ...]
    total_weighted_score: float = 0.0
    total_available_weight: float = 0.0
    total_configured_weight: float = 0.0
    composite_score: Optional[int] = None

    @property
    def is_evaluable(self) -> bool:
        """False when no configured weight was observed."""
        return self.total_available_weight > 0

    @property
    def passed(self) -> list[FactorVerdict]:
        return [v for v in self.verdicts if v.severity == Severity.PASS]

    @property
    def minor_misses(self) -> list[FactorVerdict]:
        return [v for v in self.verdicts if v.severity == Severity.MINOR_MISS]

    @property
    def major_misses(self) -> list[FactorVerdict]:
        return [v for v in self.verdicts if v.severity == Severity.MAJOR_MISS]

    @property
    def missing(self) -> list[FactorVerdict]:
        return [v for v in self.verdicts if v.severity == Severity.MISSING]

    @property
    def targets_met(self) -> int:
        return sum(1 for v in self.verdicts if v.target_met)

    @property
    def weight_passed(self) -> float:
        return sum(v.weight for v in self.passed)

    @property
    def weight_minor(self) -> float:
        return sum(v.weight for v in self.minor_misses)

    @property
    def weight_major(self) -> float:
        return sum(v.weight for v in self.major_misses)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "score": round(self.score, 2),
            "grade": self.grade,
            "compliance": self.compliance,
            "tier": self.tier,
            "weight_coverage": round(self.weight_coverage, 4),
            "composite_score": self.composite_score,
            "summary": {
                "total_factors": len(self.verdicts),
                "scored_factors": len(self.verdicts) - len(self.missing),
                "missing_factors": len(self.missing),
                "targets_met": self.targets_met,
                "total_weighted_score": round(self.total_weighted_score, 4),
                "total_available_weight": round(self.total_available_weight, 4),
                "total_configured_weight": round(self.total_configured_weight, 4),
                "weight_passed": round(self.weight_passed, 4),
                "weight_minor": round(self.weight_minor, 4),
                "weight_major": round(self.weight_major, 4),
            },
            "factors": [v.to_dict() for v in self.verdicts],
        }
