"""
Configuration classes for the IPS scoring engine.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class CompositeWeights:
    """
    Fixed weights of the composite risk-adjusted score.

    These are not user-configurable; the class exists so the weights live in
    one place and their sum is checked.
    """
    risk_reward_weight: float = 0.35
    capital_efficiency_weight: float = 0.25
    prob_weighted_weight: float = 0.20
    expected_value_weight: float = 0.15
    sharpe_weight: float = 0.05

    def __post_init__(self) -> None:
        if any(w < 0 for w in self.as_tuple()):
            raise ValueError("Composite weights must be non-negative")
        total = math.fsum(self.as_tuple())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Composite weights must sum to 1.0, got {total:.4f}")

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        """Weights in formula order."""
        return (
            self.risk_reward_weight,
            self.capital_efficiency_weight,
            self.prob_weighted_weight,
            self.expected_value_weight,
            self.sharpe_weight,
        )


COMPOSITE_WEIGHTS = CompositeWeights()

RISK_FREE_RATE = 0.05  # 5% annual


@dataclass(frozen=True)
class SeverityThresholds:
    """
    Distance thresholds for per-factor severity labels.

    A normalized distance ``d`` is labelled ``pass`` when
    ``d <= pass_threshold``, ``minor_miss`` when ``d <= minor_threshold``
    and ``major_miss`` otherwise.
    """
    pass_threshold: float = 0.0
    minor_threshold: float = 0.10

    def __post_init__(self) -> None:
        if self.pass_threshold < 0:
            raise ValueError("pass_threshold must be non-negative")
        if self.minor_threshold < self.pass_threshold:
            raise ValueError("minor_threshold must be >= pass_threshold")


@dataclass
class GeneratorFilters:
    """
    Filters for vertical-spread candidate generation.

    Attributes:
        min_dte: Minimum days to expiration, inclusive (default: 7)
        max_dte: Maximum days to expiration, inclusive (default: 45)
        min_delta: Lower bound of the short-leg |delta| band (default: 0.10)
        max_delta: Upper bound of the short-leg |delta| band (default: 0.30)
        min_open_interest: Short-leg open interest must exceed this (default: 100)
        min_bid: Short-leg bid must exceed this (default: 0.05)
        otm_pct: Minimum out-of-the-money distance of the short strike (default: 0.05)
        min_width: Long leg must sit strictly more than this many points away (default: 5)
        max_width: Long leg must sit strictly less than this many points away (default: 10)
    """
    min_dte: int = 7
    max_dte: int = 45
    min_delta: float = 0.10
    max_delta: float = 0.30
    min_open_interest: int = 100
    min_bid: float = 0.05
    otm_pct: float = 0.05
    min_width: float = 5.0
    max_width: float = 10.0

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Validate filter parameters."""
        if self.min_dte < 0:
            raise ValueError("min_dte must be non-negative")
        if self.max_dte < self.min_dte:
            raise ValueError("max_dte must be >= min_dte")
        if not 0 <= self.min_delta <= 1:
            raise ValueError("min_delta must be between 0 and 1")
        if not 0 <= self.max_delta <= 1:
            raise ValueError("max_delta must be between 0 and 1")
        if self.max_delta < self.min_delta:
            raise ValueError("max_delta must be >= min_delta")
        if self.min_open_interest < 0:
            raise ValueError("min_open_interest must be non-negative")
        if self.min_bid < 0:
            raise ValueError("min_bid must be non-negative")
        if not 0 <= self.otm_pct < 1:
            raise ValueError("otm_pct must be between 0 and 1")
        if self.min_width < 0:
            raise ValueError("min_width must be non-negative")
        if self.max_width <= self.min_width:
            raise ValueError("max_width must be > min_width")
