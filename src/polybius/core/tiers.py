from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

# Upper bounds (exclusive) of every band but the last. Shared by the tier and
# the probability band so the two classifications can never disagree.
ACI_BREAKPOINTS: tuple[float, ...] = (25, 40, 50, 65, 80)


@dataclass(slots=True, frozen=True)
class RiskTier:
    index: int
    level: str
    color: str
    probability: str


RISK_TIERS: tuple[RiskTier, ...] = (
    RiskTier(0, "Stable Democracy", "green", "0-5%"),
    RiskTier(1, "Democratic Stress", "yellow", "5-15%"),
    RiskTier(2, "Competitive Authoritarian Risk", "orange", "15-35%"),
    RiskTier(3, "DANGER ZONE", "red", "35-60%"),
    RiskTier(4, "Consolidating Authoritarianism", "red-dark", "60-85%"),
    RiskTier(5, "Authoritarian Regime", "red-darkest", "85%+"),
)

VITALS_BREAKPOINTS: tuple[float, ...] = (40, 60)
VITALS_STATUSES = ("STABLE", "ELEVATED", "CRITICAL")
VITALS_PULSE_AT = 50


def band_index(score: float) -> int:
    # bisect_right places a score equal to a breakpoint in the band above it,
    # which is the strictly-less-than ladder. NaN compares false everywhere
    # and lands in the last band.
    return bisect_right(ACI_BREAKPOINTS, score)


def risk_tier(score: float) -> RiskTier:
    return RISK_TIERS[band_index(score)]


def probability_band(score: float) -> str:
    return RISK_TIERS[band_index(score)].probability


def vitals_status(score: float) -> dict[str, object]:
    return {
        "status": VITALS_STATUSES[bisect_right(VITALS_BREAKPOINTS, score)],
        "pulsing": score >= VITALS_PULSE_AT,
    }


def score_bar_percent(score: float) -> float:
    return max(min(score, 100.0), 3.0)


__all__ = [
    "ACI_BREAKPOINTS",
    "RISK_TIERS",
    "RiskTier",
    "band_index",
    "probability_band",
    "risk_tier",
    "score_bar_percent",
    "vitals_status",
]
