from __future__ import annotations

from dataclasses import dataclass

TREND_IMPROVING = "improving"
TREND_WORSENING = "worsening"
TREND_STABLE = "stable"
TREND_NONE = "none"


@dataclass(slots=True, frozen=True)
class TrendRule:
    direction: str
    needles: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(n in text for n in self.needles)


# Evaluated in order; the first matching rule wins.
TREND_RULES: tuple[TrendRule, ...] = (
    TrendRule(TREND_IMPROVING, ("improv",)),
    TrendRule(TREND_WORSENING, ("deter", "worsen")),
    TrendRule(TREND_STABLE, ("stable",)),
)


def trend_of(label: str | None, rules: tuple[TrendRule, ...] = TREND_RULES) -> str:
    text = str(label or "").lower()
    if not text:
        return TREND_NONE
    for rule in rules:
        if rule.matches(text):
            return rule.direction
    return TREND_NONE


__all__ = [
    "TREND_IMPROVING",
    "TREND_NONE",
    "TREND_RULES",
    "TREND_STABLE",
    "TREND_WORSENING",
    "TrendRule",
    "trend_of",
]
