from __future__ import annotations

from dataclasses import dataclass

WARNING_MARGIN = 15

ALERT_CRITICAL = "critical"
ALERT_WARNING = "warning"
ALERT_NOMINAL = "nominal"


@dataclass(slots=True, frozen=True)
class Factor:
    id: str
    name: str
    danger_threshold: float

    @property
    def short_label(self) -> str:
        # "Federalism/Regional Resistance" -> "Federalism/ Regional"
        return " ".join(self.name.replace("/", "/ ").split(" ")[:2])

    @property
    def weight_label(self) -> str:
        return self.name.split("/")[0]


# Display order is significant.
FACTORS: tuple[Factor, ...] = (
    Factor("judicial", "Judicial Independence", 40),
    Factor("federalism", "Federalism/Regional Resistance", 50),
    Factor("political", "Political Competition", 55),
    Factor("media", "Media Capture", 70),
    Factor("civil", "Civil Society", 65),
    Factor("publicOpinion", "Public Opinion", 55),
    Factor("mobilizationalBalance", "Mobilizational Balance", 60),
    Factor("stateCapacity", "State Capacity", 60),
    Factor("corporateCompliance", "Corporate Compliance", 70),
    Factor("electionInterference", "Election Interference", 40),
)

FACTORS_BY_ID: dict[str, Factor] = {f.id: f for f in FACTORS}
FACTOR_IDS: tuple[str, ...] = tuple(f.id for f in FACTORS)


def get_factor(factor_id: str) -> Factor | None:
    return FACTORS_BY_ID.get(str(factor_id or ""))


def alert_state(score: float, factor: Factor | str) -> str:
    entry = factor if isinstance(factor, Factor) else FACTORS_BY_ID[factor]
    threshold = entry.danger_threshold
    if score >= threshold:
        return ALERT_CRITICAL
    if score >= threshold - WARNING_MARGIN:
        return ALERT_WARNING
    return ALERT_NOMINAL


def gauge_tone(score: float, alert: str) -> str:
    if alert != ALERT_NOMINAL:
        return alert
    return "low" if score < 30 else "normal"


def severity_band(score: float) -> str:
    """Fixed 40/60 banding used for evidence rows and the historical average."""
    if score >= 60:
        return "high"
    if score >= 40:
        return "elevated"
    return "low"


def weight_label(factor_id: str) -> str:
    factor = get_factor(factor_id)
    if factor is not None:
        return factor.weight_label
    return str(factor_id)


__all__ = [
    "ALERT_CRITICAL",
    "ALERT_NOMINAL",
    "ALERT_WARNING",
    "FACTORS",
    "FACTORS_BY_ID",
    "FACTOR_IDS",
    "Factor",
    "WARNING_MARGIN",
    "alert_state",
    "gauge_tone",
    "get_factor",
    "severity_band",
    "weight_label",
]
