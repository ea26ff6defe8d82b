from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, TypedDict


class RawFactorResult(TypedDict, total=False):
    score: float
    evidence: str
    trend: str


class RawHistoricalCase(TypedDict, total=False):
    country: str
    period: str
    outcome: str


class RawSocialSignals(TypedDict, total=False):
    trends: dict[str, Any] | None
    opEds: dict[str, Any] | None
    eliteSignals: dict[str, Any] | None
    bluesky: dict[str, Any] | None
    marketSignals: dict[str, Any] | None


class RawAnalysisRecord(TypedDict, total=False):
    generatedAt: str
    country: str
    aciScore: float
    riskLevel: str
    scores: dict[str, float]
    summary: str
    factorResults: dict[str, RawFactorResult]
    historicalComparison: dict[str, Any]
    socialSignals: RawSocialSignals
    modelsUsed: list[dict[str, Any]]


SOCIAL_SIGNAL_KEYS = ("trends", "opEds", "eliteSignals", "bluesky", "marketSignals")

PLACEHOLDER_SUMMARY = (
    "No results have been published yet. Results are generated by the analysis tool "
    "and published here when a new run completes."
)


@dataclass(slots=True, frozen=True)
class FactorResult:
    score: float
    evidence: str = ""
    trend: str = ""


@dataclass(slots=True, frozen=True)
class HistoricalCase:
    country: str
    period: str
    outcome: str


@dataclass(slots=True, frozen=True)
class HistoricalComparison:
    average_score: float
    most_similar_cases: tuple[HistoricalCase, ...] = ()
    interpretation: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class SocialSignals:
    """Producer-defined payloads, kept as plain mappings; ``None`` means the source is absent."""

    trends: Mapping[str, Any] | None = None
    op_eds: Mapping[str, Any] | None = None
    elite_signals: Mapping[str, Any] | None = None
    bluesky: Mapping[str, Any] | None = None
    market_signals: Mapping[str, Any] | None = None

    def any_present(self) -> bool:
        return any(
            source is not None
            for source in (self.trends, self.op_eds, self.elite_signals, self.bluesky, self.market_signals)
        )


@dataclass(slots=True, frozen=True)
class ModelDescriptor:
    id: str
    name: str
    author: str = ""
    cluster: str = ""
    short_desc: str = ""
    full_desc: str = ""
    key_works: str = ""
    weights: Mapping[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class AnalysisRecord:
    generated_at: str
    country: str
    aci_score: float
    risk_level: str
    scores: Mapping[str, float] = field(default_factory=dict)
    summary: str = ""
    factor_results: Mapping[str, FactorResult] = field(default_factory=dict)
    historical_comparison: HistoricalComparison | None = None
    social_signals: SocialSignals | None = None
    models_used: tuple[ModelDescriptor, ...] | None = None

    def is_placeholder(self) -> bool:
        return self.aci_score == 0 and not self.scores


def as_number(value: Any, default: float = 0.0) -> float:
    """Coerce a JSON scalar to a finite float; booleans, containers and non-finite values fall back."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def as_lines(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(as_text(line) for line in value if line is not None)


def _scores(value: Any) -> dict[str, float]:
    raw = as_mapping(value) or {}
    return {str(k): as_number(v) for k, v in raw.items()}


def _factor_results(value: Any) -> dict[str, FactorResult]:
    raw = as_mapping(value) or {}
    results: dict[str, FactorResult] = {}
    for factor_id, item in raw.items():
        data = as_mapping(item)
        if data is None:
            continue
        results[str(factor_id)] = FactorResult(
            score=as_number(data.get("score")),
            evidence=as_text(data.get("evidence")),
            trend=as_text(data.get("trend")),
        )
    return results


def _historical(value: Any) -> HistoricalComparison | None:
    data = as_mapping(value)
    if data is None:
        return None
    cases: list[HistoricalCase] = []
    raw_cases = data.get("mostSimilarCases")
    for item in raw_cases if isinstance(raw_cases, (list, tuple)) else []:
        case = as_mapping(item)
        if case is None:
            continue
        cases.append(
            HistoricalCase(
                country=as_text(case.get("country")),
                period=as_text(case.get("period")),
                outcome=as_text(case.get("outcome")),
            )
        )
    return HistoricalComparison(
        average_score=as_number(data.get("averageScore")),
        most_similar_cases=tuple(cases),
        interpretation=as_lines(data.get("interpretation")),
    )


def _social(value: Any) -> SocialSignals | None:
    data = as_mapping(value)
    if data is None:
        return None
    return SocialSignals(
        trends=as_mapping(data.get("trends")),
        op_eds=as_mapping(data.get("opEds")),
        elite_signals=as_mapping(data.get("eliteSignals")),
        bluesky=as_mapping(data.get("bluesky")),
        market_signals=as_mapping(data.get("marketSignals")),
    )


def _models(value: Any) -> tuple[ModelDescriptor, ...] | None:
    if not isinstance(value, (list, tuple)):
        return None
    models: list[ModelDescriptor] = []
    for idx, item in enumerate(value):
        data = as_mapping(item)
        if data is None:
            continue
        raw_weights = as_mapping(data.get("weights")) or {}
        weights = {
            str(k): float(v)
            for k, v in raw_weights.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
        }
        models.append(
            ModelDescriptor(
                id=as_text(data.get("id")) or f"model-{idx + 1}",
                name=as_text(data.get("name")),
                author=as_text(data.get("author")),
                cluster=as_text(data.get("cluster")),
                short_desc=as_text(data.get("shortDesc")),
                full_desc=as_text(data.get("fullDesc")),
                key_works=as_text(data.get("keyWorks")),
                weights=weights,
            )
        )
    return tuple(models)


def to_analysis_record(payload: Any) -> AnalysisRecord:
    """Build an :class:`AnalysisRecord` from a decoded artifact.

    Never raises: missing or mistyped fields fall back to empty values and
    optional sections become ``None`` when absent.
    """
    data = as_mapping(payload) or {}
    return AnalysisRecord(
        generated_at=as_text(data.get("generatedAt")),
        country=as_text(data.get("country")),
        aci_score=as_number(data.get("aciScore")),
        risk_level=as_text(data.get("riskLevel")),
        scores=_scores(data.get("scores")),
        summary=as_text(data.get("summary")),
        factor_results=_factor_results(data.get("factorResults")),
        historical_comparison=_historical(data.get("historicalComparison")),
        social_signals=_social(data.get("socialSignals")),
        models_used=_models(data.get("modelsUsed")),
    )


def placeholder_record(*, country: str = "United States") -> RawAnalysisRecord:
    return {
        "generatedAt": datetime.utcnow().isoformat() + "Z",
        "country": country,
        "aciScore": 0,
        "riskLevel": "Awaiting Analysis",
        "scores": {},
        "summary": PLACEHOLDER_SUMMARY,
        "factorResults": {},
    }
