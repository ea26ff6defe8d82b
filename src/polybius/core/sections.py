from __future__ import annotations

import math
from typing import Any, Mapping

from ..models.record import (
    AnalysisRecord,
    HistoricalComparison,
    ModelDescriptor,
    SocialSignals,
    as_lines,
    as_mapping,
    as_number,
    as_text,
)
from .factors import FACTORS, alert_state, gauge_tone, severity_band, weight_label
from .trends import trend_of

SECTION_ABSENT = "absent"
SECTION_EMPTY = "empty"
SECTION_PRESENT = "present"

MAX_HISTORICAL_CASES = 3
MAX_HIGHLIGHTS = 3


def section(status: str, **content: Any) -> dict[str, Any]:
    return {"status": status, "visible": status == SECTION_PRESENT, **content}


def _get(data: Mapping[str, Any] | None, *path: str) -> Any:
    node: Any = data
    for key in path:
        node = as_mapping(node)
        if node is None:
            return None
        node = node.get(key)
    return node


def _items(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _count(value: Any) -> int:
    number = as_number(value)
    return int(number) if math.isfinite(number) else 0


def temperature_band(value: float) -> str:
    if value < 40:
        return "low"
    if value < 70:
        return "moderate"
    return "high"


def pressure_band(value: float) -> str:
    if value > 70:
        return "high"
    if value > 40:
        return "moderate"
    return "low"


def has_scores(scores: Mapping[str, float]) -> bool:
    return bool(scores) and any(v > 0 for v in scores.values())


# --- vital signs / factor analysis ---------------------------------------------------------


def build_vital_signs(record: AnalysisRecord) -> dict[str, Any]:
    if not record.scores:
        return section(SECTION_ABSENT, factors=[])
    if not has_scores(record.scores):
        return section(SECTION_EMPTY, factors=[])

    rows: list[dict[str, Any]] = []
    for factor in FACTORS:
        score = record.scores.get(factor.id, 0.0)
        result = record.factor_results.get(factor.id)
        alert = alert_state(score, factor)
        rows.append(
            {
                "id": factor.id,
                "name": factor.name,
                "short_label": factor.short_label,
                "score": score,
                "danger_threshold": factor.danger_threshold,
                "alert": alert,
                "gauge_tone": gauge_tone(score, alert),
                "trend": trend_of(result.trend if result else ""),
            }
        )
    return section(SECTION_PRESENT, factors=rows)


def build_factor_analysis(record: AnalysisRecord) -> dict[str, Any]:
    if not record.factor_results:
        return section(SECTION_ABSENT, factors=[])

    rows: list[dict[str, Any]] = []
    for factor in FACTORS:
        result = record.factor_results.get(factor.id)
        if result is None:
            continue
        rows.append(
            {
                "id": factor.id,
                "name": factor.name,
                "score": result.score,
                "severity": severity_band(result.score),
                "trend": trend_of(result.trend),
                "evidence": result.evidence,
            }
        )
    return section(SECTION_PRESENT if rows else SECTION_EMPTY, factors=rows)


# --- historical comparison -----------------------------------------------------------------


def _case_tone(outcome: str) -> str:
    if outcome == "consolidated":
        return "consolidated"
    if outcome == "resisted":
        return "resisted"
    return "other"


def _line_tone(line: str) -> str:
    text = line.lower()
    if "warning" in text:
        return "warning"
    if "hopeful" in text:
        return "hopeful"
    return "neutral"


def build_historical(comparison: HistoricalComparison | None) -> dict[str, Any]:
    if comparison is None:
        return section(SECTION_ABSENT)
    # Producer order is kept; only the head of the list is surfaced.
    cases = [
        {"country": c.country, "period": c.period, "outcome": c.outcome, "tone": _case_tone(c.outcome)}
        for c in comparison.most_similar_cases[:MAX_HISTORICAL_CASES]
    ]
    lines = [{"text": line, "tone": _line_tone(line)} for line in comparison.interpretation]
    status = SECTION_PRESENT if (cases or lines) else SECTION_EMPTY
    return section(
        status,
        average_score=comparison.average_score,
        average_band=severity_band(comparison.average_score),
        cases=cases,
        interpretation=lines,
    )


# --- social signals ------------------------------------------------------------------------


def _trends_block(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    temperature = as_number(data.get("overallTemperature"))
    return {
        "country": as_text(data.get("country")),
        "temperature": temperature,
        "temperature_band": temperature_band(temperature),
        "interpretation": list(as_lines(data.get("interpretation"))),
    }


def _op_eds_block(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    moments: list[dict[str, Any]] = []
    for item in _items(data.get("nixonMoments"))[:MAX_HIGHLIGHTS]:
        article = as_mapping(item)
        if article is None:
            continue
        moments.append(
            {
                "source": as_text(_get(article, "source", "name")),
                "title": as_text(article.get("title")),
                "nixon_type": as_text(article.get("nixonType")),
            }
        )
    return {
        "total_articles": _count(data.get("totalArticles")),
        "nixon_moments": moments,
        "interpretation": list(as_lines(data.get("interpretation"))),
    }


def _elite_block(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    coordination = as_number(_get(data, "defections", "coordinationScore"))
    propaganda = as_number(_get(data, "propaganda", "effectivenessScore"))
    defections: list[dict[str, Any]] = []
    for item in _items(_get(data, "defections", "articles"))[:MAX_HIGHLIGHTS]:
        article = as_mapping(item)
        if article is None:
            continue
        defections.append(
            {
                "figure": as_text(article.get("figure")),
                "role": as_text(article.get("figureRole")),
                "description": as_text(article.get("description")),
                "severity": as_number(article.get("severity")),
            }
        )
    return {
        "coordination_score": coordination,
        "coordination_band": pressure_band(coordination),
        "propaganda_score": propaganda,
        "propaganda_band": pressure_band(propaganda),
        "total_defections": _count(_get(data, "defections", "totalFound")),
        "defections": defections,
        "interpretation": list(as_lines(data.get("interpretation"))),
    }


def _discourse_block(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    temperature = as_number(data.get("temperature"))
    breakdown = as_mapping(data.get("sentimentBreakdown")) or {}
    return {
        "country": as_text(data.get("country")),
        "total_posts": _count(data.get("totalPosts")),
        "temperature": temperature,
        "temperature_band": temperature_band(temperature),
        "sentiment": {k: _count(breakdown.get(k)) for k in ("negative", "neutral", "positive")},
        "interpretation": list(as_lines(data.get("interpretation"))),
    }


def _implication_tone(value: str) -> str:
    if value == "markets_constraining":
        return "constraining"
    if value == "markets_enabling":
        return "enabling"
    return "neutral"


def _market_block(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    week_change = as_number(_get(data, "marketConditions", "sp500", "weekChange"))
    implication = as_text(_get(data, "overallAssessment", "consolidationImplication"))
    taco = as_mapping(data.get("tacoPatternAnalysis"))
    return {
        "constraint_level": as_text(_get(data, "overallAssessment", "marketConstraintLevel")),
        "implication": implication,
        "implication_tone": _implication_tone(implication),
        "summary": as_text(_get(data, "overallAssessment", "summary")),
        "sp500": {
            "level": as_number(_get(data, "marketConditions", "sp500", "level")),
            "week_change": week_change,
            "week_change_label": f"{'+' if week_change >= 0 else ''}{week_change:.1f}%",
        },
        "treasury10y": {
            "yield": as_number(_get(data, "marketConditions", "treasury10y", "yield")),
            "trend": as_text(_get(data, "marketConditions", "treasury10y", "trend")),
        },
        "vix": {
            "level": as_number(_get(data, "marketConditions", "vix", "level")),
            "interpretation": as_text(_get(data, "marketConditions", "vix", "interpretation")),
        },
        "taco_pattern": (
            {
                "instances_last_90_days": _count(taco.get("instancesLast90Days")),
                "pattern_holding": bool(taco.get("patternHolding")),
                "summary": as_text(taco.get("summary")),
            }
            if taco is not None
            else None
        ),
    }


def build_social_signals(signals: SocialSignals | None) -> dict[str, Any]:
    blocks = {
        "trends": None,
        "op_eds": None,
        "elite_signals": None,
        "bluesky": None,
        "market_signals": None,
    }
    if signals is None:
        return section(SECTION_ABSENT, **blocks)
    if not signals.any_present():
        return section(SECTION_EMPTY, **blocks)
    blocks.update(
        trends=_trends_block(signals.trends),
        op_eds=_op_eds_block(signals.op_eds),
        elite_signals=_elite_block(signals.elite_signals),
        bluesky=_discourse_block(signals.bluesky),
        market_signals=_market_block(signals.market_signals),
    )
    return section(SECTION_PRESENT, **blocks)


# --- theoretical models --------------------------------------------------------------------


def _percent(weight: float) -> int:
    if not math.isfinite(weight):
        return 0
    return int(math.floor(weight * 100 + 0.5))


def model_weights(weights: Mapping[str, float]) -> list[dict[str, Any]]:
    positive = [(factor_id, w) for factor_id, w in weights.items() if w > 0]
    # sorted() is stable with reverse=True, so equal weights keep mapping order.
    ordered = sorted(positive, key=lambda item: item[1], reverse=True)
    return [
        {
            "factor": factor_id,
            "label": weight_label(factor_id),
            "weight": w,
            "percent": _percent(w),
        }
        for factor_id, w in ordered
    ]


def _model_entry(model: ModelDescriptor) -> dict[str, Any]:
    return {
        "id": model.id,
        "name": model.name,
        "author": model.author,
        "cluster": model.cluster,
        "short_desc": model.short_desc,
        "full_desc": model.full_desc,
        "key_works": model.key_works,
        "weights": model_weights(model.weights),
    }


def build_models(models: tuple[ModelDescriptor, ...] | None) -> dict[str, Any]:
    if models is None:
        return section(SECTION_ABSENT, count=0, models=[])
    if not models:
        return section(SECTION_EMPTY, count=0, models=[])
    return section(SECTION_PRESENT, count=len(models), models=[_model_entry(m) for m in models])


def build_summary(record: AnalysisRecord) -> dict[str, Any]:
    text = record.summary.strip()
    return section(SECTION_PRESENT if text else SECTION_ABSENT, text=record.summary)
