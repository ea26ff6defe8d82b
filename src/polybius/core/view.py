from __future__ import annotations

from datetime import datetime
from typing import Any

from ..models.record import AnalysisRecord, to_analysis_record
from .sections import (
    build_factor_analysis,
    build_historical,
    build_models,
    build_social_signals,
    build_summary,
    build_vital_signs,
    has_scores,
)
from .tiers import risk_tier, score_bar_percent, vitals_status

UPDATED_LABEL_FORMAT = "%a, %b %d, %I:%M %p"


def updated_label(generated_at: str) -> str:
    raw = (generated_at or "").strip()
    if not raw:
        return ""
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    return parsed.strftime(UPDATED_LABEL_FORMAT)


def classify(record: AnalysisRecord | Any) -> dict[str, Any]:
    """
    Derive the dashboard view for one analysis record.

    Pure and total: the record is never mutated and absent or malformed
    optional sections come back with ``visible`` false instead of raising.
    The producer's ``riskLevel`` label is surfaced next to the recomputed
    tier; the two are never reconciled.
    """
    if not isinstance(record, AnalysisRecord):
        record = to_analysis_record(record)

    score = record.aci_score
    tier = risk_tier(score)
    return {
        "generated_at": record.generated_at,
        "updated_label": updated_label(record.generated_at),
        "country": record.country,
        "aci_score": score,
        "aci_display": f"{score:.1f}",
        "producer_risk_level": record.risk_level,
        "risk": {"index": tier.index, "tier": tier.level, "color": tier.color},
        "probability": tier.probability,
        "score_bar": {"percent": score_bar_percent(score), "show_label": score > 15},
        "vitals": vitals_status(score),
        "has_scores": has_scores(record.scores),
        "is_placeholder": record.is_placeholder(),
        "sections": {
            "summary": build_summary(record),
            "vital_signs": build_vital_signs(record),
            "social_signals": build_social_signals(record.social_signals),
            "models": build_models(record.models_used),
            "factor_analysis": build_factor_analysis(record),
            "historical_comparison": build_historical(record.historical_comparison),
        },
    }
