from .record import (
    SOCIAL_SIGNAL_KEYS,
    AnalysisRecord,
    FactorResult,
    HistoricalCase,
    HistoricalComparison,
    ModelDescriptor,
    RawAnalysisRecord,
    SocialSignals,
    as_number,
    placeholder_record,
    to_analysis_record,
)

__all__ = [
    "SOCIAL_SIGNAL_KEYS",
    "AnalysisRecord",
    "FactorResult",
    "HistoricalCase",
    "HistoricalComparison",
    "ModelDescriptor",
    "RawAnalysisRecord",
    "SocialSignals",
    "as_number",
    "placeholder_record",
    "to_analysis_record",
]
