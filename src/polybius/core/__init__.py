from .factors import FACTORS, alert_state
from .sections import model_weights
from .tiers import probability_band, risk_tier
from .trends import trend_of
from .view import classify

__all__ = ["FACTORS", "alert_state", "classify", "model_weights", "probability_band", "risk_tier", "trend_of"]
