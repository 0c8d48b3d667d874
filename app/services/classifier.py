"""Risk score classification.

``classify`` is the only place a status is derived from a score. Stored
records, API responses and live snapshots all go through it.
"""

import math
from dataclasses import dataclass
from enum import Enum

from app.models.analysis import RiskStatus

SUSPICIOUS_THRESHOLD = 30
DANGER_THRESHOLD = 70


class ColorTier(str, Enum):
    """Display tier used by clients to pick a color."""

    SUCCESS = "success"
    WARNING = "warning"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Classification:
    status: RiskStatus
    label: str
    color_tier: ColorTier


_SAFE = Classification(RiskStatus.SAFE, "Safe", ColorTier.SUCCESS)
_SUSPICIOUS = Classification(RiskStatus.SUSPICIOUS, "Suspicious", ColorTier.WARNING)
_DANGER = Classification(RiskStatus.DANGER, "High Risk", ColorTier.DESTRUCTIVE)


def clamp_risk_score(risk_score: float) -> int:
    """
    Normalize a risk score to an integer in [0, 100].

    Fractional scores are rounded half up.

    Args:
        risk_score: Raw score, possibly fractional or out of range

    Returns:
        Integer score in [0, 100]
    """
    return max(0, min(100, math.floor(risk_score + 0.5)))


def classify(risk_score: float) -> Classification:
    """
    Classify a risk score into a status, label and color tier.

    Args:
        risk_score: Score to classify, clamped to [0, 100] first

    Returns:
        Classification for the score
    """
    score = clamp_risk_score(risk_score)
    if score < SUSPICIOUS_THRESHOLD:
        return _SAFE
    if score < DANGER_THRESHOLD:
        return _SUSPICIOUS
    return _DANGER
