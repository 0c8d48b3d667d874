"""Aggregate statistics over past analyses."""

import math
from dataclasses import dataclass
from typing import Iterable

from app.models.analysis import AnalysisRecord, RiskStatus


@dataclass(frozen=True)
class Stats:
    total_scans: int = 0
    threat_detected: int = 0
    safe_scans: int = 0
    avg_risk_score: int = 0


def compute_stats(records: Iterable[AnalysisRecord]) -> Stats:
    """
    Reduce analyses into counts and the average risk score.

    The average is rounded half up; an empty collection yields all zeros.

    Args:
        records: Analyses to aggregate, in any order

    Returns:
        Aggregated statistics
    """
    total = 0
    danger = 0
    safe = 0
    score_sum = 0

    for record in records:
        total += 1
        score_sum += record.risk_score
        if record.status == RiskStatus.DANGER:
            danger += 1
        elif record.status == RiskStatus.SAFE:
            safe += 1

    if total == 0:
        return Stats()

    return Stats(
        total_scans=total,
        threat_detected=danger,
        safe_scans=safe,
        avg_risk_score=math.floor(score_sum / total + 0.5),
    )
