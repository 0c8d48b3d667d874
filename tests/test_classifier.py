"""Tests for risk score classification."""

import pytest

from app.models.analysis import RiskStatus
from app.services.classifier import ColorTier, clamp_risk_score, classify


@pytest.mark.parametrize(
    "score, status",
    [
        (0, RiskStatus.SAFE),
        (29, RiskStatus.SAFE),
        (30, RiskStatus.SUSPICIOUS),
        (69, RiskStatus.SUSPICIOUS),
        (70, RiskStatus.DANGER),
        (100, RiskStatus.DANGER),
    ],
)
def test_classify_boundaries(score: int, status: RiskStatus) -> None:
    """Thresholds are exclusive of the upper bound."""
    assert classify(score).status == status


def test_every_score_has_exactly_one_status() -> None:
    for score in range(0, 101):
        assert classify(score).status in set(RiskStatus)


def test_labels_and_color_tiers() -> None:
    safe = classify(10)
    assert (safe.label, safe.color_tier) == ("Safe", ColorTier.SUCCESS)

    suspicious = classify(50)
    assert (suspicious.label, suspicious.color_tier) == ("Suspicious", ColorTier.WARNING)

    danger = classify(90)
    assert (danger.label, danger.color_tier) == ("High Risk", ColorTier.DESTRUCTIVE)


def test_out_of_range_scores_are_clamped() -> None:
    assert classify(-20).status == RiskStatus.SAFE
    assert classify(250).status == RiskStatus.DANGER


def test_clamp_risk_score_rounds_half_up() -> None:
    assert clamp_risk_score(29.5) == 30
    assert clamp_risk_score(29.4) == 29
    assert clamp_risk_score(-3) == 0
    assert clamp_risk_score(101.2) == 100
