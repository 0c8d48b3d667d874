"""Tests for report and CSV exports."""

import csv
import io
from datetime import datetime, timezone

from app.models.analysis import AnalysisRecord, RiskStatus, Severity, ThreatFinding
from app.services.export_service import CSV_COLUMNS, export_csv, render_report


def _record(**overrides) -> AnalysisRecord:
    values = dict(
        id="abc123",
        filename="voicemail.mp3",
        created_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        transcription="Act now, verify your account immediately",
        risk_score=85,
        status=RiskStatus.DANGER,
        is_ai_generated=True,
        confidence_score=0.92,
        summary="Urgency tactics combined with an account verification request.",
        threats=[
            ThreatFinding(
                id="t1",
                threat_type="Urgency Pressure",
                description="Pushes the listener to act immediately",
                recommendation="Do not act on the call",
                severity=Severity.HIGH,
                confidence=0.9,
                start_index=0,
                end_index=7,
            ),
            ThreatFinding(
                id="t2",
                threat_type="AI Voice Detected",
                description="",
                recommendation="",
                severity=Severity.MEDIUM,
                confidence=0.6,
            ),
        ],
    )
    values.update(overrides)
    return AnalysisRecord(**values)


def test_report_contains_metadata_and_threats() -> None:
    report = render_report(_record())

    assert report.startswith("# Threat Analysis Report: voicemail.mp3\n")
    assert "- **Risk Score:** 85/100 (High Risk)" in report
    assert "- **AI-Generated Voice:** Yes" in report
    assert "- **Confidence:** 92%" in report
    assert "## Detected Threats (2)" in report
    assert "### 1. Urgency Pressure (high severity, 90% confidence)" in report
    assert "### 2. AI Voice Detected (medium severity, 60% confidence)" in report
    assert "**Recommendation:** Do not act on the call" in report


def test_report_bolds_flagged_transcript() -> None:
    report = render_report(_record())

    assert "**Act now**, verify your account immediately" in report


def test_report_without_threats() -> None:
    report = render_report(_record(threats=[], risk_score=5, status=RiskStatus.SAFE, summary=""))

    assert "(Safe)" in report
    assert "No threats detected." in report
    assert "No summary available." in report


def test_csv_has_header_and_one_row_per_record() -> None:
    records = [_record(), _record(id="def456", threats=[], is_ai_generated=False)]

    rows = list(csv.reader(io.StringIO(export_csv(records))))

    assert rows[0] == CSV_COLUMNS
    assert len(rows) == 3
    first = dict(zip(CSV_COLUMNS, rows[1]))
    assert first["status"] == "danger"
    assert first["is_ai_generated"] == "true"
    assert first["confidence_score"] == "0.92"
    assert first["threat_count"] == "2"
    assert first["threat_types"] == "Urgency Pressure; AI Voice Detected"
    second = dict(zip(CSV_COLUMNS, rows[2]))
    assert second["is_ai_generated"] == "false"
    assert second["threat_types"] == ""


def test_csv_empty() -> None:
    rows = list(csv.reader(io.StringIO(export_csv([]))))

    assert rows == [CSV_COLUMNS]
