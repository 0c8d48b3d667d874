"""Report and CSV exports of stored analyses."""

import csv
import io
from typing import Iterable

from app.models.analysis import AnalysisRecord
from app.services.classifier import classify
from app.services.highlighter import SegmentKind, highlight, spans_from_threats

CSV_COLUMNS = [
    "id",
    "created_at",
    "filename",
    "status",
    "risk_score",
    "is_ai_generated",
    "confidence_score",
    "threat_count",
    "threat_types",
    "summary",
    "transcription",
]


def _percent(value: float) -> str:
    return f"{round(value * 100)}%"


def render_report(record: AnalysisRecord) -> str:
    """
    Render a single analysis as a Markdown report.

    Flagged passages of the transcript are shown in bold.

    Args:
        record: Analysis to render

    Returns:
        Markdown document
    """
    classification = classify(record.risk_score)
    lines = [
        f"# Threat Analysis Report: {record.filename}",
        "",
        f"- **Analysis ID:** {record.id}",
        f"- **Date:** {record.created_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        f"- **Risk Score:** {record.risk_score}/100 ({classification.label})",
        f"- **AI-Generated Voice:** {'Yes' if record.is_ai_generated else 'No'}",
        f"- **Confidence:** {_percent(record.confidence_score)}",
        "",
        "## Summary",
        "",
        record.summary or "No summary available.",
        "",
        f"## Detected Threats ({len(record.threats)})",
        "",
    ]

    if not record.threats:
        lines.append("No threats detected.")
        lines.append("")
    for index, threat in enumerate(record.threats, start=1):
        lines.extend(
            [
                f"### {index}. {threat.threat_type} ({threat.severity.value} severity, "
                f"{_percent(threat.confidence)} confidence)",
                "",
                threat.description or "No description.",
                "",
                f"**Recommendation:** {threat.recommendation or 'None'}",
                "",
            ]
        )

    lines.extend(["## Transcription", ""])
    if record.transcription:
        segments = highlight(record.transcription, spans_from_threats(record.threats))
        lines.append(
            "".join(
                f"**{segment.text}**" if segment.kind == SegmentKind.FLAGGED else segment.text
                for segment in segments
            )
        )
    else:
        lines.append("No transcription available.")

    return "\n".join(lines) + "\n"


def export_csv(records: Iterable[AnalysisRecord]) -> str:
    """
    Export analyses as CSV, one row per analysis.

    Args:
        records: Analyses to export

    Returns:
        CSV text with a header row
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for record in records:
        writer.writerow(
            [
                record.id,
                record.created_at.isoformat(),
                record.filename,
                record.status.value,
                record.risk_score,
                "true" if record.is_ai_generated else "false",
                f"{record.confidence_score:.2f}",
                len(record.threats),
                "; ".join(threat.threat_type for threat in record.threats),
                record.summary,
                record.transcription,
            ]
        )
    return buffer.getvalue()
