"""SQLite storage for analyses and their threat findings."""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from app.db.database import get_db
from app.models.analysis import (
    AnalysisRecord,
    AnalysisResult,
    AudioFormat,
    RiskStatus,
    Severity,
    ThreatFinding,
)
from app.repositories.base import AnalysisRepository
from app.services.classifier import classify
from app.services.highlighter import normalize_span

logger = logging.getLogger(__name__)


class SQLiteAnalysisRepository(AnalysisRepository):
    """
    Repository for analyses stored in SQLite.

    The record row and the threat rows are written in separate transactions.
    If the threats insert fails the record is kept and the failure is only
    logged, so a stored record may have fewer threats than its analysis.
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """
        Initialize the repository.

        Args:
            db_path: Database file (defaults to the configured path)
        """
        self.db_path = db_path

    async def create(
        self,
        filename: str,
        transcription: str,
        result: AnalysisResult,
        audio_format: AudioFormat | None = None,
    ) -> AnalysisRecord:
        status = classify(result.risk_score).status
        if result.status != status:
            logger.warning(
                f"Ignoring status {result.status.value} for score {result.risk_score}, "
                f"storing {status.value}"
            )

        record = AnalysisRecord(
            id=uuid.uuid4().hex,
            filename=filename,
            created_at=datetime.now(timezone.utc),
            transcription=transcription,
            risk_score=result.risk_score,
            status=status,
            is_ai_generated=result.is_ai_generated,
            confidence_score=result.confidence_score,
            summary=result.summary or "",
            audio_format=audio_format,
        )

        conn = get_db(self.db_path)
        try:
            conn.execute(
                """
                INSERT INTO analyses (
                    id, filename, audio_format, transcription, risk_score, status,
                    is_ai_generated, confidence_score, summary, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.filename,
                    record.audio_format.value if record.audio_format else None,
                    record.transcription,
                    record.risk_score,
                    record.status.value,
                    1 if record.is_ai_generated else 0,
                    record.confidence_score,
                    record.summary,
                    record.created_at.isoformat(),
                ),
            )
            conn.commit()
        finally:
            conn.close()

        findings = []
        for threat in result.threats:
            bounds = normalize_span(threat.start_index, threat.end_index, len(transcription))
            findings.append(
                ThreatFinding(
                    id=uuid.uuid4().hex,
                    threat_type=threat.threat_type,
                    description=threat.description,
                    recommendation=threat.recommendation,
                    severity=threat.severity,
                    confidence=threat.confidence,
                    start_index=bounds[0] if bounds else None,
                    end_index=bounds[1] if bounds else None,
                )
            )

        if findings:
            try:
                self._insert_threats(record.id, findings)
                record.threats = findings
            except sqlite3.Error as e:
                logger.error(f"Failed to save threats for analysis {record.id}: {e}", exc_info=True)

        logger.info(
            f"Saved analysis {record.id} ({record.status.value}, score {record.risk_score}, "
            f"{len(record.threats)} threats)"
        )
        return record

    def _insert_threats(self, analysis_id: str, findings: list[ThreatFinding]) -> None:
        conn = get_db(self.db_path)
        try:
            conn.executemany(
                """
                INSERT INTO threats (
                    id, analysis_id, position, threat_type, description,
                    recommendation, severity, confidence, start_index, end_index
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        finding.id,
                        analysis_id,
                        position,
                        finding.threat_type,
                        finding.description,
                        finding.recommendation,
                        finding.severity.value,
                        finding.confidence,
                        finding.start_index,
                        finding.end_index,
                    )
                    for position, finding in enumerate(findings)
                ],
            )
            conn.commit()
        finally:
            conn.close()

    async def get(self, analysis_id: str) -> AnalysisRecord | None:
        conn = get_db(self.db_path)
        try:
            row = conn.execute("SELECT * FROM analyses WHERE id = ?", (analysis_id,)).fetchone()
            if not row:
                return None
            threats = self._load_threats(conn, [analysis_id])
        finally:
            conn.close()

        return self._row_to_record(row, threats.get(analysis_id, []))

    async def list_recent(self, limit: int | None = None) -> list[AnalysisRecord]:
        query = "SELECT * FROM analyses ORDER BY created_at DESC, rowid DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)

        conn = get_db(self.db_path)
        try:
            rows = conn.execute(query, params).fetchall()
            threats = self._load_threats(conn, [row["id"] for row in rows])
        finally:
            conn.close()

        return [self._row_to_record(row, threats.get(row["id"], [])) for row in rows]

    async def delete(self, analysis_id: str) -> bool:
        conn = get_db(self.db_path)
        try:
            cursor = conn.execute("DELETE FROM analyses WHERE id = ?", (analysis_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()

        if deleted:
            logger.info(f"Deleted analysis {analysis_id}")
        return deleted

    def _load_threats(
        self, conn: sqlite3.Connection, analysis_ids: list[str]
    ) -> dict[str, list[ThreatFinding]]:
        """Load threats for the given analyses, grouped by analysis id in insertion order."""
        grouped: dict[str, list[ThreatFinding]] = {}
        if not analysis_ids:
            return grouped

        # Chunked to stay under SQLite's bound parameter limit
        for offset in range(0, len(analysis_ids), 500):
            chunk = analysis_ids[offset : offset + 500]
            placeholders = ", ".join("?" for _ in chunk)
            rows = conn.execute(
                f"""
                SELECT * FROM threats
                WHERE analysis_id IN ({placeholders})
                ORDER BY analysis_id, position
                """,
                chunk,
            ).fetchall()
            for row in rows:
                grouped.setdefault(row["analysis_id"], []).append(
                    ThreatFinding(
                        id=row["id"],
                        threat_type=row["threat_type"],
                        description=row["description"],
                        recommendation=row["recommendation"],
                        severity=Severity(row["severity"]),
                        confidence=row["confidence"],
                        start_index=row["start_index"],
                        end_index=row["end_index"],
                    )
                )
        return grouped

    def _row_to_record(self, row: sqlite3.Row, threats: list[ThreatFinding]) -> AnalysisRecord:
        return AnalysisRecord(
            id=row["id"],
            filename=row["filename"],
            created_at=datetime.fromisoformat(row["created_at"]),
            transcription=row["transcription"],
            risk_score=row["risk_score"],
            status=RiskStatus(row["status"]),
            is_ai_generated=bool(row["is_ai_generated"]),
            confidence_score=row["confidence_score"],
            summary=row["summary"],
            audio_format=AudioFormat(row["audio_format"]) if row["audio_format"] else None,
            threats=threats,
        )
