"""SQLite database connection and initialization."""

import sqlite3
from pathlib import Path
from typing import Optional

from app.core.config import settings


def get_db(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """
    Get or create a SQLite database connection.

    Args:
        db_path: Database file to open (defaults to the configured path)

    Returns:
        SQLite connection object
    """
    conn = sqlite3.connect(str(db_path or settings.database_path))
    conn.row_factory = sqlite3.Row  # Enable column access by name
    # Required for ON DELETE CASCADE; off by default in SQLite
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: Optional[Path] = None) -> None:
    """
    Initialize the database with required tables.

    Creates tables if they don't exist:
    - analyses: One row per analyzed audio clip
    - threats: Threat findings, cascade-deleted with their analysis

    Args:
        db_path: Database file to initialize (defaults to the configured path)
    """
    conn = get_db(db_path)
    cursor = conn.cursor()

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS analyses (
            id TEXT PRIMARY KEY,
            filename TEXT NOT NULL,
            audio_format TEXT,
            transcription TEXT NOT NULL,
            risk_score INTEGER NOT NULL CHECK (risk_score BETWEEN 0 AND 100),
            status TEXT NOT NULL CHECK (status IN ('safe', 'suspicious', 'danger')),
            is_ai_generated INTEGER NOT NULL DEFAULT 0,
            confidence_score REAL NOT NULL DEFAULT 0,
            summary TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMP NOT NULL
        )
        """
    )

    # History is always listed newest first
    cursor.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_analyses_created_at
        ON analyses(created_at DESC)
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS threats (
            id TEXT PRIMARY KEY,
            analysis_id TEXT NOT NULL REFERENCES analyses(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            threat_type TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            recommendation TEXT NOT NULL DEFAULT '',
            severity TEXT NOT NULL CHECK (severity IN ('low', 'medium', 'high')),
            confidence REAL NOT NULL DEFAULT 0,
            start_index INTEGER,
            end_index INTEGER
        )
        """
    )

    cursor.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_threats_analysis_id
        ON threats(analysis_id, position)
        """
    )

    conn.commit()
    conn.close()
