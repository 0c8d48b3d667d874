"""Repository layer for data access."""

from app.repositories.analysis_store import SQLiteAnalysisRepository
from app.repositories.base import AnalysisRepository

__all__ = ["AnalysisRepository", "SQLiteAnalysisRepository"]
