"""Base repository interface for stored analyses."""

from abc import ABC, abstractmethod

from app.models.analysis import AnalysisRecord, AnalysisResult, AudioFormat


class AnalysisRepository(ABC):
    """
    Abstract base class for analysis storage.

    Records are append-only: there is no update operation.
    """

    @abstractmethod
    async def create(
        self,
        filename: str,
        transcription: str,
        result: AnalysisResult,
        audio_format: AudioFormat | None = None,
    ) -> AnalysisRecord:
        """
        Store an analysis and its threats.

        Args:
            filename: Display name of the source audio
            transcription: Full transcript
            result: Analysis result to store
            audio_format: Format of the source audio, if any

        Returns:
            The stored record
        """
        pass

    @abstractmethod
    async def get(self, analysis_id: str) -> AnalysisRecord | None:
        """
        Retrieve a single analysis by id.

        Args:
            analysis_id: Record identifier

        Returns:
            Record or None if not found
        """
        pass

    @abstractmethod
    async def list_recent(self, limit: int | None = None) -> list[AnalysisRecord]:
        """
        Retrieve analyses, newest first.

        Args:
            limit: Maximum number of records, None for all

        Returns:
            List of records with their threats
        """
        pass

    @abstractmethod
    async def delete(self, analysis_id: str) -> bool:
        """
        Delete an analysis and its threats.

        Args:
            analysis_id: Record identifier

        Returns:
            True if a record was deleted
        """
        pass
