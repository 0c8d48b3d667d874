"""Upload -> transcribe -> analyze -> persist, as one unit of work."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Callable, Optional, Protocol

from app.core.config import settings
from app.core.exceptions import (
    PayloadTooLargeError,
    TranscriptionError,
    UnsupportedAudioFormatError,
)
from app.models.analysis import AnalysisRecord, AnalysisResult, AudioFormat, AudioUpload
from app.repositories.base import AnalysisRepository
from app.services.analysis_service import AnalysisService

logger = logging.getLogger(__name__)


class ProcessingPhase(str, Enum):
    """Progress phases reported while an upload is processed."""

    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    SAVING = "saving"
    COMPLETE = "complete"


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes, audio_format: AudioFormat) -> str:
        ...


@dataclass
class ProcessedAudio:
    transcription: str
    analysis: AnalysisResult
    audio_format: AudioFormat


def detect_audio_format(content_type: str | None, filename: str | None = None) -> AudioFormat:
    """
    Work out the declared audio format of an upload.

    Any audio/* type that is not webm or wav is sent as mp3. Files without a
    content type are judged by their extension.

    Args:
        content_type: MIME type reported by the client
        filename: Original file name

    Returns:
        Audio format to declare to the transcription service

    Raises:
        UnsupportedAudioFormatError: If the upload is not audio
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime == "application/octet-stream":
        mime = ""
    suffix = PurePath(filename).suffix.lower().lstrip(".") if filename else ""

    if "webm" in mime or (not mime and suffix == "webm"):
        return AudioFormat.WEBM
    if "wav" in mime or (not mime and suffix in ("wav", "wave")):
        return AudioFormat.WAV
    if mime.startswith("audio/") or (not mime and suffix == "mp3"):
        return AudioFormat.MP3

    raise UnsupportedAudioFormatError(f"Unsupported file type: {content_type or filename}")


def validate_upload(upload: AudioUpload) -> AudioFormat:
    """Check size and type of an upload and return its audio format."""
    if not upload.content:
        raise TranscriptionError("Audio file is empty")
    if len(upload.content) > settings.max_upload_bytes:
        raise PayloadTooLargeError(
            f"Audio file exceeds {settings.max_upload_bytes} bytes"
        )
    return detect_audio_format(upload.content_type, upload.filename)


class AnalysisOrchestrator:
    """
    Sequences transcription, analysis and persistence of one audio clip.

    Transcription always finishes before analysis starts. A failure in
    either aborts the whole operation before anything is stored.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        analysis_service: AnalysisService,
        repository: AnalysisRepository,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            transcriber: Transcription collaborator
            analysis_service: Analysis step shared with live monitoring
            repository: Storage for finished analyses
        """
        self.transcriber = transcriber
        self.analysis_service = analysis_service
        self.repository = repository

    async def process_audio(
        self,
        upload: AudioUpload,
        on_phase: Optional[Callable[[ProcessingPhase], None]] = None,
    ) -> ProcessedAudio:
        """
        Transcribe and analyze an audio clip without storing it.

        Args:
            upload: Audio to process
            on_phase: Called with each progress phase

        Returns:
            Transcript and analysis result

        Raises:
            TranscriptionError: If the audio is empty, unsupported or yields no text
            UpstreamError: If either gateway call fails
        """
        audio_format = validate_upload(upload)

        self._report(ProcessingPhase.TRANSCRIBING, upload, on_phase)
        transcription = await self.transcriber.transcribe(upload.content, audio_format)
        if not transcription or not transcription.strip():
            raise TranscriptionError("No speech found in audio")

        self._report(ProcessingPhase.ANALYZING, upload, on_phase)
        analysis = await self.analysis_service.analyze(transcription)

        return ProcessedAudio(
            transcription=transcription,
            analysis=analysis,
            audio_format=audio_format,
        )

    async def process_and_save(
        self,
        upload: AudioUpload,
        on_phase: Optional[Callable[[ProcessingPhase], None]] = None,
    ) -> AnalysisRecord:
        """
        Process an audio clip and store the result.

        Args:
            upload: Audio to process
            on_phase: Called with each progress phase

        Returns:
            The stored analysis record
        """
        processed = await self.process_audio(upload, on_phase)

        self._report(ProcessingPhase.SAVING, upload, on_phase)
        record = await self.repository.create(
            filename=upload.filename,
            transcription=processed.transcription,
            result=processed.analysis,
            audio_format=processed.audio_format,
        )

        self._report(ProcessingPhase.COMPLETE, upload, on_phase)
        return record

    def _report(
        self,
        phase: ProcessingPhase,
        upload: AudioUpload,
        on_phase: Optional[Callable[[ProcessingPhase], None]],
    ) -> None:
        logger.info(f"{upload.filename}: {phase.value}")
        if on_phase is not None:
            on_phase(phase)
