"""Tests for the upload processing pipeline."""

from pathlib import Path

import pytest

from app.core.exceptions import (
    PayloadTooLargeError,
    QuotaExceededError,
    TranscriptionError,
    UnsupportedAudioFormatError,
)
from app.core.config import settings
from app.models.analysis import AudioFormat, AudioUpload, RiskStatus
from app.repositories import SQLiteAnalysisRepository
from app.services.analysis_service import FALLBACK_SUMMARY, AnalysisService
from app.services.orchestrator import (
    AnalysisOrchestrator,
    ProcessingPhase,
    detect_audio_format,
    validate_upload,
)
from app.services.stats import compute_stats


def _orchestrator(gateway, db_path: Path) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(gateway, AnalysisService(gateway), SQLiteAnalysisRepository(db_path))


def _upload(content: bytes = b"audio-bytes", content_type: str | None = "audio/mpeg") -> AudioUpload:
    return AudioUpload(filename="call.mp3", content=content, content_type=content_type)


@pytest.mark.parametrize(
    "content_type, filename, expected",
    [
        ("audio/webm", "rec.webm", AudioFormat.WEBM),
        ("audio/webm;codecs=opus", None, AudioFormat.WEBM),
        ("audio/wav", "a.wav", AudioFormat.WAV),
        ("audio/x-wav", None, AudioFormat.WAV),
        ("audio/mpeg", "a.mp3", AudioFormat.MP3),
        ("audio/ogg", "a.ogg", AudioFormat.MP3),
        (None, "a.webm", AudioFormat.WEBM),
        ("application/octet-stream", "a.wav", AudioFormat.WAV),
        (None, "a.mp3", AudioFormat.MP3),
    ],
)
def test_detect_audio_format(content_type, filename, expected) -> None:
    assert detect_audio_format(content_type, filename) == expected


@pytest.mark.parametrize("content_type, filename", [("text/plain", "notes.txt"), (None, "image.png")])
def test_detect_audio_format_rejects_non_audio(content_type, filename) -> None:
    with pytest.raises(UnsupportedAudioFormatError):
        detect_audio_format(content_type, filename)


def test_validate_upload_rejects_empty_and_oversize(monkeypatch) -> None:
    with pytest.raises(TranscriptionError):
        validate_upload(_upload(b""))

    monkeypatch.setattr(settings, "max_upload_bytes", 4)
    with pytest.raises(PayloadTooLargeError):
        validate_upload(_upload(b"12345"))


@pytest.mark.asyncio
async def test_process_and_save_end_to_end(gateway_factory, make_reply, db_path: Path) -> None:
    transcript = "Act now, verify your account immediately"
    gateway = gateway_factory(
        transcription=transcript,
        reply=make_reply(
            85,
            threats=[{"threatType": "Urgency Pressure", "severity": "high", "excerpt": "Act now"}],
        ),
    )
    orchestrator = _orchestrator(gateway, db_path)
    phases = []

    record = await orchestrator.process_and_save(_upload(), on_phase=phases.append)

    assert gateway.calls[0][0] == "transcribe"
    assert gateway.calls[1][0] == "analyze"
    assert phases == [
        ProcessingPhase.TRANSCRIBING,
        ProcessingPhase.ANALYZING,
        ProcessingPhase.SAVING,
        ProcessingPhase.COMPLETE,
    ]
    assert record.status == RiskStatus.DANGER
    assert record.audio_format == AudioFormat.MP3
    assert (record.threats[0].start_index, record.threats[0].end_index) == (0, 7)

    records = await orchestrator.repository.list_recent()
    assert compute_stats(records).threat_detected == 1


@pytest.mark.asyncio
async def test_transcription_failure_skips_analysis_and_storage(gateway_factory, db_path: Path) -> None:
    gateway = gateway_factory(transcribe_error=QuotaExceededError("transcription"))
    orchestrator = _orchestrator(gateway, db_path)

    with pytest.raises(QuotaExceededError) as exc_info:
        await orchestrator.process_and_save(_upload())

    assert exc_info.value.stage == "transcription"
    assert gateway.count("analyze") == 0
    assert await orchestrator.repository.list_recent() == []


@pytest.mark.asyncio
async def test_blank_transcript_aborts(gateway_factory, db_path: Path) -> None:
    gateway = gateway_factory(transcription="   ")
    orchestrator = _orchestrator(gateway, db_path)

    with pytest.raises(TranscriptionError):
        await orchestrator.process_and_save(_upload())

    assert gateway.count("analyze") == 0
    assert await orchestrator.repository.list_recent() == []


@pytest.mark.asyncio
async def test_analysis_failure_stores_nothing(gateway_factory, db_path: Path) -> None:
    gateway = gateway_factory(analyze_error=QuotaExceededError())
    orchestrator = _orchestrator(gateway, db_path)
    phases = []

    with pytest.raises(QuotaExceededError):
        await orchestrator.process_and_save(_upload(), on_phase=phases.append)

    assert ProcessingPhase.SAVING not in phases
    assert await orchestrator.repository.list_recent() == []


@pytest.mark.asyncio
async def test_unparseable_analysis_is_stored_as_fallback(gateway_factory, db_path: Path) -> None:
    gateway = gateway_factory(reply="Sorry, I can't help with that.")
    orchestrator = _orchestrator(gateway, db_path)

    record = await orchestrator.process_and_save(_upload())

    assert record.risk_score == 15
    assert record.status == RiskStatus.SAFE
    assert record.summary == FALLBACK_SUMMARY


@pytest.mark.asyncio
async def test_process_audio_does_not_store(gateway, db_path: Path) -> None:
    orchestrator = _orchestrator(gateway, db_path)

    processed = await orchestrator.process_audio(_upload(content_type="audio/wav"))

    assert processed.audio_format == AudioFormat.WAV
    assert processed.analysis.status == RiskStatus.SAFE
    assert await orchestrator.repository.list_recent() == []
