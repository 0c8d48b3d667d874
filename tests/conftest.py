"""Shared fixtures and fake collaborators."""

import asyncio
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from app.db import init_db
from app.models.analysis import AnalysisMode, AudioFormat


def analysis_reply(risk_score: int, threats: list[dict] | None = None, **extra: Any) -> str:
    """Build a JSON reply in the analysis service contract."""
    payload = {
        "riskScore": risk_score,
        "status": "safe",
        "isAiGenerated": False,
        "confidenceScore": 0.8,
        "summary": "Test summary.",
        "threats": threats or [],
    }
    payload.update(extra)
    return json.dumps(payload)


class FakeGateway:
    """Stands in for the AI gateway client."""

    def __init__(
        self,
        transcription: str = "Hello, this is a friendly reminder about your appointment.",
        reply: str | None = None,
        transcribe_error: Exception | None = None,
        analyze_error: Exception | None = None,
    ) -> None:
        self.transcription = transcription
        self.reply = reply if reply is not None else analysis_reply(10)
        self.transcribe_error = transcribe_error
        self.analyze_error = analyze_error
        self.calls: list[tuple[str, Any]] = []
        # When set, analyze waits on it before answering
        self.release: asyncio.Event | None = None

    async def transcribe(self, audio: bytes, audio_format: AudioFormat) -> str:
        self.calls.append(("transcribe", audio_format))
        if self.transcribe_error:
            raise self.transcribe_error
        return self.transcription

    async def analyze(self, transcription: str, mode: AnalysisMode = AnalysisMode.ANALYZE) -> str:
        self.calls.append(("analyze", mode))
        if self.release is not None:
            await self.release.wait()
        if self.analyze_error:
            raise self.analyze_error
        return self.reply

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


class ManualTimer:
    """Timer that only fires when told to."""

    def __init__(self, interval: float, callback: Callable[[], Any]) -> None:
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> Any:
        return self.callback()


@pytest.fixture
def make_reply() -> Callable[..., str]:
    return analysis_reply


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def gateway_factory() -> Callable[..., FakeGateway]:
    return FakeGateway


@pytest.fixture
def timers() -> list[ManualTimer]:
    """Timers created through ``timer_factory``, in creation order."""
    return []


@pytest.fixture
def timer_factory(timers: list[ManualTimer]) -> Callable[[float, Callable[[], Any]], ManualTimer]:
    def factory(interval: float, callback: Callable[[], Any]) -> ManualTimer:
        timer = ManualTimer(interval, callback)
        timers.append(timer)
        return timer

    return factory


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Fresh SQLite database with the schema applied."""
    path = tmp_path / "test.db"
    init_db(path)
    return path
