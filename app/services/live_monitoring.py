"""Live monitoring: periodic re-analysis of a growing transcript.

A session accumulates transcribed speech while a timer periodically submits
the whole transcript for a quick "live" analysis. At most one analysis is
in flight per session; a tick that fires while one is running is skipped,
never queued.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from app.core.config import settings
from app.core.exceptions import CaptureDeviceUnavailableError, TranscriptionError
from app.models.analysis import AnalysisMode, AudioFormat, LiveAnalysisSnapshot, LiveSession
from app.services.analysis_service import AnalysisService
from app.services.capture import CaptureDeviceRegistry, ChunkCaptureDevice
from app.services.classifier import classify
from app.services.orchestrator import Transcriber

logger = logging.getLogger(__name__)


class Timer(Protocol):
    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], Any]], Timer]


class PeriodicTimer:
    """Calls a callback every ``interval`` seconds on the running event loop."""

    def __init__(self, interval: float, callback: Callable[[], Any]) -> None:
        self.interval = interval
        self.callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}", exc_info=True)


class LiveMonitoringController:
    """
    Owns one live session: its capture device, its timer and its analysis guard.

    States are Idle and Active. ``stop`` and ``close`` always cancel the timer
    and release the device, and are no-ops when the session is idle. An
    analysis that finishes after the session stopped is discarded. A session
    that receives no transcript or audio for ``idle_timeout`` seconds stops
    itself on the next tick.
    """

    def __init__(
        self,
        analysis_service: AnalysisService,
        devices: CaptureDeviceRegistry,
        session_id: str | None = None,
        transcriber: Optional[Transcriber] = None,
        interval: float | None = None,
        min_transcript_length: int | None = None,
        timer_factory: TimerFactory = PeriodicTimer,
        idle_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the controller.

        Args:
            analysis_service: Analysis step, called in live mode
            devices: Registry the capture device is acquired from
            session_id: Session identifier (generated if omitted)
            transcriber: Transcription collaborator for streamed audio chunks
            interval: Seconds between analysis ticks
            min_transcript_length: Transcript must be longer than this to be analyzed
            timer_factory: Builds the periodic timer, replaceable in tests
            idle_timeout: Seconds without client input before the session stops itself
            clock: Monotonic time source for the idle timeout
        """
        self.analysis_service = analysis_service
        self.devices = devices
        self.transcriber = transcriber
        self.interval = interval if interval is not None else settings.live_analysis_interval
        self.min_transcript_length = (
            min_transcript_length
            if min_transcript_length is not None
            else settings.live_min_transcript_length
        )
        self.timer_factory = timer_factory
        self.idle_timeout = (
            idle_timeout if idle_timeout is not None else settings.live_session_idle_timeout
        )
        self.clock = clock
        self.session = LiveSession(session_id=session_id or uuid.uuid4().hex)

        self._device: Optional[ChunkCaptureDevice] = None
        self._timer: Optional[Timer] = None
        self._pass_task: Optional[asyncio.Task] = None
        # Bumped on start and stop so late results from an old run are ignored
        self._generation = 0
        self._last_activity = self.clock()

    @property
    def session_id(self) -> str:
        return self.session.session_id

    async def start(self) -> LiveSession:
        """
        Acquire the capture device and begin periodic analysis.

        Returns:
            The active session

        Raises:
            CaptureDeviceUnavailableError: If no device could be acquired; the
                session stays idle
        """
        if self.session.is_active:
            return self.session

        try:
            self._device = self.devices.acquire(self.session_id)
        except CaptureDeviceUnavailableError as e:
            self.session.is_active = False
            self.session.last_error = str(e)
            logger.error(f"Failed to start live session {self.session_id}: {e}")
            raise

        self._generation += 1
        self.session.accumulated_transcript = ""
        self.session.last_analysis = None
        self.session.last_error = None
        self.session.analysis_in_flight = False
        self.session.started_at = datetime.now(timezone.utc)
        self.session.is_active = True
        self._last_activity = self.clock()

        self._timer = self.timer_factory(self.interval, self.tick)
        self._timer.start()
        logger.info(f"Live monitoring started for session {self.session_id}")
        return self.session

    def append_transcript(self, text: str) -> None:
        """Append transcribed speech to the session buffer."""
        if not self.session.is_active:
            raise CaptureDeviceUnavailableError(f"Live session {self.session_id} is not active")
        self._last_activity = self.clock()
        text = text.strip()
        if not text:
            return
        if self.session.accumulated_transcript:
            self.session.accumulated_transcript += " " + text
        else:
            self.session.accumulated_transcript = text

    async def ingest_audio(self, chunk: bytes, audio_format: AudioFormat) -> str:
        """
        Record an audio chunk and append its transcript.

        Chunks must be self-contained audio files (one recorder segment each).

        Args:
            chunk: Audio bytes
            audio_format: Declared format of the chunk

        Returns:
            Transcript of the chunk, empty if it held no speech

        Raises:
            CaptureDeviceUnavailableError: If the session is not active
            UpstreamError: If transcription failed
        """
        if not self.session.is_active or self._device is None:
            raise CaptureDeviceUnavailableError(f"Live session {self.session_id} is not active")
        self._last_activity = self.clock()
        self._device.write(chunk)
        if self.transcriber is None or not chunk:
            return ""

        try:
            text = await self.transcriber.transcribe(chunk, audio_format)
        except TranscriptionError:
            logger.debug(f"No speech in chunk for session {self.session_id}")
            return ""

        if self.session.is_active:
            self.append_transcript(text)
        return text

    @property
    def is_expired(self) -> bool:
        """Whether an active session has gone longer than ``idle_timeout`` without input."""
        if not self.session.is_active or self.idle_timeout <= 0:
            return False
        return self.clock() - self._last_activity > self.idle_timeout

    def tick(self) -> Optional[asyncio.Task]:
        """
        Start an analysis pass if none is in flight and enough text has accumulated.

        Returns:
            Task running the pass, or None if the tick was skipped
        """
        if not self.session.is_active:
            return None
        if self.is_expired:
            logger.warning(
                f"Live session {self.session_id} had no client activity for "
                f"{self.idle_timeout}s, stopping"
            )
            self._release()
            self.session.last_error = "Session stopped after inactivity"
            return None
        if self.session.analysis_in_flight:
            logger.debug(f"Analysis still in flight for session {self.session_id}, skipping tick")
            return None

        text = self.session.accumulated_transcript.strip()
        if len(text) <= self.min_transcript_length:
            return None

        self.session.analysis_in_flight = True
        self._pass_task = asyncio.create_task(self._run_pass(text, self._generation))
        return self._pass_task

    async def _run_pass(self, text: str, generation: int) -> Optional[LiveAnalysisSnapshot]:
        try:
            result = await self.analysis_service.analyze(text, AnalysisMode.LIVE)
        except Exception as e:
            logger.error(f"Live analysis failed for session {self.session_id}: {e}", exc_info=True)
            if generation == self._generation:
                self.session.last_error = str(e)
            return None
        finally:
            if generation == self._generation:
                self.session.analysis_in_flight = False

        if generation != self._generation or not self.session.is_active:
            logger.debug(f"Discarding live analysis for stopped session {self.session_id}")
            return None

        classification = classify(result.risk_score)
        snapshot = LiveAnalysisSnapshot(
            risk_score=result.risk_score,
            status=classification.status,
            threat_labels=[threat.threat_type for threat in result.threats],
            analyzed_at=datetime.now(timezone.utc),
        )
        self.session.last_analysis = snapshot
        self.session.last_error = None
        logger.info(
            f"Live analysis for session {self.session_id}: "
            f"{snapshot.status.value} ({snapshot.risk_score})"
        )
        return snapshot

    async def stop(self) -> None:
        """Cancel the timer, release the device and go idle. No-op when idle."""
        self._release()

    def _release(self) -> None:
        if self._timer is None and self._device is None and not self.session.is_active:
            return

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._device is not None:
            self._device.release()
            self._device = None

        self._generation += 1
        self.session.is_active = False
        self.session.analysis_in_flight = False
        logger.info(f"Live monitoring stopped for session {self.session_id}")

    async def close(self) -> None:
        """Teardown hook. Guarantees the timer and device are released."""
        await self.stop()

    async def __aenter__(self) -> "LiveMonitoringController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class LiveSessionManager:
    """Keeps live sessions by id and tears all of them down on shutdown."""

    def __init__(
        self,
        analysis_service: AnalysisService,
        transcriber: Optional[Transcriber] = None,
        devices: Optional[CaptureDeviceRegistry] = None,
        interval: float | None = None,
        min_transcript_length: int | None = None,
        timer_factory: TimerFactory = PeriodicTimer,
        idle_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.analysis_service = analysis_service
        self.transcriber = transcriber
        self.devices = devices or CaptureDeviceRegistry(max_devices=settings.live_max_sessions)
        self.interval = interval
        self.min_transcript_length = min_transcript_length
        self.timer_factory = timer_factory
        self.idle_timeout = idle_timeout
        self.clock = clock
        self._sessions: dict[str, LiveMonitoringController] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def reap_idle(self) -> int:
        """
        Close and discard sessions that expired or stopped on their own.

        Returns:
            Number of sessions removed
        """
        stale = [
            controller
            for controller in self._sessions.values()
            if controller.is_expired or not controller.session.is_active
        ]
        for controller in stale:
            self._sessions.pop(controller.session_id, None)
            await controller.close()
        if stale:
            logger.info(f"Reaped {len(stale)} idle live session(s)")
        return len(stale)

    async def start_session(self) -> LiveMonitoringController:
        """
        Create and start a new live session. Idle sessions are reaped first.

        Raises:
            CaptureDeviceUnavailableError: If no capture device is available
        """
        await self.reap_idle()
        controller = LiveMonitoringController(
            analysis_service=self.analysis_service,
            devices=self.devices,
            transcriber=self.transcriber,
            interval=self.interval,
            min_transcript_length=self.min_transcript_length,
            timer_factory=self.timer_factory,
            idle_timeout=self.idle_timeout,
            clock=self.clock,
        )
        await controller.start()
        self._sessions[controller.session_id] = controller
        return controller

    def get(self, session_id: str) -> Optional[LiveMonitoringController]:
        return self._sessions.get(session_id)

    async def stop_session(self, session_id: str) -> bool:
        """Stop and discard a session. Returns False if it does not exist."""
        controller = self._sessions.pop(session_id, None)
        if controller is None:
            return False
        await controller.close()
        return True

    async def shutdown(self) -> None:
        """Stop every session."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for controller in sessions:
            await controller.close()
        if sessions:
            logger.info(f"Closed {len(sessions)} live session(s)")
