"""Capture devices for live monitoring sessions.

The browser records the microphone and streams chunks to the server. A
capture device is the server end of that stream: it must be acquired before
a session starts and released when it ends, and only one recorder may be
open per session.
"""

import logging
from typing import Protocol

from app.core.exceptions import CaptureDeviceUnavailableError

logger = logging.getLogger(__name__)


class CaptureDevice(Protocol):
    session_id: str

    @property
    def is_open(self) -> bool:
        ...

    def write(self, chunk: bytes) -> None:
        ...

    def release(self) -> None:
        ...


class ChunkCaptureDevice:
    """Server end of one session's audio stream. Chunks are counted, not kept."""

    def __init__(self, session_id: str, registry: "CaptureDeviceRegistry") -> None:
        self.session_id = session_id
        self._registry = registry
        self.bytes_received = 0
        self.chunks_received = 0
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def write(self, chunk: bytes) -> None:
        """Record a chunk. Empty chunks are ignored."""
        if not self._open:
            raise CaptureDeviceUnavailableError(
                f"Capture device for session {self.session_id} is closed"
            )
        if chunk:
            self.bytes_received += len(chunk)
            self.chunks_received += 1

    def release(self) -> None:
        """Close the device. Safe to call twice."""
        if not self._open:
            return
        self._open = False
        self._registry._forget(self)
        logger.debug(
            f"Released capture device for session {self.session_id} "
            f"({self.chunks_received} chunks, {self.bytes_received} bytes)"
        )


class CaptureDeviceRegistry:
    """
    Hands out capture devices, at most one open device per session.

    Acquisition fails when the session already has an open recorder or the
    server is at its session limit.
    """

    def __init__(self, max_devices: int) -> None:
        self.max_devices = max_devices
        self._devices: dict[str, ChunkCaptureDevice] = {}

    @property
    def open_count(self) -> int:
        return len(self._devices)

    def acquire(self, session_id: str) -> ChunkCaptureDevice:
        """
        Open a capture device for a session.

        Raises:
            CaptureDeviceUnavailableError: If a recorder is already open for the
                session or no capacity is left
        """
        if session_id in self._devices:
            raise CaptureDeviceUnavailableError(
                f"A recorder is already active for session {session_id}"
            )
        if len(self._devices) >= self.max_devices:
            raise CaptureDeviceUnavailableError("No capture device available")

        device = ChunkCaptureDevice(session_id, self)
        self._devices[session_id] = device
        logger.debug(f"Acquired capture device for session {session_id}")
        return device

    def _forget(self, device: ChunkCaptureDevice) -> None:
        if self._devices.get(device.session_id) is device:
            del self._devices[device.session_id]
