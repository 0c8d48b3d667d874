"""Error taxonomy shared by services and API routes.

Every error carries the HTTP status code the API reports it with, so routes
can translate them without a lookup table.
"""


class EchoAuditError(Exception):
    """Base class for all application errors."""

    status_code: int = 500


class UpstreamError(EchoAuditError):
    """Failure talking to the AI gateway.

    Attributes:
        stage: Which collaborator failed ("transcription" or "analysis")
    """

    status_code = 502

    def __init__(self, message: str, stage: str = "analysis") -> None:
        super().__init__(message)
        self.stage = stage


class UpstreamUnavailableError(UpstreamError):
    """Network error, 5xx or an otherwise unusable gateway reply."""


class RateLimitedError(UpstreamError):
    """Gateway answered 429."""

    status_code = 429

    def __init__(self, stage: str = "analysis") -> None:
        super().__init__("Rate limit exceeded. Please try again in a moment.", stage)


class QuotaExceededError(UpstreamError):
    """Gateway answered 402."""

    status_code = 402

    def __init__(self, stage: str = "analysis") -> None:
        super().__init__("Usage quota exceeded. Please add credits to continue.", stage)


class TranscriptionError(EchoAuditError):
    """Audio could not be turned into a transcript."""

    status_code = 422


class UnsupportedAudioFormatError(TranscriptionError):
    """Uploaded file is not audio."""

    status_code = 415


class PayloadTooLargeError(EchoAuditError):
    status_code = 413


class AnalysisError(EchoAuditError):
    """Analysis was requested with unusable input."""

    status_code = 400


class CaptureDeviceUnavailableError(EchoAuditError):
    """Capture device could not be acquired for a live session."""

    status_code = 409
