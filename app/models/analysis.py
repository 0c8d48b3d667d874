"""Domain models for threat analyses."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RiskStatus(str, Enum):
    """Three-tier classification derived from a risk score."""

    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    DANGER = "danger"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisMode(str, Enum):
    """Analysis path requested from the gateway."""

    ANALYZE = "analyze"
    LIVE = "live"


class AudioFormat(str, Enum):
    WEBM = "webm"
    MP3 = "mp3"
    WAV = "wav"


@dataclass
class ThreatAssessment:
    """One threat as reported by the analysis service."""

    threat_type: str
    description: str = ""
    severity: Severity = Severity.MEDIUM
    confidence: float = 0.0
    recommendation: str = ""
    start_index: int | None = None
    end_index: int | None = None
    excerpt: str | None = None


@dataclass
class AnalysisResult:
    """Parsed result of one analysis call."""

    risk_score: int
    status: RiskStatus
    is_ai_generated: bool = False
    confidence_score: float = 0.0
    summary: str = ""
    threats: list[ThreatAssessment] = field(default_factory=list)


@dataclass
class ThreatFinding:
    """Persisted threat, owned by an AnalysisRecord."""

    id: str
    threat_type: str
    description: str
    recommendation: str
    severity: Severity
    confidence: float
    start_index: int | None = None  # half-open offsets into the transcription
    end_index: int | None = None


@dataclass
class AnalysisRecord:
    """Persisted unit of work. Immutable except for deletion."""

    id: str
    filename: str
    created_at: datetime
    transcription: str
    risk_score: int
    status: RiskStatus
    is_ai_generated: bool
    confidence_score: float
    summary: str = ""
    audio_format: AudioFormat | None = None
    threats: list[ThreatFinding] = field(default_factory=list)


@dataclass
class AudioUpload:
    """Audio submitted for analysis."""

    filename: str
    content: bytes
    content_type: str | None = None


@dataclass
class LiveAnalysisSnapshot:
    """Reduced view of an AnalysisResult used by live monitoring."""

    risk_score: int
    status: RiskStatus
    threat_labels: list[str]
    analyzed_at: datetime | None = None


@dataclass
class LiveSession:
    """Ephemeral live monitoring state. Never persisted."""

    session_id: str
    is_active: bool = False
    accumulated_transcript: str = ""
    last_analysis: LiveAnalysisSnapshot | None = None
    analysis_in_flight: bool = False
    started_at: datetime | None = None
    last_error: str | None = None
