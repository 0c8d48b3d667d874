"""Pydantic schemas for the analysis API and the upstream analysis contract."""

import logging
import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.analysis import AnalysisMode, AudioFormat, RiskStatus, Severity
from app.services.classifier import ColorTier, clamp_risk_score
from app.services.highlighter import SegmentKind

logger = logging.getLogger(__name__)


def _to_number(value: Any) -> float:
    # bool is an int subclass; the gateway sending true/false here is malformed
    if isinstance(value, bool):
        raise ValueError("expected a number")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"expected a number, got {value!r}")
    if not math.isfinite(number):
        raise ValueError("expected a finite number")
    return number


def _clamp_unit(value: Any, default: float) -> float:
    if value is None:
        return default
    return max(0.0, min(1.0, _to_number(value)))


# Upstream contract (camelCase, as returned by the analysis service)


class UpstreamThreat(BaseModel):
    """Threat entry in the analysis service reply."""

    model_config = ConfigDict(populate_by_name=True)

    threat_type: str = Field(..., alias="threatType", min_length=1)
    description: str = ""
    severity: Severity = Severity.MEDIUM
    confidence: float = 0.0
    recommendation: str = ""
    start_index: int | None = Field(None, alias="startIndex")
    end_index: int | None = Field(None, alias="endIndex")
    excerpt: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v: Any) -> Any:
        if v is None:
            return Severity.MEDIUM
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {s.value for s in Severity}:
                logger.warning(f"Unknown threat severity {v!r}, using medium")
                return Severity.MEDIUM
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        return _clamp_unit(v, 0.0)

    @field_validator("description", "recommendation", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("start_index", "end_index", mode="before")
    @classmethod
    def drop_bad_offset(cls, v: Any) -> int | None:
        # Offsets are optional; an unusable one is dropped, not fatal
        if isinstance(v, int) and not isinstance(v, bool):
            return v
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return None


class UpstreamAnalysis(BaseModel):
    """Analysis service reply. ``status`` is accepted but re-derived locally."""

    model_config = ConfigDict(populate_by_name=True)

    risk_score: int = Field(..., alias="riskScore")
    status: RiskStatus | None = None
    is_ai_generated: bool = Field(False, alias="isAiGenerated")
    confidence_score: float = Field(0.5, alias="confidenceScore")
    summary: str = ""
    threats: list[UpstreamThreat] = Field(default_factory=list)

    @field_validator("risk_score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> int:
        return clamp_risk_score(_to_number(v))

    @field_validator("status", mode="before")
    @classmethod
    def ignore_unknown_status(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in {s.value for s in RiskStatus}:
            return v.strip().lower()
        return None

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        return _clamp_unit(v, 0.5)

    @field_validator("summary", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("threats", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v


# API request/response schemas


class AnalyzeRequest(BaseModel):
    transcription: str = Field(..., description="Transcript to analyze")
    mode: AnalysisMode = Field(AnalysisMode.ANALYZE, description="analyze or live")


class TranscriptionResponse(BaseModel):
    transcription: str


class ThreatAssessmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    threat_type: str
    description: str
    severity: Severity
    confidence: float
    recommendation: str
    start_index: int | None = None
    end_index: int | None = None


class AnalysisResultSchema(BaseModel):
    """Analysis result returned by the analyze proxy endpoint."""

    model_config = ConfigDict(from_attributes=True)

    risk_score: int
    status: RiskStatus
    is_ai_generated: bool
    confidence_score: float
    summary: str
    threats: list[ThreatAssessmentSchema]


class ThreatFindingSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    threat_type: str
    description: str
    recommendation: str
    severity: Severity
    confidence: float
    start_index: int | None = None
    end_index: int | None = None


class AnalysisRecordSchema(BaseModel):
    """Stored analysis with its threats."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    created_at: datetime
    transcription: str
    risk_score: int
    status: RiskStatus
    is_ai_generated: bool
    confidence_score: float
    summary: str
    audio_format: AudioFormat | None = None
    threats: list[ThreatFindingSchema]


class StatsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_scans: int = Field(..., description="Number of stored analyses")
    threat_detected: int = Field(..., description="Analyses classified as danger")
    safe_scans: int = Field(..., description="Analyses classified as safe")
    avg_risk_score: int = Field(..., description="Rounded mean risk score")


class ClassificationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: RiskStatus
    label: str
    color_tier: ColorTier


class SegmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: SegmentKind = Field(..., description="plain or flagged")
    text: str
    start: int
    end: int
    severity: Severity | None = None
    label: str | None = None


class HighlightResponse(BaseModel):
    analysis_id: str
    segments: list[SegmentSchema]


class LiveTranscriptRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Transcribed speech to append")


class LiveAnalysisSnapshotSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    risk_score: int
    status: RiskStatus
    threat_labels: list[str]
    analyzed_at: datetime | None = None


class LiveSessionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    is_active: bool
    accumulated_transcript: str
    last_analysis: LiveAnalysisSnapshotSchema | None = None
    analysis_in_flight: bool
    started_at: datetime | None = None
    last_error: str | None = None
