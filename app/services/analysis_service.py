"""Threat analysis step: call the analysis service and parse its reply."""

import json
import logging
import re
from typing import Protocol

from pydantic import ValidationError

from app.core.exceptions import AnalysisError
from app.models.analysis import AnalysisMode, AnalysisResult, RiskStatus, ThreatAssessment
from app.schemas.analysis import UpstreamAnalysis
from app.services.classifier import classify

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = (
    "Analysis completed but could not parse detailed results. Manual review recommended."
)


class AnalysisBackend(Protocol):
    """Anything that can turn a transcript into a raw analysis reply."""

    async def analyze(self, transcription: str, mode: AnalysisMode = AnalysisMode.ANALYZE) -> str:
        ...


def fallback_result() -> AnalysisResult:
    """Conservative result used when the analysis reply cannot be parsed."""
    return AnalysisResult(
        risk_score=15,
        status=RiskStatus.SAFE,
        is_ai_generated=False,
        confidence_score=0.5,
        summary=FALLBACK_SUMMARY,
        threats=[],
    )


def extract_json_object(content: str) -> dict:
    """
    Pull the outermost JSON object out of a model reply.

    Replies are sometimes wrapped in markdown fences or prose, so everything
    from the first "{" to the last "}" is parsed.

    Raises:
        ValueError: If no JSON object can be found or parsed
    """
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON found in response")
    data = json.loads(content[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def locate_excerpt(transcription: str, excerpt: str | None) -> tuple[int, int] | None:
    """Find an excerpt in the transcript, ignoring case. Returns half-open offsets."""
    if not excerpt or not excerpt.strip():
        return None
    match = re.search(re.escape(excerpt.strip()), transcription, re.IGNORECASE)
    if match is None:
        return None
    return match.span()


def parse_analysis(content: str, transcription: str = "") -> AnalysisResult:
    """
    Parse a raw analysis reply into an AnalysisResult.

    The status is always re-derived from the risk score. Threats without
    offsets get them from their excerpt when it appears in the transcript.
    A reply that is not JSON of the expected shape yields the fallback
    result instead of an error.

    Args:
        content: Raw reply from the analysis service
        transcription: Transcript that was analyzed, used to locate excerpts

    Returns:
        Parsed or fallback analysis result
    """
    try:
        payload = UpstreamAnalysis.model_validate(extract_json_object(content))
    except (ValueError, ValidationError, RecursionError, OverflowError) as e:
        logger.warning(f"Failed to parse analysis response, using fallback: {e}")
        logger.debug(f"Unparseable analysis response: {content[:500]!r}")
        return fallback_result()

    status = classify(payload.risk_score).status
    if payload.status is not None and payload.status != status:
        logger.warning(
            f"Analysis reported status {payload.status.value} for score "
            f"{payload.risk_score}, using {status.value}"
        )

    threats = []
    for threat in payload.threats:
        start, end = threat.start_index, threat.end_index
        if start is None or end is None:
            located = locate_excerpt(transcription, threat.excerpt)
            if located:
                start, end = located
        threats.append(
            ThreatAssessment(
                threat_type=threat.threat_type,
                description=threat.description,
                severity=threat.severity,
                confidence=threat.confidence,
                recommendation=threat.recommendation,
                start_index=start,
                end_index=end,
                excerpt=threat.excerpt,
            )
        )

    return AnalysisResult(
        risk_score=payload.risk_score,
        status=status,
        is_ai_generated=payload.is_ai_generated,
        confidence_score=payload.confidence_score,
        summary=payload.summary,
        threats=threats,
    )


class AnalysisService:
    """Runs the analysis step shared by uploads and live monitoring."""

    def __init__(self, backend: AnalysisBackend) -> None:
        """
        Initialize the service.

        Args:
            backend: Analysis collaborator, usually the AI gateway client
        """
        self.backend = backend

    async def analyze(
        self, transcription: str, mode: AnalysisMode = AnalysisMode.ANALYZE
    ) -> AnalysisResult:
        """
        Assess a transcript.

        Args:
            transcription: Transcript to assess
            mode: Analysis path to request

        Returns:
            Parsed result, or the fallback result for a malformed reply

        Raises:
            AnalysisError: If the transcript is blank
            UpstreamError: If the analysis call failed
        """
        if not transcription or not transcription.strip():
            raise AnalysisError("No transcription provided")

        logger.debug(f"Requesting {mode.value} analysis for {len(transcription)} chars")
        content = await self.backend.analyze(transcription, mode)
        return parse_analysis(content, transcription)
