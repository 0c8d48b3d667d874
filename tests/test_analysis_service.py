"""Tests for the analysis step and reply parsing."""

import json

import pytest

from app.core.exceptions import AnalysisError, RateLimitedError
from app.models.analysis import AnalysisMode, RiskStatus, Severity
from app.services.analysis_service import (
    FALLBACK_SUMMARY,
    AnalysisService,
    extract_json_object,
    locate_excerpt,
    parse_analysis,
)


def test_parse_valid_reply(make_reply) -> None:
    content = make_reply(
        55,
        threats=[
            {
                "threatType": "Impersonation",
                "description": "Caller claims to be from the bank",
                "severity": "high",
                "confidence": 0.9,
                "recommendation": "Hang up and call the bank directly",
            }
        ],
        isAiGenerated=True,
        confidenceScore=0.7,
    )

    result = parse_analysis(content)

    assert result.risk_score == 55
    assert result.status == RiskStatus.SUSPICIOUS
    assert result.is_ai_generated is True
    assert result.confidence_score == 0.7
    assert len(result.threats) == 1
    assert result.threats[0].threat_type == "Impersonation"
    assert result.threats[0].severity == Severity.HIGH


def test_markdown_fenced_reply_is_parsed(make_reply) -> None:
    content = "Here is my analysis:\n```json\n" + make_reply(20) + "\n```"

    result = parse_analysis(content)

    assert result.risk_score == 20
    assert result.summary == "Test summary."


@pytest.mark.parametrize(
    "content",
    [
        "I cannot analyze this.",
        "{not json}",
        '{"status": "safe"}',
        '{"riskScore": "very high"}',
        '{"riskScore": true}',
        "[1, 2, 3]",
        pytest.param(json.dumps({"riskScore": 10**400}), id="risk-score-overflow"),
        pytest.param(
            json.dumps({"riskScore": 50, "confidenceScore": 10**400}), id="confidence-overflow"
        ),
        pytest.param(
            json.dumps({"riskScore": 50, "threats": [{"threatType": "Urgency", "confidence": -(10**400)}]}),
            id="threat-confidence-overflow",
        ),
        pytest.param(
            '{"riskScore": 50, "x": ' + "[" * 100000 + "]" * 100000 + "}", id="deeply-nested"
        ),
    ],
)
def test_unparseable_reply_gives_fallback(content: str) -> None:
    result = parse_analysis(content)

    assert result.risk_score == 15
    assert result.status == RiskStatus.SAFE
    assert result.is_ai_generated is False
    assert result.confidence_score == 0.5
    assert result.summary == FALLBACK_SUMMARY
    assert result.threats == []


def test_status_is_derived_from_score(make_reply) -> None:
    result = parse_analysis(make_reply(85, status="safe"))

    assert result.status == RiskStatus.DANGER


def test_out_of_range_values_are_clamped(make_reply) -> None:
    content = make_reply(
        140.4,
        confidenceScore=3,
        threats=[{"threatType": "Urgency", "confidence": -1, "severity": "CRITICAL"}],
    )

    result = parse_analysis(content)

    assert result.risk_score == 100
    assert result.confidence_score == 1.0
    assert result.threats[0].confidence == 0.0
    assert result.threats[0].severity == Severity.MEDIUM


def test_missing_optional_fields_use_defaults() -> None:
    result = parse_analysis('{"riskScore": 5, "summary": null, "threats": null}')

    assert result.status == RiskStatus.SAFE
    assert result.confidence_score == 0.5
    assert result.summary == ""
    assert result.threats == []


def test_excerpt_is_located_in_transcript(make_reply) -> None:
    transcription = "Act now, verify your account immediately"
    content = make_reply(
        85,
        threats=[
            {"threatType": "Urgency Pressure", "severity": "high", "excerpt": "VERIFY your account"},
            {"threatType": "Unknown", "excerpt": "gift cards"},
        ],
    )

    result = parse_analysis(content, transcription)

    assert (result.threats[0].start_index, result.threats[0].end_index) == (9, 28)
    assert result.threats[1].start_index is None


def test_explicit_offsets_win_over_excerpt(make_reply) -> None:
    content = make_reply(
        40,
        threats=[{"threatType": "Urgency", "startIndex": 0, "endIndex": 7, "excerpt": "immediately"}],
    )

    result = parse_analysis(content, "Act now, verify your account immediately")

    assert (result.threats[0].start_index, result.threats[0].end_index) == (0, 7)


def test_extract_json_object_rejects_missing_object() -> None:
    with pytest.raises(ValueError):
        extract_json_object("no braces here")


def test_locate_excerpt_blank() -> None:
    assert locate_excerpt("some text", "   ") is None
    assert locate_excerpt("some text", None) is None


def test_locate_excerpt_offsets_survive_case_folding() -> None:
    # "İ".lower() is two characters long
    transcription = "İ Act now"

    start, end = locate_excerpt(transcription, "act NOW")

    assert transcription[start:end] == "Act now"


@pytest.mark.asyncio
async def test_service_rejects_blank_transcript(gateway) -> None:
    service = AnalysisService(gateway)

    with pytest.raises(AnalysisError):
        await service.analyze("   ")

    assert gateway.calls == []


@pytest.mark.asyncio
async def test_service_passes_mode_through(gateway_factory, make_reply) -> None:
    gateway = gateway_factory(reply=make_reply(75))
    service = AnalysisService(gateway)

    result = await service.analyze("Send the code now", AnalysisMode.LIVE)

    assert gateway.calls == [("analyze", AnalysisMode.LIVE)]
    assert result.status == RiskStatus.DANGER


@pytest.mark.asyncio
async def test_service_propagates_upstream_errors(gateway_factory) -> None:
    gateway = gateway_factory(analyze_error=RateLimitedError())
    service = AnalysisService(gateway)

    with pytest.raises(RateLimitedError):
        await service.analyze("Hello there")
