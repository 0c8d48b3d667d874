"""Thin endpoints in front of the AI gateway: transcribe, analyze, classify."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, UploadFile

from app.api.dependencies import get_analysis_service, get_gateway_client
from app.api.errors import to_http_exception
from app.clients.ai_gateway import AIGatewayClient
from app.core.exceptions import EchoAuditError
from app.models.analysis import AudioUpload
from app.schemas.analysis import (
    AnalysisResultSchema,
    AnalyzeRequest,
    ClassificationSchema,
    TranscriptionResponse,
)
from app.services.analysis_service import AnalysisService
from app.services.classifier import classify
from app.services.orchestrator import validate_upload

router = APIRouter()


@router.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe_audio(
    gateway: Annotated[AIGatewayClient, Depends(get_gateway_client)],
    audio: UploadFile = File(..., description="Audio file (webm, mp3 or wav)"),
) -> TranscriptionResponse:
    """
    Transcribe an audio file without analyzing or storing it.

    Returns:
        Transcript text
    """
    upload = AudioUpload(
        filename=audio.filename or "audio",
        content=await audio.read(),
        content_type=audio.content_type,
    )
    try:
        audio_format = validate_upload(upload)
        transcription = await gateway.transcribe(upload.content, audio_format)
    except EchoAuditError as e:
        raise to_http_exception(e)

    return TranscriptionResponse(transcription=transcription)


@router.post("/analyze", response_model=AnalysisResultSchema)
async def analyze_transcription(
    request: AnalyzeRequest,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> AnalysisResultSchema:
    """
    Assess a transcript for scam and AI-voice indicators.

    Malformed model output is answered with a conservative fallback result.

    Returns:
        Analysis result
    """
    try:
        result = await service.analyze(request.transcription, request.mode)
    except EchoAuditError as e:
        raise to_http_exception(e)

    return AnalysisResultSchema.model_validate(result)


@router.get("/classify/{risk_score}", response_model=ClassificationSchema)
async def classify_risk_score(
    risk_score: Annotated[int, Path(description="Risk score, clamped to 0-100")],
) -> ClassificationSchema:
    """Classify a risk score into status, label and color tier."""
    return ClassificationSchema.model_validate(classify(risk_score))
