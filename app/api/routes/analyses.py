"""API endpoints for stored analyses."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse, Response

from app.api.dependencies import get_analysis_repository, get_orchestrator
from app.api.errors import to_http_exception
from app.core.config import settings
from app.core.exceptions import EchoAuditError
from app.models.analysis import AudioUpload
from app.repositories import AnalysisRepository
from app.schemas.analysis import (
    AnalysisRecordSchema,
    HighlightResponse,
    SegmentSchema,
    StatsSchema,
)
from app.services.export_service import export_csv, render_report
from app.services.highlighter import highlight, spans_from_threats
from app.services.orchestrator import AnalysisOrchestrator
from app.services.stats import compute_stats

router = APIRouter()


@router.post("/analyses", response_model=AnalysisRecordSchema, status_code=201)
async def create_analysis(
    orchestrator: Annotated[AnalysisOrchestrator, Depends(get_orchestrator)],
    audio: UploadFile = File(..., description="Audio file (webm, mp3 or wav)"),
) -> AnalysisRecordSchema:
    """
    Transcribe, analyze and store an audio file.

    Nothing is stored if transcription or analysis fails.

    Returns:
        The stored analysis
    """
    upload = AudioUpload(
        filename=audio.filename or "audio",
        content=await audio.read(),
        content_type=audio.content_type,
    )
    try:
        record = await orchestrator.process_and_save(upload)
    except EchoAuditError as e:
        raise to_http_exception(e)

    return AnalysisRecordSchema.model_validate(record)


@router.get("/analyses", response_model=list[AnalysisRecordSchema])
async def list_analyses(
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
    limit: Annotated[
        int | None, Query(ge=1, le=100, description="Maximum number of analyses")
    ] = None,
) -> list[AnalysisRecordSchema]:
    """
    Get recent analyses, newest first.

    Args:
        limit: Maximum number of analyses (defaults to the configured history limit)

    Returns:
        List of analyses with their threats
    """
    records = await repository.list_recent(limit=limit or settings.history_limit)
    return [AnalysisRecordSchema.model_validate(record) for record in records]


@router.get("/analyses/export")
async def export_analyses(
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> Response:
    """Export all analyses as CSV."""
    records = await repository.list_recent(limit=None)
    return Response(
        content=export_csv(records),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="analyses.csv"'},
    )


@router.get("/stats", response_model=StatsSchema)
async def get_stats(
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> StatsSchema:
    """
    Aggregate statistics over all stored analyses.

    Returns:
        Scan counts and the average risk score
    """
    records = await repository.list_recent(limit=None)
    return StatsSchema.model_validate(compute_stats(records))


@router.get("/analyses/{analysis_id}", response_model=AnalysisRecordSchema)
async def get_analysis(
    analysis_id: str,
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> AnalysisRecordSchema:
    record = await repository.get(analysis_id)
    if not record:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return AnalysisRecordSchema.model_validate(record)


@router.delete("/analyses/{analysis_id}", status_code=204)
async def delete_analysis(
    analysis_id: str,
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> Response:
    """Delete an analysis and its threats."""
    if not await repository.delete(analysis_id):
        raise HTTPException(status_code=404, detail="Analysis not found")
    return Response(status_code=204)


@router.get("/analyses/{analysis_id}/highlights", response_model=HighlightResponse)
async def get_highlights(
    analysis_id: str,
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> HighlightResponse:
    """
    Get the transcript split into plain and flagged segments.

    Joining the segment texts in order gives back the transcript.

    Args:
        analysis_id: Analysis identifier

    Returns:
        Ordered render-ready segments
    """
    record = await repository.get(analysis_id)
    if not record:
        raise HTTPException(status_code=404, detail="Analysis not found")

    segments = highlight(record.transcription, spans_from_threats(record.threats))
    return HighlightResponse(
        analysis_id=record.id,
        segments=[SegmentSchema.model_validate(segment) for segment in segments],
    )


@router.get("/analyses/{analysis_id}/report", response_class=PlainTextResponse)
async def get_report(
    analysis_id: str,
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> PlainTextResponse:
    """Download a Markdown report for one analysis."""
    record = await repository.get(analysis_id)
    if not record:
        raise HTTPException(status_code=404, detail="Analysis not found")

    return PlainTextResponse(
        content=render_report(record),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="analysis_{record.id}.md"'},
    )
