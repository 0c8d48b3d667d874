"""API endpoints for live monitoring sessions."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from app.api.dependencies import get_live_manager
from app.api.errors import to_http_exception
from app.core.exceptions import EchoAuditError
from app.models.analysis import AudioUpload
from app.schemas.analysis import LiveSessionSchema, LiveTranscriptRequest
from app.services.live_monitoring import LiveMonitoringController, LiveSessionManager
from app.services.orchestrator import validate_upload

router = APIRouter()


def _get_controller(manager: LiveSessionManager, session_id: str) -> LiveMonitoringController:
    controller = manager.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Live session not found")
    return controller


@router.post("/live/sessions", response_model=LiveSessionSchema, status_code=201)
async def start_live_session(
    manager: Annotated[LiveSessionManager, Depends(get_live_manager)],
) -> LiveSessionSchema:
    """
    Start a live monitoring session.

    The transcript is re-analyzed periodically while the session is active.

    Returns:
        The new session
    """
    try:
        controller = await manager.start_session()
    except EchoAuditError as e:
        raise to_http_exception(e)

    return LiveSessionSchema.model_validate(controller.session)


@router.get("/live/sessions/{session_id}", response_model=LiveSessionSchema)
async def get_live_session(
    session_id: str,
    manager: Annotated[LiveSessionManager, Depends(get_live_manager)],
) -> LiveSessionSchema:
    """Get the transcript and latest analysis of a live session."""
    controller = _get_controller(manager, session_id)
    return LiveSessionSchema.model_validate(controller.session)


@router.post("/live/sessions/{session_id}/transcript", response_model=LiveSessionSchema)
async def append_live_transcript(
    session_id: str,
    request: LiveTranscriptRequest,
    manager: Annotated[LiveSessionManager, Depends(get_live_manager)],
) -> LiveSessionSchema:
    """
    Append speech transcribed on the client to a live session.

    Args:
        session_id: Live session identifier
        request: Text to append

    Returns:
        The updated session
    """
    controller = _get_controller(manager, session_id)
    try:
        controller.append_transcript(request.text)
    except EchoAuditError as e:
        raise to_http_exception(e)

    return LiveSessionSchema.model_validate(controller.session)


@router.post("/live/sessions/{session_id}/chunks", response_model=LiveSessionSchema)
async def upload_live_chunk(
    session_id: str,
    manager: Annotated[LiveSessionManager, Depends(get_live_manager)],
    audio: UploadFile = File(..., description="Self-contained audio segment"),
) -> LiveSessionSchema:
    """
    Stream a recorded audio segment into a live session.

    The segment is transcribed and its text appended to the session transcript.

    Returns:
        The updated session
    """
    controller = _get_controller(manager, session_id)
    upload = AudioUpload(
        filename=audio.filename or "chunk",
        content=await audio.read(),
        content_type=audio.content_type,
    )
    try:
        audio_format = validate_upload(upload)
        await controller.ingest_audio(upload.content, audio_format)
    except EchoAuditError as e:
        raise to_http_exception(e)

    return LiveSessionSchema.model_validate(controller.session)


@router.delete("/live/sessions/{session_id}", status_code=204)
async def stop_live_session(
    session_id: str,
    manager: Annotated[LiveSessionManager, Depends(get_live_manager)],
) -> Response:
    """Stop a live session, releasing its capture device. The session is discarded."""
    if not await manager.stop_session(session_id):
        raise HTTPException(status_code=404, detail="Live session not found")
    return Response(status_code=204)
