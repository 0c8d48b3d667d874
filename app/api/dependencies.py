"""Dependency injection for API endpoints."""

from typing import Annotated, Optional

from fastapi import Depends

from app.clients.ai_gateway import AIGatewayClient
from app.repositories import AnalysisRepository, SQLiteAnalysisRepository
from app.services.analysis_service import AnalysisService
from app.services.live_monitoring import LiveSessionManager
from app.services.orchestrator import AnalysisOrchestrator

# Global instances, created on first use
_gateway_client: Optional[AIGatewayClient] = None
_live_manager: Optional[LiveSessionManager] = None


def get_gateway_client() -> AIGatewayClient:
    """
    Get the AI gateway client.

    Returns:
        Shared AIGatewayClient instance
    """
    global _gateway_client
    if _gateway_client is None:
        _gateway_client = AIGatewayClient()
    return _gateway_client


def get_analysis_repository() -> AnalysisRepository:
    """
    Get analysis repository instance.

    Returns:
        Repository backed by the configured SQLite database
    """
    return SQLiteAnalysisRepository()


def get_analysis_service(
    gateway: Annotated[AIGatewayClient, Depends(get_gateway_client)],
) -> AnalysisService:
    return AnalysisService(backend=gateway)


def get_orchestrator(
    gateway: Annotated[AIGatewayClient, Depends(get_gateway_client)],
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
    repository: Annotated[AnalysisRepository, Depends(get_analysis_repository)],
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        transcriber=gateway,
        analysis_service=analysis_service,
        repository=repository,
    )


def set_live_manager(manager: Optional[LiveSessionManager]) -> None:
    """
    Set the global live session manager.

    Args:
        manager: LiveSessionManager to use globally, or None to reset
    """
    global _live_manager
    _live_manager = manager


def peek_live_manager() -> Optional[LiveSessionManager]:
    """Return the live session manager if one was created."""
    return _live_manager


def get_live_manager(
    gateway: Annotated[AIGatewayClient, Depends(get_gateway_client)],
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> LiveSessionManager:
    """
    Get the global live session manager, creating it on first use.

    Returns:
        LiveSessionManager instance
    """
    global _live_manager
    if _live_manager is None:
        _live_manager = LiveSessionManager(analysis_service=analysis_service, transcriber=gateway)
    return _live_manager
