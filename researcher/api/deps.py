"""Dependency injection for API endpoints."""

from typing import Annotated

from fastapi import Depends

from researcher.core.exceptions import ReportNotFoundError
from researcher.core.orchestrator import PipelineOrchestrator, get_orchestrator
from researcher.models.report import Report


async def get_pipeline() -> PipelineOrchestrator:
    """Get the pipeline orchestrator."""
    return get_orchestrator()


async def get_report_by_id(
    request_id: str,
    orchestrator: Annotated[PipelineOrchestrator, Depends(get_pipeline)],
) -> Report:
    """Get a session's report or raise 404."""
    report = await orchestrator.get_report(request_id)
    if report is None:
        raise ReportNotFoundError(request_id)
    return report


# Type aliases for cleaner signatures
OrchestratorDep = Annotated[PipelineOrchestrator, Depends(get_pipeline)]
ReportDep = Annotated[Report, Depends(get_report_by_id)]
