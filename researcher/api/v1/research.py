"""Research session endpoints."""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sse_starlette.sse import EventSourceResponse

from researcher.api.deps import OrchestratorDep, ReportDep
from researcher.core.orchestrator import PipelineOrchestrator
from researcher.models.report import Report
from researcher.models.research import (
    Phase,
    PromptRequest,
    PromptResponse,
    ResearchRequest,
    SessionListResponse,
    SessionStatus,
    SessionSummary,
    StartResponse,
)
from researcher.services.prompt_export import render_prompt
from researcher.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Seconds between SSE keepalives while no event arrives
KEEPALIVE_SECONDS = 30.0


def stream_path(request_id: str) -> str:
    return f"/v1/research/{request_id}/ws"


@router.post(
    "",
    response_model=StartResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a research session",
    description="Analyze a repository in the background. Returns immediately with the session id.",
)
async def start_research(
    data: ResearchRequest,
    orchestrator: OrchestratorDep,
) -> StartResponse:
    """Start a new research session."""
    request_id = str(uuid.uuid4())
    result = await orchestrator.start(request_id, data)
    return StartResponse(
        request_id=request_id,
        status=result["status"],
        stream_url=stream_path(request_id),
    )


@router.get(
    "",
    response_model=SessionListResponse,
    summary="List research sessions",
)
async def list_research(
    orchestrator: OrchestratorDep,
    phase: Annotated[Phase | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> SessionListResponse:
    """List recent sessions, newest first."""
    sessions, total = await orchestrator.list_sessions(phase=phase, limit=limit, offset=offset)
    return SessionListResponse(
        sessions=[SessionSummary.from_session(s) for s in sessions],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{request_id}/status",
    response_model=SessionStatus,
    summary="Get session status",
)
async def get_status(request_id: str, orchestrator: OrchestratorDep) -> SessionStatus:
    """Phase, progress and logs. Unknown sessions report idle."""
    return await orchestrator.status(request_id)


@router.get(
    "/{request_id}/report",
    response_model=Report | None,
    summary="Get the research report",
)
async def get_report(request_id: str, orchestrator: OrchestratorDep) -> Report | None:
    """The final report, or null while it does not exist."""
    return await orchestrator.get_report(request_id)


@router.post(
    "/{request_id}/prompt",
    response_model=PromptResponse,
    summary="Export a coding prompt",
)
async def export_prompt(data: PromptRequest, report: ReportDep) -> PromptResponse:
    """Render one coding prompt, or the full scaffolding prompt."""
    return PromptResponse(prompt=render_prompt(report, data.prompt_type))


async def _reply_to_client(
    text: str,
    request_id: str,
    orchestrator: PipelineOrchestrator,
) -> dict[str, Any]:
    """Answer one client WebSocket message."""
    try:
        message = json.loads(text)
    except ValueError:
        message = None

    message_type = message.get("type") if isinstance(message, dict) else None

    if message_type == "ping":
        return {"type": "pong", "ts": datetime.now(timezone.utc).isoformat()}

    if message_type == "status":
        current = await orchestrator.status(request_id)
        return {
            "type": "status",
            "phase": current.phase.value,
            "progress": current.progress,
        }

    return {"type": "ack"}


@router.websocket("/{request_id}/ws")
async def research_socket(
    websocket: WebSocket,
    request_id: str,
    orchestrator: OrchestratorDep,
) -> None:
    """Stream session events and answer ping/status messages."""
    await websocket.accept()
    subscription = orchestrator.subscribe(request_id)
    await websocket.send_json({"type": "connected", "requestId": request_id})

    async def forward_events() -> None:
        while True:
            event = await subscription.get()
            await websocket.send_json(event.to_message())

    forwarder = asyncio.create_task(forward_events())
    try:
        while True:
            text = await websocket.receive_text()
            await websocket.send_json(await _reply_to_client(text, request_id, orchestrator))
    except WebSocketDisconnect:
        logger.debug("research.websocket_closed", request_id=request_id)
    finally:
        forwarder.cancel()
        # Retrieve the forwarder outcome; a send on a closed socket lands here
        await asyncio.gather(forwarder, return_exceptions=True)
        subscription.unsubscribe()


@router.get(
    "/{request_id}/stream",
    summary="Stream session events (SSE)",
)
async def stream_research_events(
    request_id: str,
    orchestrator: OrchestratorDep,
) -> EventSourceResponse:
    """Stream real-time events for a session using Server-Sent Events."""

    async def event_generator():
        subscription = orchestrator.subscribe(request_id)

        try:
            current = await orchestrator.status(request_id)
            yield {
                "event": "connected",
                "data": json.dumps(
                    {
                        "requestId": request_id,
                        "phase": current.phase.value,
                        "progress": current.progress,
                    }
                ),
            }
            if current.phase.is_terminal:
                return

            # Stream events until the session finishes or the client disconnects
            while True:
                try:
                    event = await subscription.get(timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield {"event": "keepalive", "data": "{}"}
                    continue

                yield event.to_sse()
                if event.is_final:
                    break

        finally:
            subscription.unsubscribe()

    return EventSourceResponse(event_generator())
