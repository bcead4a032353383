"""Pipeline Orchestrator.

Coordinates the research stages in sequence to turn a repository URL into
a UX research report, keeping a per-session status that observers can poll
or stream.
"""

import asyncio
import contextvars
from functools import lru_cache
from typing import Any

from researcher.agents.architect import ArchitectAgent
from researcher.agents.base import (
    ReportSynthesizer,
    SemanticExtractor,
    StageReporter,
    VisualResearcher,
)
from researcher.agents.repo_analyst import RepoAnalystAgent, parse_repo_url
from researcher.agents.style_scout import StyleScoutAgent
from researcher.core.events import (
    EventBroadcaster,
    EventCallback,
    Subscription,
    get_event_broadcaster,
)
from researcher.core.exceptions import MissingFieldError, StageExecutionError
from researcher.core.session import SessionStore, get_session_store
from researcher.models.report import Report, SemanticMap, VisualResearch
from researcher.models.research import (
    LogEntry,
    LogLevel,
    Phase,
    ResearchRequest,
    Session,
    SessionStatus,
)
from researcher.utils.debug import save_stage_snapshot
from researcher.utils.logging import bind_request_id, get_logger

# Progress at the start of each stage
EXTRACTION_PROGRESS = 0.05
VISUAL_RESEARCH_PROGRESS = 0.35
SYNTHESIS_PROGRESS = 0.7


class _SessionReporter(StageReporter):
    """StageReporter bound to one session."""

    def __init__(self, orchestrator: "PipelineOrchestrator", session: Session):
        self._orchestrator = orchestrator
        self._session = session

    async def advance(self, phase: Phase, progress: float) -> None:
        await self._orchestrator._set_phase(self._session, phase, progress)

    async def progress(self, value: float) -> None:
        await self._orchestrator._set_progress(self._session, value)

    async def log(self, level: LogLevel, message: str, data: Any | None = None) -> None:
        await self._orchestrator._append_log(self._session, level, message, data)


class PipelineOrchestrator:
    """Orchestrates the research pipeline for a session.

    Pipeline phases:
    1. analyzing_repo - Extract tables and routes from the repository
    2. browsing_registries - Recommend components and capture screenshots
    3. synthesizing - Build the final report

    Phase only moves forward; ``complete`` and ``error`` are terminal and
    later phase or progress updates for that session are ignored.
    """

    def __init__(
        self,
        extractor: SemanticExtractor,
        researcher: VisualResearcher,
        synthesizer: ReportSynthesizer,
        store: SessionStore | None = None,
        events: EventBroadcaster | None = None,
    ):
        self.extractor = extractor
        self.researcher = researcher
        self.synthesizer = synthesizer
        self.store = store or get_session_store()
        self.events = events or get_event_broadcaster()
        self.logger = get_logger("orchestrator")
        self._tasks: dict[str, asyncio.Task] = {}
        # Runs replaced by a later start() with the same id, until they finish
        self._superseded: set[asyncio.Task] = set()

    async def start(self, request_id: str, payload: ResearchRequest) -> dict[str, str]:
        """Create a fresh session and schedule its workflow.

        Returns immediately; the workflow runs as a background task. Starting
        again with the same id replaces the stored session.

        Raises:
            MissingFieldError: If the request id or repository URL is empty
            InvalidRepoUrlError: If the URL is not a repository URL
        """
        if not request_id:
            raise MissingFieldError("requestId")
        if not payload.repo_url:
            raise MissingFieldError("repoUrl")
        parse_repo_url(payload.repo_url)

        expired = await self.store.cleanup_expired()
        if expired:
            self.logger.info("orchestrator.sessions_expired", removed=expired)

        session = Session(
            request_id=request_id,
            repo_url=payload.repo_url,
            user_intent=payload.user_intent,
        )
        await self.store.save(session)

        await self._append_log(
            session,
            "info",
            "Starting research workflow",
            {"repoUrl": payload.repo_url},
        )
        await self.events.publish_phase(request_id, Phase.IDLE, 0.0)

        previous = self._tasks.get(request_id)
        if previous is not None and not previous.done():
            self._superseded.add(previous)
            previous.add_done_callback(self._superseded.discard)

        # Fresh context: the workflow must not inherit the caller's HTTP log bindings
        task = asyncio.create_task(
            self._run_workflow(session, payload),
            context=contextvars.Context(),
        )
        self._tasks[request_id] = task
        task.add_done_callback(lambda t: self._forget_task(request_id, t))

        return {"status": "started"}

    async def status(self, request_id: str) -> SessionStatus:
        """Current phase, progress and logs; idle defaults when unknown."""
        return SessionStatus.from_session(await self.store.get(request_id))

    async def get_report(self, request_id: str) -> Report | None:
        session = await self.store.get(request_id)
        return session.report if session else None

    async def list_sessions(
        self,
        phase: Phase | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Session], int]:
        """Recent sessions, newest first."""
        return await self.store.list_sessions(phase=phase, limit=limit, offset=offset)

    def subscribe(
        self,
        request_id: str,
        callback: EventCallback | None = None,
    ) -> Subscription:
        """Observe a session's events until ``unsubscribe()`` is called."""
        return self.events.subscribe(request_id, callback=callback)

    async def wait(self, request_id: str) -> None:
        """Block until the session's running workflow, if any, finishes."""
        task = self._tasks.get(request_id)
        if task is not None:
            await task

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Give running workflows a moment to finish, then cancel the rest."""
        pending = [t for t in (*self._tasks.values(), *self._superseded) if not t.done()]
        if not pending:
            return
        self.logger.info("orchestrator.shutdown", pending=len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()

    async def log(
        self,
        request_id: str,
        level: LogLevel,
        message: str,
        data: Any | None = None,
    ) -> None:
        """Append a log line to a session and broadcast it."""
        session = await self.store.get(request_id)
        if session is not None:
            await self._append_log(session, level, message, data)

    def _forget_task(self, request_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(request_id) is task:
            del self._tasks[request_id]

    async def _run_workflow(self, session: Session, payload: ResearchRequest) -> Report | None:
        """Run all stages. Never raises; failures end the session in ``error``."""
        request_id = session.request_id
        bind_request_id(request_id)
        reporter = _SessionReporter(self, session)

        self.logger.info("orchestrator.pipeline.started", repo_url=payload.repo_url)

        try:
            semantic_map = await self._run_extraction(session, payload, reporter)
            visual_research = await self._run_visual_research(
                session, semantic_map, payload, reporter
            )
            report = await self._run_synthesis(
                session, semantic_map, visual_research, payload, reporter
            )
        except StageExecutionError as e:
            self.logger.error(
                "orchestrator.pipeline.failed",
                stage=e.stage,
                phase=e.phase,
                error=e.reason,
            )
            await self._append_log(
                session,
                "error",
                f"Workflow failed: {e.reason}",
                {"error": e.reason, "stage": e.stage},
            )
            await self._set_phase(session, Phase.ERROR, session.progress)
            return None

        await self._set_phase(session, Phase.COMPLETE, 1.0)
        await self._append_log(session, "info", "Research workflow complete")
        if self._is_current(session):
            await self.events.publish_report(request_id, report)

        self.logger.info(
            "orchestrator.pipeline.completed",
            tables=len(report.semantic_map.tables),
            recommendations=len(report.recommended_stack),
        )
        return report

    async def _run_extraction(
        self,
        session: Session,
        payload: ResearchRequest,
        reporter: StageReporter,
    ) -> SemanticMap:
        """Run the repository analysis stage."""
        phase = Phase.ANALYZING_REPO

        await self._set_phase(session, phase, EXTRACTION_PROGRESS)
        await self._append_log(session, "info", "Phase 1: Analyzing repository structure")

        try:
            semantic_map = await self.extractor.analyze(
                session.request_id,
                payload.repo_url,
                reporter=reporter,
            )
        except Exception as e:
            raise StageExecutionError(self.extractor.name, phase.value, str(e)) from e

        session.semantic_map = semantic_map
        await self._persist(session)
        save_stage_snapshot(session.request_id, "semantic_map", semantic_map)

        await self._append_log(
            session,
            "info",
            f"Found {len(semantic_map.tables)} database tables",
            {"tables": semantic_map.table_names},
        )
        return semantic_map

    async def _run_visual_research(
        self,
        session: Session,
        semantic_map: SemanticMap,
        payload: ResearchRequest,
        reporter: StageReporter,
    ) -> VisualResearch:
        """Run the component research stage."""
        phase = Phase.BROWSING_REGISTRIES

        await self._set_phase(session, phase, VISUAL_RESEARCH_PROGRESS)
        await self._append_log(session, "info", "Phase 2: Scouting component registries")

        try:
            visual_research = await self.researcher.scout(
                session.request_id,
                semantic_map,
                target_registries=payload.target_registries,
                include_screenshots=payload.include_screenshots,
                reporter=reporter,
            )
        except Exception as e:
            raise StageExecutionError(self.researcher.name, phase.value, str(e)) from e

        session.visual_research = visual_research
        await self._persist(session)
        save_stage_snapshot(session.request_id, "visual_research", visual_research)

        await self._append_log(
            session,
            "info",
            f"Captured {len(visual_research.mood_board)} screenshots",
            {"recommendations": len(visual_research.component_recommendations)},
        )
        return visual_research

    async def _run_synthesis(
        self,
        session: Session,
        semantic_map: SemanticMap,
        visual_research: VisualResearch,
        payload: ResearchRequest,
        reporter: StageReporter,
    ) -> Report:
        """Run the report synthesis stage."""
        phase = Phase.SYNTHESIZING

        await self._set_phase(session, phase, SYNTHESIS_PROGRESS)
        await self._append_log(session, "info", "Phase 3: Synthesizing architecture report")

        try:
            report = await self.synthesizer.synthesize(
                session.request_id,
                semantic_map,
                visual_research,
                payload,
                reporter=reporter,
            )
        except Exception as e:
            raise StageExecutionError(self.synthesizer.name, phase.value, str(e)) from e

        session.report = report
        await self._persist(session)
        save_stage_snapshot(session.request_id, "report", report)

        await self._append_log(session, "info", "Generated final research report")
        return report

    def _is_current(self, session: Session) -> bool:
        """False once a newer start() has replaced this session."""
        return self.store.holds(session)

    async def _persist(self, session: Session) -> None:
        if self._is_current(session):
            await self.store.save(session)

    async def _set_phase(self, session: Session, phase: Phase, progress: float) -> None:
        """Move the session forward. ``error`` keeps the current progress."""
        if session.is_terminal:
            return
        if phase != Phase.ERROR:
            if phase.rank < session.phase.rank:
                return
            session.progress = max(session.progress, min(progress, 1.0))
        session.phase = phase

        if not self._is_current(session):
            return
        await self.store.save(session)
        await self.events.publish_phase(session.request_id, phase, session.progress)

    async def _set_progress(self, session: Session, value: float) -> None:
        if session.is_terminal or value <= session.progress:
            return
        session.progress = min(value, 1.0)

        if not self._is_current(session):
            return
        await self.store.save(session)
        await self.events.publish_progress(session.request_id, session.progress)

    async def _append_log(
        self,
        session: Session,
        level: LogLevel,
        message: str,
        data: Any | None = None,
    ) -> None:
        """Append to the session, mirror to structlog, then broadcast."""
        entry = LogEntry(level=level, message=message, data=data)
        session.logs.append(entry)

        log_method = {
            "info": self.logger.info,
            "warn": self.logger.warning,
            "error": self.logger.error,
        }[level]
        log_method("orchestrator.session_log", request_id=session.request_id, message=message)

        if not self._is_current(session):
            return
        await self.store.save(session)
        await self.events.publish_log(session.request_id, entry)


@lru_cache
def get_orchestrator() -> PipelineOrchestrator:
    """Get the orchestrator singleton, wired with the default stages."""
    return PipelineOrchestrator(
        extractor=RepoAnalystAgent(),
        researcher=StyleScoutAgent(),
        synthesizer=ArchitectAgent(),
    )
