"""Integration tests for the pipeline orchestrator."""

import asyncio
from datetime import timedelta

import pytest
import structlog

from researcher.agents.architect import ArchitectAgent
from researcher.agents.base import NULL_REPORTER, SemanticExtractor, StageReporter
from researcher.agents.style_scout import StyleScoutAgent
from researcher.core.events import Event
from researcher.core.exceptions import InvalidRepoUrlError, MissingFieldError
from researcher.core.orchestrator import PipelineOrchestrator
from researcher.core.session import SessionStore
from researcher.models.report import SemanticMap, Table
from researcher.models.research import Phase, ResearchRequest, Session, utcnow

REPO_URL = "https://github.com/acme/blog"


class ScriptedExtractor(SemanticExtractor):
    """Extractor that can block, fail, and keeps the reporter it was given."""

    def __init__(
        self,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
        steps: list[tuple[Phase, float]] | None = None,
    ):
        self.error = error
        self.gate = gate
        self.steps = steps or []
        self.reporter: StageReporter = NULL_REPORTER
        self.calls = 0
        super().__init__()

    @property
    def name(self) -> str:
        return "scripted_extractor"

    @property
    def description(self) -> str:
        return "Returns a fixed semantic map"

    async def analyze(self, request_id, repo_url, reporter=NULL_REPORTER):
        self.calls += 1
        self.reporter = reporter
        for phase, progress in self.steps:
            await reporter.advance(phase, progress)
        if self.gate is not None and self.calls == 1:
            await self.gate.wait()
            raise RuntimeError("superseded run failed")
        if self.error is not None:
            raise self.error
        return SemanticMap(tables=[Table(name="Post", fields=["id", "title"])])


class BlockingExtractor(ScriptedExtractor):
    """Extractor whose every run waits on the gate."""

    async def analyze(self, request_id, repo_url, reporter=NULL_REPORTER):
        self.calls += 1
        await self.gate.wait()
        return SemanticMap()


class ContextRecordingExtractor(ScriptedExtractor):
    """Extractor that records the structlog context its run sees."""

    def __init__(self):
        super().__init__()
        self.seen_context: dict = {}

    async def analyze(self, request_id, repo_url, reporter=NULL_REPORTER):
        self.seen_context = structlog.contextvars.get_contextvars()
        return await super().analyze(request_id, repo_url, reporter)


def build_orchestrator(extractor, screenshots, completion, store, broadcaster):
    return PipelineOrchestrator(
        extractor=extractor,
        researcher=StyleScoutAgent(screenshots=screenshots),
        synthesizer=ArchitectAgent(completion=completion),
        store=store,
        events=broadcaster,
    )


class TestPipelineOrchestrator:
    """Tests for PipelineOrchestrator."""

    @pytest.fixture
    def payload(self) -> ResearchRequest:
        return ResearchRequest(repo_url=REPO_URL)

    @pytest.mark.asyncio
    async def test_full_pipeline_run(self, orchestrator: PipelineOrchestrator, payload):
        """A successful run walks every phase and ends complete at 1.0."""
        events: list[Event] = []
        orchestrator.subscribe("req-1", callback=events.append)

        result = await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        assert result == {"status": "started"}
        status = await orchestrator.status("req-1")
        assert status.phase == Phase.COMPLETE
        assert status.progress == 1.0

        phases = [e.data["phase"] for e in events if e.event_type == "phase"]
        assert phases == [
            "idle",
            "analyzing_repo",
            "scanning_schemas",
            "browsing_registries",
            "capturing_screenshots",
            "synthesizing",
            "generating_report",
            "complete",
        ]

        progress = [e.data["progress"] for e in events if e.event_type in ("phase", "progress")]
        assert progress == sorted(progress)
        assert events[-1].event_type == "report"

    @pytest.mark.asyncio
    async def test_report_is_stored(self, orchestrator: PipelineOrchestrator, payload):
        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        report = await orchestrator.get_report("req-1")

        assert report is not None
        assert report.id == "req-1"
        assert report.semantic_map.table_names == ["Post", "Comment"]
        assert report.context == "other"
        assert len(report.coding_prompts) == 3

    @pytest.mark.asyncio
    async def test_logs_follow_the_stages(self, orchestrator: PipelineOrchestrator, payload):
        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        messages = [entry.message for entry in (await orchestrator.status("req-1")).logs]

        assert messages[0] == "Starting research workflow"
        assert "Found 2 database tables" in messages
        assert "Captured 3 screenshots" in messages
        assert messages[-1] == "Research workflow complete"
        stage_logs = [m for m in messages if m.startswith("Phase ")]
        assert stage_logs == [
            "Phase 1: Analyzing repository structure",
            "Phase 2: Scouting component registries",
            "Phase 3: Synthesizing architecture report",
        ]

    @pytest.mark.asyncio
    async def test_stage_failure_ends_in_error(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        orchestrator = build_orchestrator(
            ScriptedExtractor(error=RuntimeError("rate limited")),
            screenshots,
            failing_completion,
            store,
            broadcaster,
        )
        events: list[Event] = []
        orchestrator.subscribe("req-1", callback=events.append)

        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        status = await orchestrator.status("req-1")
        assert status.phase == Phase.ERROR
        assert status.progress == 0.05
        assert status.logs[-1].level == "error"
        assert status.logs[-1].message == "Workflow failed: rate limited"
        assert await orchestrator.get_report("req-1") is None

        assert events[-2].event_type == "log"
        assert events[-1].event_type == "phase"
        assert events[-1].is_final
        assert not any(e.event_type == "report" for e in events)

    @pytest.mark.asyncio
    async def test_terminal_phase_is_sticky(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        extractor = ScriptedExtractor()
        orchestrator = build_orchestrator(
            extractor, screenshots, failing_completion, store, broadcaster
        )

        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")
        await extractor.reporter.advance(Phase.SYNTHESIZING, 0.7)
        await extractor.reporter.progress(0.2)

        status = await orchestrator.status("req-1")
        assert status.phase == Phase.COMPLETE
        assert status.progress == 1.0

    @pytest.mark.asyncio
    async def test_phase_never_moves_backwards(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        extractor = ScriptedExtractor(
            steps=[(Phase.SCANNING_SCHEMAS, 0.2), (Phase.ANALYZING_REPO, 0.3), (Phase.IDLE, 0.0)]
        )
        orchestrator = build_orchestrator(
            extractor, screenshots, failing_completion, store, broadcaster
        )
        events: list[Event] = []
        orchestrator.subscribe("req-1", callback=events.append)

        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        phases = [e.data["phase"] for e in events if e.event_type == "phase"]
        assert phases[:4] == ["idle", "analyzing_repo", "scanning_schemas", "browsing_registries"]
        assert phases.count("analyzing_repo") == 1

    @pytest.mark.asyncio
    async def test_restart_replaces_session(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        """The superseded run neither persists nor broadcasts."""
        gate = asyncio.Event()
        orchestrator = build_orchestrator(
            ScriptedExtractor(gate=gate), screenshots, failing_completion, store, broadcaster
        )
        events: list[Event] = []

        await orchestrator.start("req-1", payload)
        first_run = orchestrator._tasks["req-1"]
        await asyncio.sleep(0)

        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")
        orchestrator.subscribe("req-1", callback=events.append)
        gate.set()
        await first_run

        status = await orchestrator.status("req-1")
        assert status.phase == Phase.COMPLETE
        assert not any(entry.level == "error" for entry in status.logs)
        assert events == []

    @pytest.mark.asyncio
    async def test_invalid_repo_url_creates_no_session(self, orchestrator: PipelineOrchestrator):
        with pytest.raises(InvalidRepoUrlError):
            await orchestrator.start("req-1", ResearchRequest(repo_url="https://gitlab.com/a/b"))

        assert await orchestrator.get_report("req-1") is None
        sessions, total = await orchestrator.list_sessions()
        assert total == 0

    @pytest.mark.asyncio
    async def test_missing_request_id(self, orchestrator: PipelineOrchestrator, payload):
        with pytest.raises(MissingFieldError):
            await orchestrator.start("", payload)

    @pytest.mark.asyncio
    async def test_unknown_session_status(self, orchestrator: PipelineOrchestrator):
        status = await orchestrator.status("nope")

        assert status.phase == Phase.IDLE
        assert status.progress == 0.0
        assert status.logs == []
        assert await orchestrator.get_report("nope") is None

    @pytest.mark.asyncio
    async def test_log_appends_to_session(self, orchestrator: PipelineOrchestrator, payload):
        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        await orchestrator.log("req-1", "warn", "Manual note")

        status = await orchestrator.status("req-1")
        assert status.logs[-1].message == "Manual note"
        assert status.logs[-1].level == "warn"

    @pytest.mark.asyncio
    async def test_shutdown_cancels_blocked_runs(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        orchestrator = build_orchestrator(
            ScriptedExtractor(gate=asyncio.Event()),
            screenshots,
            failing_completion,
            store,
            broadcaster,
        )
        await orchestrator.start("req-1", payload)
        task = orchestrator._tasks["req-1"]
        await asyncio.sleep(0)

        await orchestrator.shutdown(timeout=0.01)
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_shutdown_cancels_superseded_runs(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        orchestrator = build_orchestrator(
            BlockingExtractor(gate=asyncio.Event()),
            screenshots,
            failing_completion,
            store,
            broadcaster,
        )
        await orchestrator.start("req-1", payload)
        first_run = orchestrator._tasks["req-1"]
        await asyncio.sleep(0)
        await orchestrator.start("req-1", payload)
        second_run = orchestrator._tasks["req-1"]
        await asyncio.sleep(0)

        await orchestrator.shutdown(timeout=0.01)

        for task in (first_run, second_run):
            with pytest.raises(asyncio.CancelledError):
                await task
        assert orchestrator._superseded == set()

    @pytest.mark.asyncio
    async def test_start_drops_expired_sessions(
        self, screenshots, failing_completion, broadcaster, payload
    ):
        store = SessionStore(ttl_hours=1)
        await store.save(
            Session(
                request_id="stale",
                repo_url=REPO_URL,
                created_at=utcnow() - timedelta(hours=2),
            )
        )
        orchestrator = build_orchestrator(
            ScriptedExtractor(), screenshots, failing_completion, store, broadcaster
        )

        await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        assert await store.cleanup_expired() == 0
        sessions, total = await orchestrator.list_sessions()
        assert total == 1
        assert sessions[0].request_id == "req-1"

    @pytest.mark.asyncio
    async def test_run_does_not_inherit_caller_log_context(
        self, screenshots, failing_completion, store, broadcaster, payload
    ):
        extractor = ContextRecordingExtractor()
        orchestrator = build_orchestrator(
            extractor, screenshots, failing_completion, store, broadcaster
        )

        with structlog.contextvars.bound_contextvars(http_request_id="http-1"):
            await orchestrator.start("req-1", payload)
        await orchestrator.wait("req-1")

        assert "http_request_id" not in extractor.seen_context
        assert extractor.seen_context["request_id"] == "req-1"
