"""Base classes for the research pipeline stages."""

from abc import ABC, abstractmethod
from typing import Any

from researcher.models.report import Report, SemanticMap, VisualResearch
from researcher.models.research import LogLevel, Phase, ResearchRequest
from researcher.utils.logging import get_logger


class StageReporter:
    """Channel from a running stage back to its session.

    The base class discards everything, so stages can run standalone. The
    orchestrator passes a session-bound subclass that updates phase and
    progress, appends log entries and broadcasts them.
    """

    async def advance(self, phase: Phase, progress: float) -> None:
        """Move the session to a sub-phase of the running stage."""
        return None

    async def progress(self, value: float) -> None:
        """Publish a progress value without changing phase."""
        return None

    async def log(self, level: LogLevel, message: str, data: Any | None = None) -> None:
        """Append a user-facing log line to the session."""
        return None


NULL_REPORTER = StageReporter()


class BaseAgent(ABC):
    """Base class for pipeline stages.

    All stages should inherit from one of the stage interfaces below and
    implement:
    - name: Stage identifier used in logs and errors
    - description: What the stage does
    - the stage's entry point
    """

    def __init__(self):
        self.logger = get_logger(f"agent.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Agent name/identifier."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this agent does."""
        pass

    @property
    def system_prompt(self) -> str:
        """System instruction for completion calls, if the stage makes any."""
        return ""


class SemanticExtractor(BaseAgent):
    """Turns repository content into a SemanticMap."""

    @abstractmethod
    async def analyze(
        self,
        request_id: str,
        repo_url: str,
        reporter: StageReporter = NULL_REPORTER,
    ) -> SemanticMap:
        """Analyze a repository.

        Raises:
            InvalidRepoUrlError: If the URL is not a recognised repository URL
        """


class VisualResearcher(BaseAgent):
    """Infers an archetype and recommends components."""

    @abstractmethod
    async def scout(
        self,
        request_id: str,
        semantic_map: SemanticMap,
        target_registries: list[str] | None = None,
        include_screenshots: bool = True,
        reporter: StageReporter = NULL_REPORTER,
    ) -> VisualResearch:
        """Produce component recommendations and an optional mood board."""


class ReportSynthesizer(BaseAgent):
    """Combines analysis and visual research into the final report."""

    @abstractmethod
    async def synthesize(
        self,
        request_id: str,
        semantic_map: SemanticMap,
        visual_research: VisualResearch,
        payload: ResearchRequest,
        reporter: StageReporter = NULL_REPORTER,
    ) -> Report:
        """Build the report. Must not fail because of the completion service."""
