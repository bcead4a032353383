"""Research session models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator

from researcher.models.base import CamelModel
from researcher.models.report import PromptType, Report, SemanticMap, VisualResearch


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    """Research workflow phase, in execution order."""

    IDLE = "idle"
    ANALYZING_REPO = "analyzing_repo"
    SCANNING_SCHEMAS = "scanning_schemas"
    BROWSING_REGISTRIES = "browsing_registries"
    CAPTURING_SCREENSHOTS = "capturing_screenshots"
    SYNTHESIZING = "synthesizing"
    GENERATING_REPORT = "generating_report"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.COMPLETE, Phase.ERROR)

    @property
    def rank(self) -> int:
        """Position on the success path. ERROR sits outside it."""
        return _PHASE_ORDER.index(self) if self in _PHASE_ORDER else len(_PHASE_ORDER)


_PHASE_ORDER = [
    Phase.IDLE,
    Phase.ANALYZING_REPO,
    Phase.SCANNING_SCHEMAS,
    Phase.BROWSING_REGISTRIES,
    Phase.CAPTURING_SCREENSHOTS,
    Phase.SYNTHESIZING,
    Phase.GENERATING_REPORT,
    Phase.COMPLETE,
]

LogLevel = Literal["info", "warn", "error"]


class LogEntry(CamelModel):
    """A single session log line."""

    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())
    level: LogLevel
    message: str
    data: Any | None = None


class ResearchRequest(CamelModel):
    """Payload for starting a research session."""

    repo_url: str = Field(..., description="Repository URL to analyze")
    user_intent: str | None = Field(default=None, description="Optional user intent or context")
    include_screenshots: bool = True
    target_registries: list[str] | None = None

    @field_validator("repo_url")
    @classmethod
    def _well_formed_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("repo_url must be a well-formed http(s) URL")
        return value


class Session(CamelModel):
    """One end-to-end research run. Owned by the orchestrator."""

    request_id: str
    repo_url: str
    user_intent: str | None = None

    phase: Phase = Phase.IDLE
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    logs: list[LogEntry] = Field(default_factory=list)

    semantic_map: SemanticMap | None = None
    visual_research: VisualResearch | None = None
    report: Report | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal


class SessionStatus(CamelModel):
    """Status snapshot returned to callers."""

    phase: Phase = Phase.IDLE
    progress: float = 0.0
    logs: list[LogEntry] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: Session | None) -> "SessionStatus":
        if session is None:
            return cls()
        return cls(
            phase=session.phase,
            progress=session.progress,
            logs=list(session.logs),
        )


class StartResponse(CamelModel):
    """Response for a started research session."""

    request_id: str
    status: Literal["started"] = "started"
    stream_url: str


class SessionSummary(CamelModel):
    """One row of the session listing."""

    request_id: str
    repo_url: str
    phase: Phase
    progress: float
    created_at: datetime
    has_report: bool = False

    @classmethod
    def from_session(cls, session: Session) -> "SessionSummary":
        return cls(
            request_id=session.request_id,
            repo_url=session.repo_url,
            phase=session.phase,
            progress=session.progress,
            created_at=session.created_at,
            has_report=session.report is not None,
        )


class SessionListResponse(CamelModel):
    """Response for listing research sessions."""

    sessions: list[SessionSummary]
    total: int
    limit: int
    offset: int


class PromptRequest(CamelModel):
    """Request to export a coding prompt from a report."""

    prompt_type: PromptType = "full"


class PromptResponse(CamelModel):
    prompt: str
