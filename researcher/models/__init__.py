"""Data models for the research service."""

from researcher.models.report import (
    ApiRoute,
    CodingPrompt,
    ComponentRecommendation,
    ContextAnalysis,
    Report,
    SemanticMap,
    Table,
    UserStory,
    VisualResearch,
    WireframeSpec,
    Zone,
)
from researcher.models.research import (
    LogEntry,
    Phase,
    PromptRequest,
    PromptResponse,
    ResearchRequest,
    Session,
    SessionListResponse,
    SessionStatus,
    SessionSummary,
    StartResponse,
)

__all__ = [
    # Report models
    "ApiRoute",
    "CodingPrompt",
    "ComponentRecommendation",
    "ContextAnalysis",
    "Report",
    "SemanticMap",
    "Table",
    "UserStory",
    "VisualResearch",
    "WireframeSpec",
    "Zone",
    # Session models
    "LogEntry",
    "Phase",
    "PromptRequest",
    "PromptResponse",
    "ResearchRequest",
    "Session",
    "SessionListResponse",
    "SessionStatus",
    "SessionSummary",
    "StartResponse",
]
