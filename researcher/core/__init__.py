"""Core functionality for the research service."""

from researcher.core.exceptions import (
    CollaboratorError,
    CompletionError,
    ContentFetchError,
    InputError,
    InvalidRepoUrlError,
    MissingFieldError,
    NotFoundError,
    ReportNotFoundError,
    ResearcherError,
    ScreenshotError,
    StageExecutionError,
)
from researcher.core.events import Event, EventBroadcaster, Subscription, get_event_broadcaster
from researcher.core.session import SessionStore, get_session_store

__all__ = [
    "CollaboratorError",
    "CompletionError",
    "ContentFetchError",
    "InputError",
    "InvalidRepoUrlError",
    "MissingFieldError",
    "NotFoundError",
    "ReportNotFoundError",
    "ResearcherError",
    "ScreenshotError",
    "StageExecutionError",
    "Event",
    "EventBroadcaster",
    "Subscription",
    "get_event_broadcaster",
    "SessionStore",
    "get_session_store",
]
