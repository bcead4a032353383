"""Custom exceptions for the research service."""

from typing import Any


class ResearcherError(Exception):
    """Base exception for the research service."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InputError(ResearcherError):
    """Bad caller input. The workflow never starts."""

    status_code = 400


class MissingFieldError(InputError):
    """A required request field is absent."""

    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}", {"field": field})
        self.field = field


class InvalidRepoUrlError(InputError):
    """The repository URL does not match a recognised host pattern."""

    def __init__(self, repo_url: str):
        super().__init__(f"Invalid repository URL: {repo_url}", {"repo_url": repo_url})
        self.repo_url = repo_url


class NotFoundError(ResearcherError):
    """Requested resource does not exist."""

    status_code = 404


class ReportNotFoundError(NotFoundError):
    """No report has been produced for the session yet."""

    def __init__(self, request_id: str):
        super().__init__(
            f"Report not found: {request_id}",
            {"request_id": request_id},
        )


class CollaboratorError(ResearcherError):
    """An external collaborator (content fetch, completion, screenshot) failed."""

    status_code = 502


class ContentFetchError(CollaboratorError):
    """Failed to list or read repository content."""

    def __init__(self, path: str, message: str, status: int | None = None):
        details: dict[str, Any] = {"path": path}
        if status is not None:
            details["status"] = status
        super().__init__(f"Could not fetch '{path}': {message}", details)
        self.path = path


class CompletionError(CollaboratorError):
    """The text completion service failed or returned nothing."""

    pass


class ScreenshotError(CollaboratorError):
    """Screenshot capture failed."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Screenshot of {url} failed: {message}", {"url": url})


class StageExecutionError(ResearcherError):
    """A pipeline stage failed during execution. Fatal to the session."""

    def __init__(self, stage: str, phase: str, message: str):
        super().__init__(
            f"Stage '{stage}' failed in phase '{phase}': {message}",
            {"stage": stage, "phase": phase},
        )
        self.stage = stage
        self.phase = phase
        self.reason = message
