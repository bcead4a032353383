"""External collaborators of the research pipeline."""

from researcher.services.completion import (
    ClaudeCompletionService,
    TextCompletionService,
    get_completion_service,
)
from researcher.services.content_provider import (
    GitHubContentProvider,
    RepoEntry,
    RepositoryContentProvider,
    get_content_provider,
)
from researcher.services.prompt_export import render_prompt
from researcher.services.screenshots import (
    BrowserRenderScreenshotService,
    ScreenshotService,
    get_screenshot_service,
)

__all__ = [
    "ClaudeCompletionService",
    "TextCompletionService",
    "get_completion_service",
    "GitHubContentProvider",
    "RepoEntry",
    "RepositoryContentProvider",
    "get_content_provider",
    "render_prompt",
    "BrowserRenderScreenshotService",
    "ScreenshotService",
    "get_screenshot_service",
]
