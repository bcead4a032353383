"""Semantic map and research report models."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import Field

from researcher.models.base import FrozenCamelModel

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

AppContext = Literal[
    "internal-tool",
    "b2c",
    "b2b-saas",
    "marketplace",
    "portfolio",
    "other",
]

WireframeLayout = Literal["single-column", "two-column", "dashboard", "form", "list"]

ZoneType = Literal["header", "sidebar", "main", "footer", "card", "table", "chart", "form"]

PromptType = Literal["setup", "feature", "dashboard", "full"]


class Table(FrozenCamelModel):
    """A data table inferred from a schema declaration."""

    name: str
    fields: list[str] = Field(default_factory=list)
    relationships: list[str] | None = None


class ApiRoute(FrozenCamelModel):
    """An HTTP route found in the repository."""

    path: str
    method: HttpMethod
    description: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.path, self.method)


class SemanticMap(FrozenCamelModel):
    """Typed summary of a repository's data tables and API routes."""

    tables: list[Table] = Field(default_factory=list)
    api_routes: list[ApiRoute] | None = None

    @property
    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]


class ComponentRecommendation(FrozenCamelModel):
    """A UI component suggested from a component registry."""

    registry: str = Field(..., description="Registry name (e.g., @magicui)")
    component_name: str
    install_command: str
    rationale: str
    screenshot_url: str | None = None


class VisualResearch(FrozenCamelModel):
    """Output of the style-scout stage."""

    mood_board: list[str] = Field(default_factory=list)
    component_recommendations: list[ComponentRecommendation] = Field(
        default_factory=list
    )


class UserStory(FrozenCamelModel):
    """A user story mapped to a table or route."""

    as_a: str
    i_want_to: str
    so_that: str
    mapped_to: str = Field(..., description="DB table or API route")


class Zone(FrozenCamelModel):
    """A named region of a wireframe."""

    id: str
    name: str
    type: ZoneType
    data_source: str | None = Field(
        default=None, description="DB table or API route this maps to"
    )
    components: list[str] | None = None


class WireframeSpec(FrozenCamelModel):
    """Abstract screen specification."""

    screen_name: str
    layout: WireframeLayout
    zones: list[Zone] = Field(default_factory=list)


class CodingPrompt(FrozenCamelModel):
    """Rendered instructions for an external coding assistant."""

    title: str
    prompt: str


class ContextAnalysis(FrozenCamelModel):
    """Who the app is for and what it solves."""

    target_audience: str = "General users"
    core_problem: str = "Managing data and workflows"
    context: AppContext = "other"


class Report(FrozenCamelModel):
    """The final research report. Exactly one per completed session."""

    id: str
    repo_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    semantic_map: SemanticMap

    target_audience: str
    core_problem: str
    context: AppContext

    user_stories: list[UserStory] = Field(default_factory=list)
    wireframes: list[WireframeSpec] = Field(default_factory=list)
    recommended_stack: list[ComponentRecommendation] = Field(
        default_factory=list, max_length=6
    )
    coding_prompts: list[CodingPrompt] = Field(default_factory=list)
