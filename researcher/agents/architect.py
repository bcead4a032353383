"""Architect Agent.

Combines the semantic map and visual research into the final report:
audience/context analysis, user stories, wireframes and coding prompts.
"""

import json
import re

from pydantic import ValidationError

from researcher.agents.base import NULL_REPORTER, ReportSynthesizer, StageReporter
from researcher.models.report import (
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
from researcher.models.research import Phase, ResearchRequest
from researcher.services.completion import TextCompletionService, get_completion_service

MAX_STORY_TABLES = 8
MIN_GENERIC_STORY_FIELDS = 3

_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


def _matches(pattern: str, text: str) -> bool:
    return re.search(pattern, text, re.IGNORECASE) is not None


def infer_context_from_heuristics(semantic_map: SemanticMap) -> ContextAnalysis:
    """Classify the application from table-name vocabulary. Always succeeds."""
    table_names = [t.name.lower() for t in semantic_map.tables]

    if any(_matches(r"organization|team|subscription|billing", t) for t in table_names):
        return ContextAnalysis(
            target_audience="Business teams and organizations",
            core_problem="Managing team workflows and subscriptions",
            context="b2b-saas",
        )

    if any(_matches(r"product|order|cart", t) for t in table_names):
        return ContextAnalysis(
            target_audience="Online shoppers",
            core_problem="Purchasing products online",
            context="marketplace",
        )

    if any(_matches(r"admin|internal|employee", t) for t in table_names):
        return ContextAnalysis(
            target_audience="Internal team members",
            core_problem="Managing internal operations",
            context="internal-tool",
        )

    return ContextAnalysis(
        target_audience="General users",
        core_problem="Accessing and managing information",
        context="other",
    )


def parse_context_response(response: str) -> ContextAnalysis:
    """Parse a completion response into a ContextAnalysis.

    Raises:
        ValueError: If the response is not a JSON object with a valid context
    """
    data = json.loads(_CODE_FENCE.sub("", response).strip())
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return ContextAnalysis(
        target_audience=data.get("targetAudience") or "General users",
        core_problem=data.get("coreProblem") or "Managing data and workflows",
        context=data.get("context") or "other",
    )


def generate_story_for_table(table: Table) -> UserStory | None:
    """Apply the story rules in priority order; None when nothing fits."""
    table_name = table.name.lower()

    if _matches(r"user|account|profile", table_name):
        return UserStory(
            as_a="registered user",
            i_want_to="manage my profile and account settings",
            so_that="I can keep my information up to date",
            mapped_to=table.name,
        )

    if _matches(r"organization|team|workspace", table_name):
        return UserStory(
            as_a="team admin",
            i_want_to=f"manage {table_name} members and settings",
            so_that="I can control access and configuration",
            mapped_to=table.name,
        )

    if _matches(r"product|item|inventory", table_name):
        return UserStory(
            as_a="customer",
            i_want_to="browse and search products",
            so_that="I can find what I'm looking for",
            mapped_to=table.name,
        )

    if _matches(r"order|transaction|purchase", table_name):
        return UserStory(
            as_a="customer",
            i_want_to="view my order history",
            so_that="I can track my purchases",
            mapped_to=table.name,
        )

    if _matches(r"message|notification|alert", table_name):
        return UserStory(
            as_a="user",
            i_want_to="receive and manage notifications",
            so_that="I stay informed about important updates",
            mapped_to=table.name,
        )

    if _matches(r"session|auth|token", table_name):
        return UserStory(
            as_a="user",
            i_want_to="securely log in and manage sessions",
            so_that="my account remains protected",
            mapped_to=table.name,
        )

    if len(table.fields) >= MIN_GENERIC_STORY_FIELDS:
        return UserStory(
            as_a="user",
            i_want_to=f"view and manage {table_name.replace('_', ' ')}",
            so_that="I can access relevant information",
            mapped_to=table.name,
        )

    return None


def generate_user_stories(semantic_map: SemanticMap) -> list[UserStory]:
    """Best-effort stories for the first eight tables."""
    stories: list[UserStory] = []
    for table in semantic_map.tables[:MAX_STORY_TABLES]:
        story = generate_story_for_table(table)
        if story:
            stories.append(story)
    return stories


def design_wireframes(semantic_map: SemanticMap) -> list[WireframeSpec]:
    """Emit the canonical screen set.

    Dashboard and Settings are always present; List and Detail depend on
    the first table.
    """
    primary = semantic_map.tables[0] if semantic_map.tables else None
    primary_source = primary.name if primary else None

    wireframes = [
        WireframeSpec(
            screen_name="Dashboard",
            layout="dashboard",
            zones=[
                Zone(
                    id="header",
                    name="Navigation Header",
                    type="header",
                    components=["Navbar", "UserMenu", "Search"],
                ),
                Zone(
                    id="sidebar",
                    name="Side Navigation",
                    type="sidebar",
                    components=["SidebarNav", "QuickLinks"],
                ),
                Zone(
                    id="main-metrics",
                    name="Key Metrics",
                    type="card",
                    data_source=primary_source or "metrics",
                    components=["StatCard", "TrendIndicator"],
                ),
                Zone(
                    id="main-chart",
                    name="Analytics Chart",
                    type="chart",
                    data_source="analytics",
                    components=["AreaChart", "DateRangePicker"],
                ),
                Zone(
                    id="recent-activity",
                    name="Recent Activity",
                    type="table",
                    data_source=primary_source or "activity",
                    components=["DataTable", "Pagination"],
                ),
            ],
        )
    ]

    if primary:
        wireframes.append(
            WireframeSpec(
                screen_name=f"{primary.name} List",
                layout="list",
                zones=[
                    Zone(
                        id="header",
                        name="Page Header",
                        type="header",
                        components=["PageTitle", "CreateButton", "FilterBar"],
                    ),
                    Zone(
                        id="main-table",
                        name="Data Table",
                        type="table",
                        data_source=primary.name,
                        components=["DataTable", "SortableColumns", "RowActions"],
                    ),
                    Zone(
                        id="pagination",
                        name="Pagination",
                        type="footer",
                        components=["Pagination", "ItemsPerPage"],
                    ),
                ],
            )
        )

    if primary and len(primary.fields) > 3:
        related = primary.relationships[0] if primary.relationships else primary.name
        wireframes.append(
            WireframeSpec(
                screen_name=f"{primary.name} Detail",
                layout="two-column",
                zones=[
                    Zone(
                        id="header",
                        name="Detail Header",
                        type="header",
                        data_source=primary.name,
                        components=["Breadcrumb", "EntityTitle", "ActionButtons"],
                    ),
                    Zone(
                        id="main-content",
                        name="Main Information",
                        type="card",
                        data_source=primary.name,
                        components=["FormFields", "ValidationMessages"],
                    ),
                    Zone(
                        id="sidebar-info",
                        name="Additional Info",
                        type="sidebar",
                        data_source=related,
                        components=["InfoCard", "RelatedItems"],
                    ),
                ],
            )
        )

    wireframes.append(
        WireframeSpec(
            screen_name="Settings",
            layout="single-column",
            zones=[
                Zone(
                    id="header",
                    name="Settings Header",
                    type="header",
                    components=["PageTitle", "TabNavigation"],
                ),
                Zone(
                    id="settings-form",
                    name="Settings Form",
                    type="form",
                    data_source="user",
                    components=["SettingsForm", "SaveButton", "ResetButton"],
                ),
            ],
        )
    )

    return wireframes


def _table_summary(table: Table) -> str:
    fields = ", ".join(table.fields[:5])
    more = "..." if len(table.fields) > 5 else ""
    return f"- {table.name}: {fields}{more}"


def _setup_prompt(
    semantic_map: SemanticMap,
    recommendations: list[ComponentRecommendation],
) -> CodingPrompt:
    tables = "\n".join(_table_summary(t) for t in semantic_map.tables) or "- (no tables detected)"
    registries = "\n".join(f"{r.registry}: {r.component_name}" for r in recommendations)

    return CodingPrompt(
        title="Project Setup & Theme Configuration",
        prompt=f"""# Project Setup Prompt

## Context
I'm building a React application with the following database structure:
{tables}

## Task
1. Initialize a new Next.js/Vite project with TypeScript
2. Install and configure shadcn/ui with the following registries:
{registries}

3. Set up the theme with:
   - Dark mode support using next-themes
   - Custom color palette matching modern SaaS design
   - Typography scale for headings and body text

4. Create the basic layout structure:
   - App shell with sidebar navigation
   - Header with user menu
   - Main content area with proper spacing

## Expected Output
- Complete project structure
- Configured tailwind.config.ts
- Basic layout components
- Theme provider setup""",
    )


def _feature_prompt(
    semantic_map: SemanticMap,
    user_stories: list[UserStory],
    wireframes: list[WireframeSpec],
) -> CodingPrompt:
    stories = "\n".join(
        f"- As a {s.as_a}, I want to {s.i_want_to} ({s.mapped_to})" for s in user_stories[:4]
    )

    schema_blocks = []
    for table in semantic_map.tables[:4]:
        block = f"\n### {table.name}\nFields: {', '.join(table.fields)}"
        if table.relationships:
            block += f"\nRelations: {', '.join(table.relationships)}"
        schema_blocks.append(block)
    schema = "\n".join(schema_blocks)

    screens = "\n".join(
        f"\n### {w.screen_name} ({w.layout})\nZones: {', '.join(z.name for z in w.zones)}"
        for w in wireframes[:2]
    )

    return CodingPrompt(
        title="Feature Implementation - Core CRUD",
        prompt=f"""# Core Feature Implementation Prompt

## Context
Building on the project setup, I need to implement the core CRUD features for:
{stories}

## Database Schema
{schema}

## Wireframe Reference
{screens}

## Task
1. Create TypeScript types matching the database schema
2. Implement tRPC routers for CRUD operations:
   - List with pagination and filtering
   - Get single by ID
   - Create with validation
   - Update with optimistic updates
   - Delete with confirmation

3. Build the UI components:
   - Data table with sorting and filtering
   - Create/Edit form with validation
   - Detail view with related data

4. Add loading states, error handling, and toast notifications

## Expected Output
- Type definitions
- tRPC router implementation
- React components with proper state management
- Form validation using zod""",
    )


def _dashboard_prompt(
    semantic_map: SemanticMap,
    wireframes: list[WireframeSpec],
) -> CodingPrompt:
    dashboard = next((w for w in wireframes if w.screen_name == "Dashboard"), None)
    if dashboard:
        zones = json.dumps(
            [z.model_dump(mode="json", by_alias=True, exclude_none=True) for z in dashboard.zones],
            indent=2,
        )
    else:
        zones = "See Dashboard wireframe above"

    return CodingPrompt(
        title="Dashboard & Analytics",
        prompt=f"""# Dashboard Implementation Prompt

## Context
Creating the main dashboard view with analytics and metrics.

## Data Sources
Tables: {", ".join(semantic_map.table_names)}

## Wireframe
{zones}

## Task
1. Create metric cards showing key stats:
   - Total counts from main tables
   - Trend indicators (up/down arrows)
   - Percentage changes

2. Implement charts using Tremor or similar:
   - Area chart for time-series data
   - Bar chart for comparisons
   - Date range picker for filtering

3. Add recent activity feed:
   - Real-time updates if possible
   - Grouped by date
   - Action links to detail views

## Expected Output
- Dashboard page component
- Reusable metric card components
- Chart components with proper data fetching
- Activity feed with infinite scroll""",
    )


def generate_coding_prompts(
    semantic_map: SemanticMap,
    user_stories: list[UserStory],
    wireframes: list[WireframeSpec],
    recommendations: list[ComponentRecommendation],
) -> list[CodingPrompt]:
    """Exactly three prompts: setup, feature, dashboard."""
    return [
        _setup_prompt(semantic_map, recommendations),
        _feature_prompt(semantic_map, user_stories, wireframes),
        _dashboard_prompt(semantic_map, wireframes),
    ]


class ArchitectAgent(ReportSynthesizer):
    """Expert in synthesizing research into actionable specs.

    This agent uses a hybrid approach:
    1. Ask the completion service to classify audience and context
    2. Fall back to table-name heuristics on any failure
    3. Derive stories, wireframes and prompts deterministically
    """

    def __init__(self, completion: TextCompletionService | None = None):
        self.completion = completion if completion is not None else get_completion_service()
        super().__init__()

    @property
    def name(self) -> str:
        return "architect"

    @property
    def description(self) -> str:
        return (
            "Turns the semantic map and component research into user stories, "
            "wireframes and coding prompts"
        )

    @property
    def system_prompt(self) -> str:
        return "Analyze and respond with JSON only."

    async def synthesize(
        self,
        request_id: str,
        semantic_map: SemanticMap,
        visual_research: VisualResearch,
        payload: ResearchRequest,
        reporter: StageReporter = NULL_REPORTER,
    ) -> Report:
        self.logger.info("architect.started", request_id=request_id)

        user_context = await self.analyze_user_context(semantic_map, payload.user_intent)
        await reporter.log("info", f"Inferred application context: {user_context.context}")

        user_stories = generate_user_stories(semantic_map)
        wireframes = design_wireframes(semantic_map)
        await reporter.log(
            "info",
            f"Generated {len(user_stories)} user stories and {len(wireframes)} wireframes",
        )

        await reporter.advance(Phase.GENERATING_REPORT, 0.85)
        coding_prompts = generate_coding_prompts(
            semantic_map,
            user_stories,
            wireframes,
            visual_research.component_recommendations,
        )

        report = Report(
            id=request_id,
            repo_url=payload.repo_url,
            semantic_map=semantic_map,
            target_audience=user_context.target_audience,
            core_problem=user_context.core_problem,
            context=user_context.context,
            user_stories=user_stories,
            wireframes=wireframes,
            recommended_stack=visual_research.component_recommendations,
            coding_prompts=coding_prompts,
        )

        self.logger.info(
            "architect.completed",
            request_id=request_id,
            context=report.context,
            stories=len(user_stories),
            wireframes=len(wireframes),
        )
        return report

    async def analyze_user_context(
        self,
        semantic_map: SemanticMap,
        user_intent: str | None = None,
    ) -> ContextAnalysis:
        """Classify audience and context, falling back to heuristics."""
        if self.completion is None:
            return infer_context_from_heuristics(semantic_map)

        table_names = ", ".join(semantic_map.table_names)
        api_paths = ", ".join(r.path for r in semantic_map.api_routes or []) or "N/A"

        prompt = f"""
Analyze this backend structure and determine:
1. Who is the target audience?
2. What core problem does this application solve?
3. What type of application is this?

DATABASE TABLES: {table_names}
API ROUTES: {api_paths}
USER INTENT: {user_intent or "Not specified"}

Respond in JSON format:
{{
  "targetAudience": "Brief description of target users",
  "coreProblem": "Core problem being solved",
  "context": "internal-tool" | "b2c" | "b2b-saas" | "marketplace" | "portfolio" | "other"
}}"""

        try:
            response = await self.completion.complete(prompt, self.system_prompt)
            return parse_context_response(response)
        except (ValueError, ValidationError) as e:
            self.logger.warning("architect.context_parse_failed", error=str(e))
        except Exception as e:
            self.logger.warning("architect.context_analysis_failed", error=str(e))

        return infer_context_from_heuristics(semantic_map)
