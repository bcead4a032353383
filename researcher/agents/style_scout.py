"""Style Scout Agent.

Infers what kind of product a repository backs, picks matching component
registries, recommends components, and optionally screenshots the picked
registries for a mood board.
"""

import re
from dataclasses import dataclass, field
from typing import Literal

from researcher.agents.base import NULL_REPORTER, StageReporter, VisualResearcher
from researcher.agents.catalog import COMPONENT_REGISTRIES, RegistryInfo, find_registry
from researcher.models.report import ComponentRecommendation, SemanticMap, VisualResearch
from researcher.models.research import Phase
from researcher.services.screenshots import ScreenshotService, get_screenshot_service

MAX_RECOMMENDATIONS = 6
MAX_GENERAL_REGISTRIES = 2
MAX_CONTEXT_REGISTRIES = 3
MAX_SCREENSHOTS = 3

Archetype = Literal["saas", "ecommerce", "dashboard", "social", "general"]

_SAAS_TABLES = re.compile(r"subscription|billing|plan|organization|team|tenant", re.IGNORECASE)
_SAAS_FIELDS = re.compile(r"stripe|plan_id|subscription", re.IGNORECASE)
_ECOMMERCE_TABLES = re.compile(r"product|order|cart|payment|inventory", re.IGNORECASE)
_DASHBOARD_TABLES = re.compile(r"metric|analytics|report|log|event", re.IGNORECASE)
_SOCIAL_TABLES = re.compile(r"post|comment|follow|like|friend|message", re.IGNORECASE)
_AUTH_TABLES = re.compile(r"user|account|session", re.IGNORECASE)
_USER_TABLES = re.compile(r"user|account", re.IGNORECASE)
_CHAT_TABLES = re.compile(r"message|chat|conversation", re.IGNORECASE)


@dataclass
class ProjectContext:
    """Coarse project classification used to steer recommendations."""

    type: Archetype
    features: list[str] = field(default_factory=list)


def infer_project_context(semantic_map: SemanticMap) -> ProjectContext:
    """Classify the project. First match wins, in priority order:
    saas, ecommerce, dashboard, social, general.
    """
    table_names = [t.name for t in semantic_map.tables]
    all_fields = [f for t in semantic_map.tables for f in t.fields]

    if any(_SAAS_TABLES.search(t) for t in table_names) or any(
        _SAAS_FIELDS.search(f) for f in all_fields
    ):
        return ProjectContext("saas", ["billing", "multi-tenant"])

    if any(_ECOMMERCE_TABLES.search(t) for t in table_names):
        return ProjectContext("ecommerce", ["products", "checkout"])

    if any(_DASHBOARD_TABLES.search(t) for t in table_names):
        return ProjectContext("dashboard", ["charts", "metrics"])

    if any(_SOCIAL_TABLES.search(t) for t in table_names):
        return ProjectContext("social", ["feed", "profiles"])

    features = ["auth"] if any(_AUTH_TABLES.search(t) for t in table_names) else []
    return ProjectContext("general", features)


def select_registries(
    context: ProjectContext,
    target_registries: list[str] | None = None,
    catalog: tuple[RegistryInfo, ...] = COMPONENT_REGISTRIES,
) -> list[RegistryInfo]:
    """Pick registries for the project.

    Requested targets are matched as substrings of a registry's name or
    URL, so a short target such as "ui" can match many entries.
    """
    if target_registries:
        return [
            r
            for r in catalog
            if any(t in r.name or t in r.url for t in target_registries)
        ]

    selected = [r for r in catalog if r.category == "general"][:MAX_GENERAL_REGISTRIES]

    if context.type == "saas":
        specific = [
            r
            for r in catalog
            if "billing" in r.name or "clerk" in r.name or r.category == "functional"
        ]
    elif context.type == "dashboard":
        specific = [
            r
            for r in catalog
            if "tremor" in r.name or "dashboard" in r.description or "chart" in r.description
        ]
    elif context.type == "ecommerce":
        specific = [
            r for r in catalog if "ecommerce" in r.description or r.category == "functional"
        ]
    else:
        specific = [r for r in catalog if r.category == "creative"][:2]
    selected.extend(specific[:MAX_CONTEXT_REGISTRIES])

    deduped: dict[str, RegistryInfo] = {}
    for registry in selected:
        deduped.setdefault(registry.name, registry)
    return list(deduped.values())


def generate_recommendations(
    semantic_map: SemanticMap,
    registries: list[RegistryInfo],
    context: ProjectContext,
) -> list[ComponentRecommendation]:
    """Apply the recommendation rules in order, capped at six.

    A rule without a matching registry or condition emits nothing.
    """
    recommendations: list[ComponentRecommendation] = []
    tables = semantic_map.tables

    # Core UI registry
    core = next((r for r in registries if r.category == "general"), None)
    if core is None and registries:
        core = registries[0]
    if core:
        recommendations.append(
            ComponentRecommendation(
                registry=core.name,
                component_name="Base Components",
                install_command=f"npx shadcn add {core.slug}/button {core.slug}/card",
                rationale=f"{core.description} - Perfect foundation for your {context.type} project.",
            )
        )

    # Data grid for wide tables
    if any(len(t.fields) > 5 for t in tables):
        grid = next(
            (r for r in registries if "grid" in r.description or "table" in r.description),
            None,
        )
        if grid:
            recommendations.append(
                ComponentRecommendation(
                    registry=grid.name,
                    component_name="Data Grid",
                    install_command=f"npx shadcn add {grid.slug}/data-table",
                    rationale=(
                        "Your schema has tables with many fields. A powerful data grid "
                        "will help users manage complex data."
                    ),
                )
            )

    # Charts for analytics
    if context.type == "dashboard" or "metrics" in context.features:
        charts = next(
            (r for r in registries if "tremor" in r.name or "dashboard" in r.description),
            None,
        )
        if charts:
            recommendations.append(
                ComponentRecommendation(
                    registry=charts.name,
                    component_name="Charts & Metrics",
                    install_command=f"npx shadcn add {charts.slug}/area-chart {charts.slug}/bar-chart",
                    rationale=(
                        f"Analytics and metric tables detected. {charts.name} provides "
                        "charting components for them."
                    ),
                )
            )

    # Authentication
    if "auth" in context.features or any(_USER_TABLES.search(t.name) for t in tables):
        auth = next(
            (r for r in registries if "authentication" in r.description.lower()),
            None,
        ) or find_registry("@clerk")
        if auth:
            recommendations.append(
                ComponentRecommendation(
                    registry=auth.name,
                    component_name="Authentication",
                    install_command=(
                        "npm install @clerk/nextjs"
                        if auth.name == "@clerk"
                        else f"npx shadcn add {auth.slug}/sign-in"
                    ),
                    rationale=(
                        f"User/Account tables detected. {auth.name} provides drop-in "
                        "authentication UI."
                    ),
                )
            )

    # Chat interface
    if any(_CHAT_TABLES.search(t.name) for t in tables):
        ai = next((r for r in registries if r.category == "ai"), None)
        if ai:
            recommendations.append(
                ComponentRecommendation(
                    registry=ai.name,
                    component_name="Chat Interface",
                    install_command=f"npx shadcn add {ai.slug}/chat",
                    rationale=(
                        "Message/Chat tables detected. This registry provides AI-ready "
                        "chat components."
                    ),
                )
            )

    # Landing page flair
    creative = next((r for r in registries if r.category == "creative"), None)
    if creative:
        recommendations.append(
            ComponentRecommendation(
                registry=creative.name,
                component_name="Hero & Effects",
                install_command=f"npx shadcn add {creative.slug}/hero {creative.slug}/sparkles",
                rationale=f"{creative.description} - Great for making your landing page stand out.",
            )
        )

    return recommendations[:MAX_RECOMMENDATIONS]


class StyleScoutAgent(VisualResearcher):
    """Expert in visual component research.

    Screenshot capture only happens when a screenshot service is available
    and the caller asked for it; otherwise the mood board stays empty.
    """

    def __init__(self, screenshots: ScreenshotService | None = None):
        self.screenshots = screenshots if screenshots is not None else get_screenshot_service()
        super().__init__()

    @property
    def name(self) -> str:
        return "style_scout"

    @property
    def description(self) -> str:
        return (
            "Infers the project archetype and recommends components from "
            "shadcn-compatible registries"
        )

    async def scout(
        self,
        request_id: str,
        semantic_map: SemanticMap,
        target_registries: list[str] | None = None,
        include_screenshots: bool = True,
        reporter: StageReporter = NULL_REPORTER,
    ) -> VisualResearch:
        context = infer_project_context(semantic_map)
        await reporter.log(
            "info",
            f"Inferred project archetype: {context.type}",
            {"features": context.features},
        )

        registries = select_registries(context, target_registries)
        await reporter.log(
            "info",
            f"Selected {len(registries)} registries",
            {"registries": [r.name for r in registries]},
        )

        recommendations = generate_recommendations(semantic_map, registries, context)

        await reporter.advance(Phase.CAPTURING_SCREENSHOTS, 0.5)
        captured: dict[str, str] = {}
        if include_screenshots:
            captured = await self._capture_screenshots(registries, reporter)

        if captured:
            recommendations = [
                rec.model_copy(update={"screenshot_url": captured[rec.registry]})
                if rec.registry in captured
                else rec
                for rec in recommendations
            ]

        self.logger.info(
            "style_scout.completed",
            request_id=request_id,
            archetype=context.type,
            registries=len(registries),
            recommendations=len(recommendations),
            screenshots=len(captured),
        )

        return VisualResearch(
            mood_board=list(captured.values()),
            component_recommendations=recommendations,
        )

    async def _capture_screenshots(
        self,
        registries: list[RegistryInfo],
        reporter: StageReporter,
    ) -> dict[str, str]:
        """Screenshot up to three registries, keyed by registry name."""
        if self.screenshots is None:
            self.logger.info("style_scout.screenshots_skipped", reason="no screenshot service")
            return {}

        captured: dict[str, str] = {}
        for registry in registries[:MAX_SCREENSHOTS]:
            try:
                screenshot_url = await self.screenshots.capture(registry.url)
            except Exception as e:
                self.logger.warning(
                    "style_scout.screenshot_failed",
                    url=registry.url,
                    error=str(e),
                )
                await reporter.log("warn", f"Failed to capture {registry.url}: {e}")
                continue
            if screenshot_url:
                captured[registry.name] = screenshot_url
        return captured
