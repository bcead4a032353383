"""Unit tests for the architect stage."""

import pytest

from researcher.agents.architect import (
    ArchitectAgent,
    design_wireframes,
    generate_story_for_table,
    generate_user_stories,
    infer_context_from_heuristics,
    parse_context_response,
)
from researcher.models.report import (
    ComponentRecommendation,
    SemanticMap,
    Table,
    VisualResearch,
)
from researcher.models.research import Phase, ResearchRequest

REPO_URL = "https://github.com/acme/shop"

PROMPT_TITLES = [
    "Project Setup & Theme Configuration",
    "Feature Implementation - Core CRUD",
    "Dashboard & Analytics",
]


@pytest.fixture
def payload() -> ResearchRequest:
    return ResearchRequest(repo_url=REPO_URL, user_intent="Sell handmade goods")


@pytest.fixture
def visual_research() -> VisualResearch:
    return VisualResearch(
        component_recommendations=[
            ComponentRecommendation(
                registry="@shadcnblocks",
                component_name="Base Components",
                install_command="npx shadcn add shadcnblocks/button shadcnblocks/card",
                rationale="Foundation",
            )
        ]
    )


class TestContextHeuristics:
    """Tests for the fallback context classifier."""

    @pytest.mark.parametrize(
        ("table", "context"),
        [
            ("Subscription", "b2b-saas"),
            ("team_members", "b2b-saas"),
            ("CartItem", "marketplace"),
            ("Employee", "internal-tool"),
            ("Recipe", "other"),
        ],
    )
    def test_classification(self, table: str, context: str):
        result = infer_context_from_heuristics(SemanticMap(tables=[Table(name=table)]))
        assert result.context == context

    def test_empty_map(self):
        result = infer_context_from_heuristics(SemanticMap())
        assert result.context == "other"
        assert result.target_audience == "General users"
        assert result.core_problem == "Accessing and managing information"


class TestParseContextResponse:
    """Tests for completion response parsing."""

    def test_fenced_json(self):
        response = '```json\n{"targetAudience": "Makers", "coreProblem": "Selling", "context": "b2c"}\n```'
        result = parse_context_response(response)

        assert result.target_audience == "Makers"
        assert result.core_problem == "Selling"
        assert result.context == "b2c"

    def test_missing_keys_take_defaults(self):
        result = parse_context_response('{"context": "portfolio"}')
        assert result.target_audience == "General users"
        assert result.core_problem == "Managing data and workflows"

    @pytest.mark.parametrize(
        "response",
        ["not json at all", '["a", "b"]', '{"context": "spaceship"}'],
    )
    def test_invalid_responses_raise(self, response: str):
        with pytest.raises(ValueError):
            parse_context_response(response)


class TestUserStories:
    """Tests for story generation."""

    def test_user_and_order_stories(self, user_order_map: SemanticMap):
        stories = generate_user_stories(user_order_map)

        assert [s.mapped_to for s in stories] == ["User", "Order"]
        assert stories[0].as_a == "registered user"
        assert stories[1].i_want_to == "view my order history"

    def test_generic_story_needs_three_fields(self):
        assert generate_story_for_table(Table(name="Tag", fields=["id", "label"])) is None

        story = generate_story_for_table(Table(name="blog_post", fields=["id", "title", "body"]))
        assert story is not None
        assert story.i_want_to == "view and manage blog post"

    def test_only_first_eight_tables(self):
        tables = [Table(name=f"User{i}") for i in range(10)]
        stories = generate_user_stories(SemanticMap(tables=tables))

        assert len(stories) == 8

    def test_stories_reference_existing_tables(self, user_order_map: SemanticMap):
        names = set(user_order_map.table_names)
        assert all(s.mapped_to in names for s in generate_user_stories(user_order_map))


class TestWireframes:
    """Tests for wireframe design."""

    def test_without_tables(self):
        wireframes = design_wireframes(SemanticMap())

        assert [w.screen_name for w in wireframes] == ["Dashboard", "Settings"]
        zones = {z.id: z for z in wireframes[0].zones}
        assert zones["main-metrics"].data_source == "metrics"
        assert zones["recent-activity"].data_source == "activity"

    def test_with_wide_first_table(self, user_order_map: SemanticMap):
        semantic_map = SemanticMap(tables=list(reversed(user_order_map.tables)))
        wireframes = design_wireframes(semantic_map)

        assert [w.screen_name for w in wireframes] == [
            "Dashboard",
            "Order List",
            "Order Detail",
            "Settings",
        ]
        detail = wireframes[2]
        assert detail.layout == "two-column"
        assert {z.id: z for z in detail.zones}["sidebar-info"].data_source == "user"

    def test_narrow_first_table_has_no_detail(self):
        semantic_map = SemanticMap(tables=[Table(name="Tag", fields=["id", "label"])])
        names = [w.screen_name for w in design_wireframes(semantic_map)]

        assert names == ["Dashboard", "Tag List", "Settings"]

    def test_dashboard_has_five_zones(self, user_order_map: SemanticMap):
        dashboard = design_wireframes(user_order_map)[0]

        assert [z.id for z in dashboard.zones] == [
            "header",
            "sidebar",
            "main-metrics",
            "main-chart",
            "recent-activity",
        ]


class TestArchitectAgent:
    """Tests for ArchitectAgent."""

    @pytest.mark.asyncio
    async def test_fallback_when_completion_fails(
        self, user_order_map, visual_research, payload, failing_completion
    ):
        agent = ArchitectAgent(completion=failing_completion)

        report = await agent.synthesize("req-1", user_order_map, visual_research, payload)

        assert report.context == "marketplace"
        assert report.target_audience == "Online shoppers"
        assert len(failing_completion.prompts) == 1

    @pytest.mark.asyncio
    async def test_uses_completion_result(
        self, user_order_map, visual_research, payload, make_completion
    ):
        completion = make_completion(
            response='{"targetAudience": "Crafters", "coreProblem": "Selling crafts", "context": "b2c"}'
        )
        agent = ArchitectAgent(completion=completion)

        report = await agent.synthesize("req-1", user_order_map, visual_research, payload)

        assert report.context == "b2c"
        assert report.target_audience == "Crafters"
        prompt = completion.prompts[0]
        assert "User, Order" in prompt
        assert "Sell handmade goods" in prompt

    @pytest.mark.asyncio
    async def test_invalid_completion_context_falls_back(
        self, user_order_map, visual_research, payload, make_completion
    ):
        agent = ArchitectAgent(completion=make_completion(response='{"context": "spaceship"}'))

        report = await agent.synthesize("req-1", user_order_map, visual_research, payload)

        assert report.context == "marketplace"

    @pytest.mark.asyncio
    async def test_report_shape(self, user_order_map, visual_research, payload, failing_completion):
        agent = ArchitectAgent(completion=failing_completion)

        report = await agent.synthesize("req-1", user_order_map, visual_research, payload)

        assert report.id == "req-1"
        assert report.repo_url == REPO_URL
        assert report.semantic_map == user_order_map
        assert report.recommended_stack == visual_research.component_recommendations
        assert [p.title for p in report.coding_prompts] == PROMPT_TITLES
        screen_names = [w.screen_name for w in report.wireframes]
        assert len(screen_names) == len(set(screen_names))

    @pytest.mark.asyncio
    async def test_empty_map_report(self, visual_research, payload, failing_completion):
        agent = ArchitectAgent(completion=failing_completion)

        report = await agent.synthesize("req-1", SemanticMap(), visual_research, payload)

        assert [w.screen_name for w in report.wireframes] == ["Dashboard", "Settings"]
        assert len(report.coding_prompts) == 3
        assert report.user_stories == []
        assert "(no tables detected)" in report.coding_prompts[0].prompt

    @pytest.mark.asyncio
    async def test_advances_to_generating_report(
        self, user_order_map, visual_research, payload, failing_completion
    ):
        calls = []

        class Reporter:
            async def advance(self, phase, progress):
                calls.append((phase, progress))

            async def progress(self, value):
                pass

            async def log(self, level, message, data=None):
                pass

        agent = ArchitectAgent(completion=failing_completion)
        await agent.synthesize(
            "req-1", user_order_map, visual_research, payload, reporter=Reporter()
        )

        assert calls == [(Phase.GENERATING_REPORT, 0.85)]

    @pytest.mark.asyncio
    async def test_prompts_embed_schema_and_registries(
        self, user_order_map, visual_research, payload, failing_completion
    ):
        agent = ArchitectAgent(completion=failing_completion)

        report = await agent.synthesize("req-1", user_order_map, visual_research, payload)
        setup, feature, dashboard = (p.prompt for p in report.coding_prompts)

        assert "- User: id, email, name" in setup
        assert "@shadcnblocks: Base Components" in setup
        assert "Relations: user" in feature
        assert "Tables: User, Order" in dashboard
        assert '"dataSource": "User"' in dashboard
