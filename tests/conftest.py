"""Pytest configuration and fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from researcher.agents.architect import ArchitectAgent
from researcher.agents.repo_analyst import RepoAnalystAgent
from researcher.agents.style_scout import StyleScoutAgent
from researcher.api.deps import get_pipeline
from researcher.core.events import EventBroadcaster
from researcher.core.exceptions import CompletionError, ContentFetchError, ScreenshotError
from researcher.core.orchestrator import PipelineOrchestrator
from researcher.core.session import SessionStore
from researcher.main import app
from researcher.models.report import SemanticMap, Table
from researcher.services.completion import TextCompletionService
from researcher.services.content_provider import RepoEntry, RepositoryContentProvider
from researcher.services.screenshots import ScreenshotService

BLOG_PRISMA = """// Blog schema
datasource db {
  provider = "postgresql"
  url      = env("DATABASE_URL")
}

model Post {
  id        Int       @id @default(autoincrement())
  title     String
  content   String?
  comments  Comment[]
  createdAt DateTime  @default(now())
}

model Comment {
  id     Int      @id
  postId Int
  post   Post     @relation(fields: [postId], references: [id])
  tags   String[]

  @@index([postId])
}
"""

POST_ROUTER = """import { z } from "zod";

export const postRouter = createTRPCRouter({
  list: publicProcedure.query(({ ctx }) => ctx.db.post.findMany()),
  create: protectedProcedure
    .input(z.object({ title: z.string() }))
    .mutation(async ({ ctx, input }) => ctx.db.post.create({ data: input })),
});
"""

USERS_ROUTE = """export async function GET(request: Request) {
  return Response.json([]);
}

export async function POST(request: Request) {
  return Response.json({ ok: true });
}
"""

BLOG_REPO = {
    "README.md": "# Blog",
    "package.json": "{}",
    "prisma/schema.prisma": BLOG_PRISMA,
    "src/server/routers/post.ts": POST_ROUTER,
    "app/api/users/route.ts": USERS_ROUTE,
    "node_modules/some-lib/schema.prisma": "model Hidden {\n  id Int\n}\n",
    ".github/workflows/ci.yml": "on: push",
}

REPO_URL = "https://github.com/acme/blog"


class FakeContentProvider(RepositoryContentProvider):
    """Serves a repository from an in-memory ``{path: content}`` map."""

    def __init__(
        self,
        files: dict[str, str],
        unreadable: set[str] | None = None,
        unlistable: set[str] | None = None,
    ):
        self.files = files
        self.unreadable = unreadable or set()
        self.unlistable = unlistable or set()
        self.listed: list[str] = []
        self.reads: list[str] = []

    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[RepoEntry]:
        self.listed.append(path)
        if path in self.unlistable:
            raise ContentFetchError(path or "/", "listing failed", status=500)

        prefix = f"{path}/" if path else ""
        entries: dict[str, RepoEntry] = {}
        for file_path in self.files:
            if not file_path.startswith(prefix):
                continue
            name, sep, _ = file_path[len(prefix) :].partition("/")
            entries.setdefault(
                name,
                RepoEntry(name=name, path=prefix + name, type="dir" if sep else "file"),
            )
        return list(entries.values())

    async def read_file(self, owner: str, repo: str, path: str) -> str:
        self.reads.append(path)
        if path in self.unreadable or path not in self.files:
            raise ContentFetchError(path, "not found", status=404)
        return self.files[path]


class FakeCompletionService(TextCompletionService):
    """Returns a canned response, or raises when given an error."""

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str, system_instruction: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeScreenshotService(ScreenshotService):
    """Returns a predictable image URL per page; listed pages fail."""

    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()
        self.captured: list[str] = []

    async def capture(self, url: str) -> str | None:
        self.captured.append(url)
        if url in self.failing:
            raise ScreenshotError(url, "render timed out")
        return f"https://screenshots.test/{url.split('//', 1)[-1]}.png"


@pytest.fixture
def provider() -> FakeContentProvider:
    """Content provider serving the blog repository."""
    return FakeContentProvider(dict(BLOG_REPO))


@pytest.fixture
def failing_completion() -> FakeCompletionService:
    """Completion service that always raises."""
    return FakeCompletionService(error=CompletionError("service unavailable"))


@pytest.fixture
def screenshots() -> FakeScreenshotService:
    return FakeScreenshotService()


@pytest.fixture
def store() -> SessionStore:
    """Create a fresh session store for tests."""
    return SessionStore()


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    """Create a fresh event broadcaster for tests."""
    return EventBroadcaster(queue_size=100)


@pytest.fixture
def orchestrator(
    provider: FakeContentProvider,
    failing_completion: FakeCompletionService,
    screenshots: FakeScreenshotService,
    store: SessionStore,
    broadcaster: EventBroadcaster,
) -> PipelineOrchestrator:
    """Orchestrator wired to in-memory collaborators."""
    return PipelineOrchestrator(
        extractor=RepoAnalystAgent(provider=provider),
        researcher=StyleScoutAgent(screenshots=screenshots),
        synthesizer=ArchitectAgent(completion=failing_completion),
        store=store,
        events=broadcaster,
    )


@pytest.fixture
def user_order_map() -> SemanticMap:
    """Semantic map of a small shop."""
    return SemanticMap(
        tables=[
            Table(name="User", fields=["id", "email", "name"]),
            Table(
                name="Order",
                fields=["id", "userId", "total", "status", "user"],
                relationships=["user"],
            ),
        ]
    )


@pytest.fixture
def override_pipeline(orchestrator: PipelineOrchestrator):
    """Route API requests to the test orchestrator."""
    app.dependency_overrides[get_pipeline] = lambda: orchestrator
    yield orchestrator
    app.dependency_overrides.pop(get_pipeline, None)


@pytest.fixture
async def client(override_pipeline: PipelineOrchestrator) -> AsyncClient:
    """Create an async test client backed by the test orchestrator."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def blog_prisma() -> str:
    return BLOG_PRISMA


@pytest.fixture
def post_router() -> str:
    return POST_ROUTER


@pytest.fixture
def users_route() -> str:
    return USERS_ROUTE


@pytest.fixture
def make_provider():
    """Factory for content providers over arbitrary file maps."""
    return FakeContentProvider


@pytest.fixture
def make_completion():
    """Factory for canned completion services."""
    return FakeCompletionService


@pytest.fixture
def make_screenshots():
    """Factory for screenshot services with failing pages."""
    return FakeScreenshotService
