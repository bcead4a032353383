"""Repository Analyst Agent.

Walks a repository's file tree, reads schema and route files, and extracts
a semantic map of the application's data tables and API routes.
"""

import re

from researcher.agents.base import NULL_REPORTER, SemanticExtractor, StageReporter
from researcher.core.exceptions import InvalidRepoUrlError
from researcher.models.report import ApiRoute, SemanticMap, Table
from researcher.models.research import Phase
from researcher.parsers.routes import dedupe_routes, extract_routes
from researcher.parsers.schema import parse_schema
from researcher.services.content_provider import (
    RepositoryContentProvider,
    get_content_provider,
)

# Directories deeper than this are not listed
MAX_TREE_DEPTH = 3

# Files beyond these caps are ignored, not queued
MAX_SCHEMA_FILES = 5
MAX_ROUTE_FILES = 10

IGNORED_DIRECTORIES = frozenset(
    {"node_modules", "bower_components", "vendor", "__pycache__", "site-packages"}
)

SCHEMA_PATTERNS = [
    re.compile(r"\.prisma$", re.IGNORECASE),
    re.compile(r"drizzle\.schema\.ts$", re.IGNORECASE),
    re.compile(r"schema\.ts$", re.IGNORECASE),
    re.compile(r"models\.ts$", re.IGNORECASE),
    re.compile(r"entities\.ts$", re.IGNORECASE),
    re.compile(r"migrations/", re.IGNORECASE),
]

API_ROUTE_PATTERNS = [
    re.compile(r"routes?/", re.IGNORECASE),
    re.compile(r"api/", re.IGNORECASE),
    re.compile(r"routers?/", re.IGNORECASE),
    re.compile(r"controllers?/", re.IGNORECASE),
    re.compile(r"handlers?/", re.IGNORECASE),
]

_GITHUB_URL = re.compile(r"(?:^|[/@.])github\.com[/:]([^/\s?#]+)/([^/\s?#]+)", re.IGNORECASE)


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """Split a GitHub URL into ``(owner, repo)``.

    Raises:
        InvalidRepoUrlError: If the URL does not point at a GitHub repository
    """
    match = _GITHUB_URL.search(repo_url or "")
    if not match:
        raise InvalidRepoUrlError(repo_url)
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise InvalidRepoUrlError(repo_url)
    return owner, repo


def is_schema_file(path: str) -> bool:
    return any(pattern.search(path) for pattern in SCHEMA_PATTERNS)


def is_route_file(path: str) -> bool:
    return any(pattern.search(path) for pattern in API_ROUTE_PATTERNS)


def _is_ignored(name: str) -> bool:
    return name.startswith(".") or name in IGNORED_DIRECTORIES


class RepoAnalystAgent(SemanticExtractor):
    """Expert in backend code analysis.

    This agent:
    1. Parses the repository URL into owner/repo
    2. Fetches the file tree (bounded depth)
    3. Reads a capped number of schema and route files
    4. Extracts tables and routes through the parser registry

    Unreadable files are skipped with a warning; the map may be partial.
    """

    def __init__(self, provider: RepositoryContentProvider | None = None):
        self.provider = provider or get_content_provider()
        super().__init__()

    @property
    def name(self) -> str:
        return "repo_analyst"

    @property
    def description(self) -> str:
        return (
            "Reads schema and route files from a repository and extracts "
            "its data tables and API routes"
        )

    async def analyze(
        self,
        request_id: str,
        repo_url: str,
        reporter: StageReporter = NULL_REPORTER,
    ) -> SemanticMap:
        owner, repo = parse_repo_url(repo_url)

        self.logger.info(
            "repo_analyst.started",
            request_id=request_id,
            owner=owner,
            repo=repo,
        )

        await reporter.log("info", f"Fetching file tree for {owner}/{repo}")
        file_tree = await self._fetch_file_tree(owner, repo, reporter=reporter)
        await reporter.log("info", f"Found {len(file_tree)} files")
        await reporter.progress(0.15)

        await reporter.advance(Phase.SCANNING_SCHEMAS, 0.2)
        schema_files = [path for path in file_tree if is_schema_file(path)]
        tables = await self._extract_tables(owner, repo, schema_files, reporter)

        route_files = [path for path in file_tree if is_route_file(path)]
        api_routes = await self._extract_routes(owner, repo, route_files, reporter)

        self.logger.info(
            "repo_analyst.completed",
            request_id=request_id,
            files=len(file_tree),
            schema_files=len(schema_files),
            route_files=len(route_files),
            tables=len(tables),
            routes=len(api_routes),
        )

        return SemanticMap(tables=tables, api_routes=api_routes or None)

    async def _fetch_file_tree(
        self,
        owner: str,
        repo: str,
        path: str = "",
        depth: int = 0,
        reporter: StageReporter = NULL_REPORTER,
    ) -> list[str]:
        """Recursively list file paths, skipping dot and dependency directories."""
        if depth > MAX_TREE_DEPTH:
            return []

        try:
            entries = await self.provider.list_directory(owner, repo, path)
        except Exception as e:
            self.logger.warning("repo_analyst.tree_fetch_failed", path=path or "/", error=str(e))
            await reporter.log("warn", f"Could not list {path or '/'}: {e}")
            return []

        files: list[str] = []
        for entry in entries:
            if _is_ignored(entry.name):
                continue
            if entry.type == "file":
                files.append(entry.path)
            elif entry.type == "dir":
                files.extend(
                    await self._fetch_file_tree(
                        owner, repo, entry.path, depth + 1, reporter=reporter
                    )
                )
        return files

    async def _read(
        self,
        owner: str,
        repo: str,
        path: str,
        reporter: StageReporter,
    ) -> str | None:
        """Read one file; failures become a warning and None."""
        try:
            return await self.provider.read_file(owner, repo, path)
        except Exception as e:
            self.logger.warning("repo_analyst.file_read_failed", path=path, error=str(e))
            await reporter.log("warn", f"Could not read {path}: {e}")
            return None

    async def _extract_tables(
        self,
        owner: str,
        repo: str,
        schema_files: list[str],
        reporter: StageReporter,
    ) -> list[Table]:
        await reporter.log("info", f"Found {len(schema_files)} schema files")

        tables: list[Table] = []
        for path in schema_files[:MAX_SCHEMA_FILES]:
            content = await self._read(owner, repo, path, reporter)
            if content is None:
                continue
            parsed = parse_schema(content, path)
            self.logger.debug("repo_analyst.schema_parsed", path=path, tables=len(parsed))
            tables.extend(parsed)
        return tables

    async def _extract_routes(
        self,
        owner: str,
        repo: str,
        route_files: list[str],
        reporter: StageReporter,
    ) -> list[ApiRoute]:
        routes: list[ApiRoute] = []
        for path in route_files[:MAX_ROUTE_FILES]:
            content = await self._read(owner, repo, path, reporter)
            if content is None:
                continue
            routes.extend(extract_routes(path, content))

        routes = dedupe_routes(routes)
        await reporter.log("info", f"Found {len(routes)} API routes")
        return routes
