"""API route parsers.

Recognized idioms:

- HTTP-verb method calls with a literal path: ``app.get("/users", ...)``
- RPC procedures: ``list: publicProcedure.input(...).query(...)``; queries
  map to GET and mutations to POST under ``/<file path>/<procedure>``
- Exported verb handlers (file-based routing):
  ``export async function POST(req)`` in ``app/api/users/route.ts``
"""

import re
from typing import Iterable, Iterator

from researcher.models.report import ApiRoute
from researcher.parsers.base import Declaration, DeclarationParser

_VERB_CALL = re.compile(
    r"\.(get|post|put|patch|delete)\s*\(\s*(['\"`])(/[^'\"`]*)\2",
    re.IGNORECASE,
)
_PROCEDURE = re.compile(r"(\w+)\s*:\s*(publicProcedure|protectedProcedure|procedure)\b")
_PROCEDURE_KIND = re.compile(r"\.\s*(query|mutation)\s*\(")
_EXPORTED_HANDLER = re.compile(
    r"export\s+(?:(?:async\s+)?function\s+|const\s+)(GET|POST|PUT|PATCH|DELETE)\b"
)

_SCRIPT_EXTENSION = re.compile(r"\.[jt]sx?$")
_ROUTING_ROOTS = ("src/", "app/", "pages/")
_ROUTE_FILE_SUFFIXES = ("/route", "/index")


def strip_script_extension(file_path: str) -> str:
    return _SCRIPT_EXTENSION.sub("", file_path)


def path_from_file(file_path: str) -> str:
    """Derive a URL path from a file-routed handler location.

    ``src/app/api/users/[id]/route.ts`` becomes ``/api/users/[id]``.
    """
    path = strip_script_extension(file_path.strip("/"))
    for root in _ROUTING_ROOTS:
        if path.startswith(root):
            path = path[len(root) :]
    for suffix in _ROUTE_FILE_SUFFIXES:
        if path.endswith(suffix):
            path = path[: -len(suffix)]
        elif path == suffix.lstrip("/"):
            path = ""
    return "/" + path.strip("/")


class VerbCallRouteParser(DeclarationParser[ApiRoute]):
    """Parses ``.get('/path', ...)`` style registrations."""

    idiom = "verb-call"

    def tokenize(self, content: str) -> Iterator[Declaration]:
        for match in _VERB_CALL.finditer(content):
            yield Declaration(
                kind=self.idiom,
                name=match.group(1).upper(),
                body=match.group(3),
                start=match.start(),
            )

    def emit(self, declaration: Declaration, source: str) -> Iterable[ApiRoute]:
        yield ApiRoute(path=declaration.body, method=declaration.name)


class RpcProcedureRouteParser(DeclarationParser[ApiRoute]):
    """Parses tRPC-style procedure declarations.

    The procedure kind is the first ``.query(`` or ``.mutation(`` between a
    declaration and the next one, so builder chains such as
    ``.input(schema)`` in between are allowed.
    """

    idiom = "rpc-procedure"

    def tokenize(self, content: str) -> Iterator[Declaration]:
        matches = list(_PROCEDURE.finditer(content))
        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
            kind_match = _PROCEDURE_KIND.search(content, match.end(), end)
            if not kind_match:
                continue
            yield Declaration(
                kind=kind_match.group(1),
                name=match.group(1),
                body=content[match.start() : end],
                start=match.start(),
            )

    def emit(self, declaration: Declaration, source: str) -> Iterable[ApiRoute]:
        method = "GET" if declaration.kind == "query" else "POST"
        base = strip_script_extension(source.strip("/"))
        yield ApiRoute(path=f"/{base}/{declaration.name}", method=method)


class ExportedHandlerRouteParser(DeclarationParser[ApiRoute]):
    """Parses exported ``GET``/``POST``/... handlers in file-routed apps."""

    idiom = "exported-handler"

    def tokenize(self, content: str) -> Iterator[Declaration]:
        for match in _EXPORTED_HANDLER.finditer(content):
            yield Declaration(
                kind=self.idiom,
                name=match.group(1),
                body="",
                start=match.start(),
            )

    def emit(self, declaration: Declaration, source: str) -> Iterable[ApiRoute]:
        yield ApiRoute(path=path_from_file(source), method=declaration.name)


ROUTE_PARSERS: list[DeclarationParser[ApiRoute]] = [
    VerbCallRouteParser(),
    RpcProcedureRouteParser(),
    ExportedHandlerRouteParser(),
]


def dedupe_routes(routes: Iterable[ApiRoute]) -> list[ApiRoute]:
    """Keep the first route for each (path, method) pair."""
    seen: set[tuple[str, str]] = set()
    result: list[ApiRoute] = []
    for route in routes:
        if route.key in seen:
            continue
        seen.add(route.key)
        result.append(route)
    return result


def extract_routes(file_path: str, content: str) -> list[ApiRoute]:
    """Extract the deduplicated routes declared in one file."""
    routes: list[ApiRoute] = []
    for parser in ROUTE_PARSERS:
        routes.extend(parser.parse(content, file_path))
    return dedupe_routes(routes)
