"""Schema and route parsers."""

from researcher.parsers.base import Declaration, DeclarationParser
from researcher.parsers.routes import (
    ROUTE_PARSERS,
    ExportedHandlerRouteParser,
    RpcProcedureRouteParser,
    VerbCallRouteParser,
    dedupe_routes,
    extract_routes,
)
from researcher.parsers.schema import (
    SCHEMA_PARSERS,
    DrizzleTableParser,
    PrismaModelParser,
    parse_schema,
)

__all__ = [
    "Declaration",
    "DeclarationParser",
    "ROUTE_PARSERS",
    "ExportedHandlerRouteParser",
    "RpcProcedureRouteParser",
    "VerbCallRouteParser",
    "dedupe_routes",
    "extract_routes",
    "SCHEMA_PARSERS",
    "DrizzleTableParser",
    "PrismaModelParser",
    "parse_schema",
]
