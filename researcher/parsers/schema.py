"""Schema parsers.

Recognized idioms:

- Prisma-style block models::

    model Comment {
      id     Int      @id
      postId Int
      post   Post     @relation(fields: [postId], references: [id])
      tags   String[]
    }

- Drizzle-style table builder calls::

    export const users = pgTable("users", {
      id: serial("id").primaryKey(),
      orgId: integer("org_id").references(() => orgs.id),
    });
"""

import re
from typing import Iterable, Iterator

from researcher.models.report import Table
from researcher.parsers.base import (
    Declaration,
    DeclarationParser,
    find_block_end,
    split_top_level,
    strip_comments,
    unique,
)

_PRISMA_MODEL = re.compile(r"\bmodel\s+(\w+)\s*\{")
_PRISMA_FIELD = re.compile(r"^(\w+)\s+([\w.]+(?:\[\])?\??)")

_DRIZZLE_TABLE = re.compile(
    r"export\s+const\s+(\w+)\s*=\s*(?:pgTable|sqliteTable|mysqlTable)\s*\(\s*"
    r"(['\"`])(\w+)\2\s*,\s*\{"
)
_DRIZZLE_KEY = re.compile(r"^['\"]?(\w+)['\"]?\s*:")


class PrismaModelParser(DeclarationParser[Table]):
    """Parses ``model Name { field Type ... }`` blocks."""

    idiom = "prisma-model"

    def tokenize(self, content: str) -> Iterator[Declaration]:
        content = strip_comments(content)
        for match in _PRISMA_MODEL.finditer(content):
            open_index = match.end() - 1
            end = find_block_end(content, open_index)
            if end == -1:
                continue
            yield Declaration(
                kind=self.idiom,
                name=match.group(1),
                body=content[open_index + 1 : end],
                start=match.start(),
            )

    def emit(self, declaration: Declaration, source: str) -> Iterable[Table]:
        fields: list[str] = []
        relationships: list[str] = []

        for line in declaration.body.splitlines():
            line = line.strip()
            if not line or line.startswith("//") or line.startswith("@@"):
                continue

            field_match = _PRISMA_FIELD.match(line)
            if not field_match:
                continue

            name, field_type = field_match.group(1), field_match.group(2)
            fields.append(name)
            if field_type.rstrip("?").endswith("[]") or "@relation" in line:
                relationships.append(name)

        relationships = unique(relationships)
        yield Table(
            name=declaration.name,
            fields=unique(fields),
            relationships=relationships or None,
        )


class DrizzleTableParser(DeclarationParser[Table]):
    """Parses ``pgTable("name", { ... })`` style table builders.

    Only the top-level keys of the column object count as fields, so
    option objects passed to column builders are not mistaken for columns.
    Columns that call ``.references(`` are foreign keys.
    """

    idiom = "drizzle-table"

    def tokenize(self, content: str) -> Iterator[Declaration]:
        content = strip_comments(content)
        for match in _DRIZZLE_TABLE.finditer(content):
            open_index = match.end() - 1
            end = find_block_end(content, open_index)
            if end == -1:
                continue
            yield Declaration(
                kind=self.idiom,
                name=match.group(3),
                body=content[open_index + 1 : end],
                start=match.start(),
            )

    def emit(self, declaration: Declaration, source: str) -> Iterable[Table]:
        fields: list[str] = []
        relationships: list[str] = []

        for entry in split_top_level(declaration.body):
            key_match = _DRIZZLE_KEY.match(entry)
            if not key_match:
                continue
            name = key_match.group(1)
            fields.append(name)
            if ".references(" in entry:
                relationships.append(name)

        relationships = unique(relationships)
        yield Table(
            name=declaration.name,
            fields=unique(fields),
            relationships=relationships or None,
        )


# Order matters: results are concatenated in this order per file.
SCHEMA_PARSERS: list[DeclarationParser[Table]] = [
    PrismaModelParser(),
    DrizzleTableParser(),
]


def parse_schema(content: str, source: str = "") -> list[Table]:
    """Extract tables from one schema file using every known idiom.

    Table names are not deduplicated; the same model declared in two
    files shows up twice.
    """
    tables: list[Table] = []
    for parser in SCHEMA_PARSERS:
        tables.extend(parser.parse(content, source))
    return tables
