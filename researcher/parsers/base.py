"""Parser building blocks shared by the schema and route parsers.

Every parser follows the same three steps:

1. ``tokenize`` scans raw file content and yields :class:`Declaration`
   records for one declaration idiom.
2. ``emit`` turns each declaration into zero or more typed records.
3. ``parse`` chains the two.

New dialects are added by writing another parser and appending it to the
relevant registry list; extraction call sites never change.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Hashable, Iterable, Iterator, TypeVar

T = TypeVar("T")
H = TypeVar("H", bound=Hashable)

_OPENERS = {"{": "}", "(": ")", "[": "]"}
_CLOSERS = {"}", ")", "]"}
_QUOTES = {"'", '"', "`"}

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"(?m)(^|\s)//.*$")


@dataclass(frozen=True)
class Declaration:
    """A declaration located in source text."""

    kind: str
    name: str
    body: str
    start: int = 0


class DeclarationParser(ABC, Generic[T]):
    """Base class for single-idiom parsers."""

    #: Short identifier for logs, e.g. "prisma-model"
    idiom: str = ""

    def parse(self, content: str, source: str = "") -> list[T]:
        """Parse content into typed records."""
        records: list[T] = []
        for declaration in self.tokenize(content):
            records.extend(self.emit(declaration, source))
        return records

    @abstractmethod
    def tokenize(self, content: str) -> Iterator[Declaration]:
        """Yield the declarations of this idiom found in content."""

    @abstractmethod
    def emit(self, declaration: Declaration, source: str) -> Iterable[T]:
        """Turn one declaration into records."""


def strip_comments(text: str) -> str:
    """Remove ``/* */`` blocks and ``//`` comments that start a token."""
    text = _BLOCK_COMMENT.sub("", text)
    return _LINE_COMMENT.sub(r"\1", text)


def find_block_end(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at ``open_index``.

    Nested brackets and quoted strings are skipped. Returns -1 when the
    block is never closed.
    """
    stack = [_OPENERS[text[open_index]]]
    quote: str | None = None
    i = open_index + 1
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if ch != stack[-1]:
                return -1
            stack.pop()
            if not stack:
                return i
        i += 1
    return -1


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on ``separator`` only where no bracket or string is open."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch in _OPENERS:
            depth += 1
            current.append(ch)
        elif ch in _CLOSERS:
            depth -= 1
            current.append(ch)
        elif ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    if current:
        parts.append("".join(current))
    return [p for p in (part.strip() for part in parts) if p]


def unique(items: Iterable[H]) -> list[H]:
    """Drop repeats, keeping first-seen order."""
    seen: set[H] = set()
    result: list[H] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
