"""Structured report documents, independent of the output format."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Union


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class Link:
    label: str
    url: str


@dataclass(frozen=True)
class Table:
    headers: Sequence[str]
    rows: Sequence[Sequence[str]]


@dataclass(frozen=True)
class BulletList:
    items: Sequence[str]


@dataclass(frozen=True)
class Rule:
    pass


@dataclass(frozen=True)
class Details:
    """Collapsible section."""

    summary: str
    blocks: Sequence["Block"] = ()
    open: bool = False


Block = Union[Heading, Paragraph, Link, Table, BulletList, Rule, Details]


@dataclass
class Document:
    """Ordered list of top-level blocks; builders append, renderers read them in order."""

    blocks: List[Block] = field(default_factory=list)

    def add(self, *blocks: Block) -> "Document":
        self.blocks.extend(blocks)
        return self
