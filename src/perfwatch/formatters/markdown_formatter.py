"""GitHub-flavored markdown rendering of report documents."""

from typing import List

from .base import BaseFormatter
from .document import (
    Block,
    BulletList,
    Details,
    Document,
    Heading,
    Link,
    Paragraph,
    Rule,
    Table,
)


def _cell(text: str) -> str:
    return str(text).replace("|", "\\|").replace("\n", " ")


class MarkdownRenderer(BaseFormatter):
    """Serialize a Document to markdown for step summaries and issue bodies."""

    def render(self, document: Document) -> None:
        print(self.format(document))

    def format(self, document: Document) -> str:
        return "".join(self._block(b) for b in document.blocks).rstrip("\n") + "\n"

    def _block(self, block: Block) -> str:
        if isinstance(block, Heading):
            return f"{'#' * block.level} {block.text}\n\n"
        if isinstance(block, Paragraph):
            return f"{block.text}\n\n"
        if isinstance(block, Link):
            return f"[{block.label}]({block.url})\n\n"
        if isinstance(block, Table):
            return self._table(block)
        if isinstance(block, BulletList):
            if not block.items:
                return ""
            return "".join(f"- {item}\n" for item in block.items) + "\n"
        if isinstance(block, Rule):
            return "---\n\n"
        if isinstance(block, Details):
            opening = "<details open>" if block.open else "<details>"
            inner = "".join(self._block(b) for b in block.blocks)
            return f"{opening}\n<summary>{block.summary}</summary>\n\n{inner}</details>\n\n"
        raise TypeError(f"Unknown block type: {type(block).__name__}")

    def _table(self, table: Table) -> str:
        if not table.rows:
            return ""
        lines: List[str] = [
            "| " + " | ".join(_cell(h) for h in table.headers) + " |",
            "|" + "|".join("---" for _ in table.headers) + "|",
        ]
        for row in table.rows:
            lines.append("| " + " | ".join(_cell(c) for c in row) + " |")
        return "\n".join(lines) + "\n\n"
