"""Report documents and their renderers."""

from .base import BaseFormatter
from .document import (
    BulletList,
    Details,
    Document,
    Heading,
    Link,
    Paragraph,
    Rule,
    Table,
)
from .markdown_formatter import MarkdownRenderer
from .reports import (
    build_issue_document,
    build_summary_document,
    fmt,
    fmt_metric_value,
)


def get_formatter(name: str) -> BaseFormatter:
    """Get a formatter instance by name.

    Args:
        name: Currently only "markdown"

    Raises:
        ValueError: If name is not recognized
    """
    formatters = {
        "markdown": MarkdownRenderer,
    }
    cls = formatters.get(name)
    if cls is None:
        raise ValueError(f"Unknown formatter: {name!r}. Choose from: {', '.join(sorted(formatters))}")
    return cls()


__all__ = [
    "BaseFormatter",
    "MarkdownRenderer",
    "Document",
    "Heading",
    "Paragraph",
    "Link",
    "Table",
    "BulletList",
    "Rule",
    "Details",
    "build_issue_document",
    "build_summary_document",
    "fmt",
    "fmt_metric_value",
    "get_formatter",
]
