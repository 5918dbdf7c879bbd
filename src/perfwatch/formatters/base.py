"""Base formatter interface for perfwatch output rendering."""

from abc import ABC, abstractmethod

from .document import Document


class BaseFormatter(ABC):
    """Abstract base class for document formatters."""

    @abstractmethod
    def render(self, document: Document) -> None:
        """Render a document to stdout."""

    @abstractmethod
    def format(self, document: Document) -> str:
        """Return formatted string representation of a document."""
