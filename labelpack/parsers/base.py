"""
Shared types for the markup grammars.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional


@dataclass
class SourceDocument:
    """
    A unit of markup content with a stable identity.

    ``id`` names the document (a base name or a path); ``path`` is where it
    was read from, used to resolve relative references.
    """
    id: str
    content: str
    path: Optional[Path] = None


# (referencing document id or path, referenced paths) -> resolved documents
ReferenceResolver = Callable[[str, list[str]], list[SourceDocument]]


class GrammarError(ValueError):
    """Markup that cannot be parsed, with the offending line number."""

    def __init__(self, message: str, line: Optional[int] = None, source_id: str = ""):
        self.line = line
        self.source_id = source_id
        location = ""
        if source_id:
            location = f" in {source_id}"
        if line is not None:
            location = f"{location} at line {line}"
        super().__init__(f"{message}{location}")
