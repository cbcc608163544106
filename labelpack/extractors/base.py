"""
Base classes for the extractor system.

Every extractor turns the content of one source file into a stream of
normalized tuples (LabeledExample / ScoredExample). The aggregator doesn't
care HOW a format was read, only that its output conforms to that shape.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from ..labels import LabeledExample, ScoredExample
from ..parsers.base import ReferenceResolver

Extracted = Union[LabeledExample, ScoredExample]


@dataclass
class ExtractionContext:
    """Per-file inputs an extractor may consult besides the content."""
    path: Path
    resolve: Optional[ReferenceResolver] = None

    @property
    def source_id(self) -> str:
        return str(self.path)


class Extractor(ABC):
    """
    Abstract base class for format extractors.

    To add support for a new format:
    1. Subclass Extractor
    2. Set ``extensions`` and implement extract()
    3. Optionally override detect() for content-based disambiguation
    4. Register with ExtractorRegistry

    The flow:
        path, content -> detect() -> extract() -> LabeledExample[]
    """

    # Human-readable name for this extractor
    name: str = "base"

    # Lower-case file extensions this extractor reads
    extensions: tuple[str, ...] = ()

    # Priority among extractors sharing an extension (higher = checked first)
    priority: int = 0

    # Whether a per-file hierarchical label replaces this format's labels
    honors_routing_label: bool = True

    def handles_extension(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def detect(self, path: Path, content: str) -> bool:
        """
        Determine if this extractor should read the given file.

        The default accepts any file with a matching extension; extractors
        that share an extension override this to inspect the content.
        """
        return self.handles_extension(path)

    @abstractmethod
    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        """
        Yield normalized tuples for the file content.

        Empty content yields nothing.
        """
        pass


def first_line(content: str) -> str:
    """The first line of content, without its line terminator."""
    return content.split("\n", 1)[0].rstrip("\r")
