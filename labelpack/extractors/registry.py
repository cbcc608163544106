"""
Extractor Registry - Format dispatch for source files.

Maps a file extension (and, where several extractors share one, the file
content) to the extractor that reads it. Add new formats by registering an
extractor with the global registry.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Type, Union

from ..utils import UnsupportedFormat
from .base import Extractor

logger = logging.getLogger(__name__)

# Extensions that are recognized but deliberately not ingested
RESERVED_EXTENSIONS = {".dispatch": "dispatch files are reserved and cannot be ingested"}


class ExtractorRegistry:
    """
    Registry for format extractors.

    Handles:
    - Registration of extractor classes or instances
    - Extension lookup, case-insensitive
    - Priority-based selection when several extractors share an extension

    Usage:
        registry = ExtractorRegistry()
        registry.register(MyFormatExtractor)

        extractor = registry.select(path, content)
        for example in extractor.extract(content, ExtractionContext(path)):
            ...
    """

    def __init__(self):
        self._extractors: list[Extractor] = []

    def register(self, extractor: Union[Extractor, Type[Extractor]]) -> None:
        """
        Register an extractor.

        Args:
            extractor: An extractor instance or class
        """
        if isinstance(extractor, type):
            extractor = extractor()

        self._extractors.append(extractor)
        # Keep sorted by priority (highest first)
        self._extractors.sort(key=lambda x: x.priority, reverse=True)
        logger.debug(f"Registered extractor: {extractor.name} (priority={extractor.priority})")

    def unregister(self, name: str) -> bool:
        """
        Unregister an extractor by name.

        Returns:
            True if an extractor was removed, False otherwise
        """
        original_count = len(self._extractors)
        self._extractors = [e for e in self._extractors if e.name != name]
        return len(self._extractors) < original_count

    def get(self, name: str) -> Optional[Extractor]:
        """Get an extractor by name."""
        for extractor in self._extractors:
            if extractor.name == name:
                return extractor
        return None

    def list_extractors(self) -> list[dict]:
        """List all registered extractors with their metadata."""
        return [
            {
                "name": extractor.name,
                "extensions": list(extractor.extensions),
                "priority": extractor.priority,
                "honors_routing_label": extractor.honors_routing_label,
            }
            for extractor in self._extractors
        ]

    def supported_extensions(self) -> set[str]:
        extensions: set[str] = set()
        for extractor in self._extractors:
            extensions.update(extractor.extensions)
        return extensions

    def check_extension(self, path: Path) -> None:
        """
        Raises:
            UnsupportedFormat: If the extension is reserved or no extractor reads it
        """
        suffix = Path(path).suffix.lower()
        if suffix in RESERVED_EXTENSIONS:
            raise UnsupportedFormat(path, RESERVED_EXTENSIONS[suffix])
        if suffix not in self.supported_extensions():
            raise UnsupportedFormat(path, f"no extractor reads '{suffix or '<none>'}' files")

    def select(self, path: Path, content: str) -> Extractor:
        """
        Select the extractor for a file.

        Checks extractors in priority order and returns the first whose
        detect() accepts the file.

        Raises:
            UnsupportedFormat: If the extension is reserved or unknown
        """
        path = Path(path)
        self.check_extension(path)

        for extractor in self._extractors:
            if extractor.detect(path, content):
                logger.debug(f"Selected extractor {extractor.name} for {path.name}")
                return extractor

        raise UnsupportedFormat(path, "no registered extractor accepted the content")


# Global registry instance
_global_registry: Optional[ExtractorRegistry] = None


def get_registry() -> ExtractorRegistry:
    """Get the global extractor registry, creating it if needed."""
    global _global_registry

    if _global_registry is None:
        _global_registry = ExtractorRegistry()
        _setup_default_extractors(_global_registry)

    return _global_registry


def _setup_default_extractors(registry: ExtractorRegistry) -> None:
    """Register the built-in extractors."""
    # Import here to avoid circular imports
    from .json_variants import JsonExtractor
    from .markup import MarkupExtractor
    from .qna import QnaExtractor
    from .tabular import QnaTabularExtractor, SnapshotTabularExtractor, TabularExtractor

    registry.register(MarkupExtractor())
    registry.register(QnaExtractor())
    registry.register(JsonExtractor())
    registry.register(QnaTabularExtractor())
    registry.register(TabularExtractor())
    registry.register(SnapshotTabularExtractor())

    logger.debug(f"Registered {len(registry._extractors)} extractors")


def create_default_registry() -> ExtractorRegistry:
    """A fresh registry holding the built-in extractors."""
    registry = ExtractorRegistry()
    _setup_default_extractors(registry)
    return registry
