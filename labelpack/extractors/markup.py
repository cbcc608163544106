"""Extractor for `.lu` utterance markup."""
from __future__ import annotations

import logging
from typing import Iterator, Optional

from ..parsers.base import ReferenceResolver
from ..parsers.lu import LuParser
from .base import ExtractionContext, Extracted, Extractor
from .json_variants import LuisApplication, iter_luis_application

logger = logging.getLogger(__name__)


class MarkupExtractor(Extractor):
    """
    Runs the markup grammar and reads the resulting LUIS application.

    Cross-file references in the markup are resolved through the context's
    resolver, so each referenced file is read at most once per session.
    """

    name = "markup"
    extensions = (".lu",)

    def __init__(self, parser: Optional[LuParser] = None):
        self.parser = parser or LuParser()

    def parse_application(
        self,
        content: str,
        source_id: str = "",
        resolve: Optional[ReferenceResolver] = None,
    ) -> LuisApplication:
        parsed = self.parser.parse(content, source_id, resolve)
        return LuisApplication.model_validate(parsed)

    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        if not content.strip():
            return
        app = self.parse_application(content, context.source_id, context.resolve)
        logger.debug(f"  {context.path.name}: {len(app.utterances)} utterances")
        yield from iter_luis_application(app)

    def prebuilt_entities(
        self,
        content: str,
        source_id: str = "",
        resolve: Optional[ReferenceResolver] = None,
    ) -> list[str]:
        """Names of the prebuilt entities the markup declares."""
        app = self.parse_application(content, source_id, resolve)
        return [entry["name"] for entry in app.prebuilt_entities if entry.get("name")]
