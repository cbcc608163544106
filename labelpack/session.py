"""
Ingestion session - folder traversal, cross references and aggregation.

A session walks its input roots depth-first, reads each supported file
exactly once, hands it to the extractor the registry selects and folds the
output into one session-scoped IngestionResult. Files are processed one at a
time; any failure aborts the whole session.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from .aggregator import LabelAggregator
from .extractors.base import ExtractionContext
from .extractors.registry import ExtractorRegistry, create_default_registry
from .labels import IngestionResult
from .parsers.base import SourceDocument
from .utils import (
    MalformedRecord,
    ParseFailure,
    PathLike,
    UnsupportedFormat,
    read_text,
    split_input_paths,
)

logger = logging.getLogger(__name__)

# Written by the build step, never ingested
SETTINGS_FILE_NAME = "labelpack.settings.json"

# Extensions picked up while walking a folder
FOLDER_EXTENSIONS = (".lu", ".json", ".qna", ".tsv", ".txt")


def routing_name_for(path: Path, hierarchical: bool, routing_name: str = "") -> str:
    """The per-file bucket label, empty when hierarchical mode is off."""
    if not hierarchical:
        return ""
    return routing_name or Path(path).stem


def is_settings_file(path: Path) -> bool:
    return Path(path).name.lower().endswith(SETTINGS_FILE_NAME)


@dataclass
class IngestionContext:
    """
    Session-scoped state passed to traversal and reference resolution.

    ``processed`` holds resolved absolute paths of every file already
    consumed, whether named directly or pulled in by a cross reference.
    ``documents`` keeps what was read for those paths, so a file referenced
    again (say with another intent fragment) is served without a second read.
    """
    hierarchical: bool = False
    routing_name: str = ""
    processed: set[Path] = field(default_factory=set)
    documents: dict[Path, SourceDocument] = field(default_factory=dict)

    @staticmethod
    def key(path: PathLike) -> Path:
        return Path(path).resolve()

    def is_processed(self, path: PathLike) -> bool:
        return self.key(path) in self.processed

    def remember(self, path: PathLike, content: str) -> SourceDocument:
        """Mark ``path`` processed and keep its content for later references."""
        key = self.key(path)
        self.processed.add(key)
        document = SourceDocument(id=str(key), content=content, path=key)
        self.documents[key] = document
        return document

    def resolve_references(self, source_id: str, references: list[str]) -> list[SourceDocument]:
        """
        Read referenced files relative to the referencing document.

        Each file is read once per session; later references get the
        document read the first time.

        Raises:
            ParseFailure: If a referenced file is missing or empty
        """
        base_dir = Path(source_id).parent if source_id else Path.cwd()
        documents: list[SourceDocument] = []

        for reference in references:
            target = Path(reference)
            if not target.is_absolute():
                target = base_dir / target

            cached = self.documents.get(self.key(target))
            if cached is not None:
                logger.debug(f"Reusing already read reference {target}")
                documents.append(cached)
                continue

            try:
                content = read_text(target)
            except OSError as e:
                raise ParseFailure(f"Content not found for {target}: {e}", target) from e
            if not content:
                raise ParseFailure(f"Content not found for {target}", target)

            documents.append(self.remember(target, content))

        return documents


class IngestionSession:
    """
    Reads input roots into one IngestionResult.

    Usage:
        session = IngestionSession(hierarchical=True)
        result = session.ingest("corpus/travel,corpus/faq.qna")
        print(result.summary())
    """

    def __init__(
        self,
        hierarchical: bool = False,
        routing_name: str = "",
        registry: Optional[ExtractorRegistry] = None,
        aggregator: Optional[LabelAggregator] = None,
    ):
        self.registry = registry or create_default_registry()
        self.aggregator = aggregator or LabelAggregator()
        self.context = IngestionContext(hierarchical=hierarchical, routing_name=routing_name)

    @property
    def result(self) -> IngestionResult:
        return self.aggregator.result

    def ingest(self, inputs: Union[str, PathLike, Iterable[PathLike]]) -> IngestionResult:
        """Synchronous wrapper around ingest_async()."""
        return asyncio.run(self.ingest_async(inputs))

    async def ingest_async(self, inputs: Union[str, PathLike, Iterable[PathLike]]) -> IngestionResult:
        """
        Ingest every root in order.

        Raises:
            UnsupportedFormat, MalformedRecord, ParseFailure: On the first
                failure anywhere; nothing is skipped
        """
        for root in split_input_paths(inputs):
            if root.is_dir():
                await self._ingest_folder(root)
            else:
                routing_name = routing_name_for(root, self.context.hierarchical, self.context.routing_name)
                await self.ingest_file(root, routing_name)

        summary = self.result.summary()
        logger.info(
            f"Ingested {summary['utterances']} utterances "
            f"({summary['label_duplicates']} with multiple labels)"
        )
        return self.result

    async def _ingest_folder(self, folder: Path) -> None:
        for entry in sorted(folder.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                await self._ingest_folder(entry)
                continue
            if entry.suffix.lower() not in FOLDER_EXTENSIONS:
                logger.debug(f"Skipping {entry}, not an ingestible extension")
                continue
            if self.context.is_processed(entry):
                continue
            await self.ingest_file(entry, routing_name_for(entry, self.context.hierarchical))

    async def ingest_file(self, path: PathLike, routing_name: str = "") -> None:
        """
        Ingest one file, unless it was already consumed in this session.

        Raises:
            UnsupportedFormat: If the extension is unsupported or reserved
            ParseFailure: If reading or parsing fails
            MalformedRecord: If a record is structurally invalid
        """
        path = Path(path)
        if is_settings_file(path):
            logger.debug(f"Skipping settings file {path}")
            return
        if self.context.is_processed(path):
            logger.debug(f"Skipping already processed file {path}")
            return

        self.registry.check_extension(path)
        logger.info(f"Processing {path}...")

        try:
            content = await asyncio.to_thread(read_text, path)
        except OSError as e:
            raise ParseFailure(f"Failed to read {path}: {e}", path) from e

        self.context.remember(path, content)
        self._fold_content(path, content, routing_name)

    def ingest_document(self, document: SourceDocument, routing_name: str = "") -> IngestionResult:
        """Ingest in-memory content as if it were read from ``document.path``."""
        path = document.path or Path(document.id)
        if not path.suffix:
            path = path.with_suffix(".lu")
        self.registry.check_extension(path)
        if document.path is not None:
            self.context.remember(document.path, document.content)
        self._fold_content(path, document.content, routing_name)
        return self.result

    def _fold_content(self, path: Path, content: str, routing_name: str) -> None:
        try:
            extractor = self.registry.select(path, content)
            context = ExtractionContext(path=self.context.key(path), resolve=self.context.resolve_references)
            label = routing_name if extractor.honors_routing_label else ""
            for example in extractor.extract(content, context):
                self.aggregator.fold(example, label)
        except (UnsupportedFormat, ParseFailure):
            raise
        except MalformedRecord as e:
            if e.path is None:
                e.path = path
            raise
        except Exception as e:
            raise ParseFailure(f"Failed to parse {path}: {e}", path) from e


def ingest(
    inputs: Union[str, PathLike, Iterable[PathLike]],
    hierarchical: bool = False,
    routing_name: str = "",
) -> IngestionResult:
    """
    Convenience function to ingest inputs in a fresh session.

    Args:
        inputs: Comma-separated roots, a path, or an iterable of paths
        hierarchical: Label every utterance with its source file's name
        routing_name: Bucket label for directly named files in hierarchical mode

    Returns:
        The session's IngestionResult
    """
    session = IngestionSession(hierarchical=hierarchical, routing_name=routing_name)
    return session.ingest(inputs)
