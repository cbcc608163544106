"""
Snapshot orchestration - one resolver handle per logical base name.

The orchestrator owns a session-scoped store of resolver handles. The first
time a base name is seen a new handle is created, registered and populated;
later builds for the same base name synchronize the cached handle instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from .extractors.markup import MarkupExtractor
from .parsers.base import SourceDocument
from .recognizers import RecognizerDocuments, build_recognizer_documents, recognizers_for_prebuilt
from .resolver import LabelResolver
from .session import SETTINGS_FILE_NAME, IngestionContext, IngestionSession
from .utils import PathLike, read_text, write_bytes, write_json

logger = logging.getLogger(__name__)

SNAPSHOT_EXTENSION = ".blu"
DEFAULT_SNAPSHOT_NAME = "labelpack.blu"
MARKUP_EXTENSION = ".lu"


@dataclass
class BuildOutput:
    """Artifacts for one base name."""
    id: str
    snapshot: bytes
    recognizer: Optional[RecognizerDocuments] = None


class SnapshotOrchestrator:
    """
    Builds snapshots (and optional recognizer descriptors) per base name.

    Usage:
        orchestrator = SnapshotOrchestrator(model_id="fast")
        for source in collect_markup_sources("bot/dialogs"):
            output = orchestrator.process_markup(source, is_dialog=True)
    """

    def __init__(
        self,
        embedder: Any = None,
        model_id: Optional[str] = None,
        batch_size: int = 32,
        markup: Optional[MarkupExtractor] = None,
    ):
        self.embedder = embedder
        self.model_id = model_id
        self.batch_size = batch_size
        self.markup = markup or MarkupExtractor()
        self._resolvers: dict[str, LabelResolver] = {}

    # ------------------------------------------------------------------
    # Resolver store
    # ------------------------------------------------------------------

    def get_resolver(self, base_name: str) -> Optional[LabelResolver]:
        return self._resolvers.get(base_name)

    def register_resolver(self, base_name: str, resolver: LabelResolver) -> None:
        self._resolvers[base_name] = resolver
        logger.debug(f"Registered resolver for {base_name}")

    def resolver_names(self) -> list[str]:
        return list(self._resolvers)

    def _get_embedder(self):
        if self.embedder is None:
            from .embedder import EmbeddingModel

            self.embedder = EmbeddingModel(model_id=self.model_id)
        return self.embedder

    def create_resolver(self, full_embedding: bool = False) -> LabelResolver:
        return LabelResolver(
            embedder=self._get_embedder(),
            model_id=self.model_id,
            compact=not full_embedding,
            batch_size=self.batch_size,
        )

    def seed_from_snapshots(self, snapshots: dict[str, bytes]) -> int:
        """
        Register handles restored from earlier snapshots.

        Embeddings made by a different model than the active one are dropped
        and recomputed when the handle is next synchronized.

        Returns:
            Number of handles restored
        """
        for base_name, data in snapshots.items():
            resolver = LabelResolver.load_snapshot(data, embedder=self._get_embedder(), batch_size=self.batch_size)
            resolver.discard_foreign_embeddings()
            self.register_resolver(base_name, resolver)
        return len(snapshots)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def process_markup(
        self,
        source: SourceDocument,
        routing_name: str = "",
        is_dialog: bool = False,
        full_embedding: bool = False,
        skill_name: str = "",
    ) -> BuildOutput:
        """
        Build the snapshot for one markup document.

        ``routing_name``, when set, labels every utterance of the document
        and names the intent that routes to ``skill_name``.
        """
        base_name = source.id
        session = IngestionSession()
        result = session.ingest_document(source, routing_name)

        resolver = self.get_resolver(base_name)
        if resolver is not None:
            logger.info(f"Synchronizing cached resolver for {base_name}")
            resolver.compact = not full_embedding
            resolver.sync(result)
        else:
            resolver = self.create_resolver(full_embedding)
            self.register_resolver(base_name, resolver)
            resolver.add_examples(result)
            logger.info(f"Created resolver for {base_name} with {len(resolver)} examples")

        snapshot = resolver.create_snapshot()

        recognizer = None
        if is_dialog:
            prebuilt = self.markup.prebuilt_entities(
                source.content,
                str(source.path) if source.path else source.id,
                IngestionContext().resolve_references,
            )
            recognizer = build_recognizer_documents(
                base_name,
                recognizers_for_prebuilt(prebuilt),
                routing_name,
                skill_name,
            )

        return BuildOutput(id=base_name, snapshot=snapshot, recognizer=recognizer)


# =============================================================================
# Build inputs and outputs on disk
# =============================================================================

def collect_markup_sources(path: PathLike) -> list[SourceDocument]:
    """Every `.lu` file under ``path`` (or ``path`` itself), sorted by path."""
    path = Path(path)
    if path.is_dir():
        files = sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() == MARKUP_EXTENSION)
    elif path.suffix.lower() == MARKUP_EXTENSION:
        files = [path]
    else:
        files = []
    return [SourceDocument(id=p.stem, content=read_text(p), path=p) for p in files]


def load_snapshots(path: PathLike) -> dict[str, bytes]:
    """Existing snapshots under ``path`` keyed by base name."""
    path = Path(path)
    if path.is_dir():
        files = sorted(p for p in path.rglob(f"*{SNAPSHOT_EXTENSION}") if p.is_file())
    elif path.is_file() and path.suffix == SNAPSHOT_EXTENSION:
        files = [path]
    else:
        files = []
    return {p.stem: p.read_bytes() for p in files}


def snapshot_file_path(out: PathLike, input_path: PathLike) -> Path:
    """
    Where to write a single snapshot.

    A directory output gets the default name for a directory input and the
    input's base name for a file input; any other output is used as-is.
    """
    out = Path(out)
    input_path = Path(input_path)
    if out.is_dir():
        if input_path.is_dir():
            return out / DEFAULT_SNAPSHOT_NAME
        return out / f"{input_path.stem}{SNAPSHOT_EXTENSION}"
    return out


def write_build_outputs(
    output_dir: PathLike,
    outputs: Iterable[BuildOutput],
    settings: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Write snapshots and recognizer documents, then the settings document.

    Returns:
        The updated settings
    """
    output_dir = Path(output_dir)
    settings = settings if settings is not None else {}
    snapshot_paths = settings.setdefault("orchestrator", {}).setdefault("snapshots", {})

    for output in outputs:
        snapshot_file = write_bytes(output.snapshot, output_dir / f"{output.id}{SNAPSHOT_EXTENSION}")
        logger.debug(f"Snapshot written to {snapshot_file}")

        if output.recognizer is not None:
            recognizer_file = write_json(
                output.recognizer.orchestrator_recognizer, output_dir / f"{output.id}.lu.dialog"
            )
            logger.debug(f"Recognizer written to {recognizer_file}")
            multi_file = write_json(
                output.recognizer.multi_language_recognizer, output_dir / f"{output.id}.en-us.lu.dialog"
            )
            logger.debug(f"Multi-language recognizer written to {multi_file}")

        snapshot_paths[output.id] = snapshot_file.as_posix()

    write_json(settings, output_dir / SETTINGS_FILE_NAME)
    return settings
