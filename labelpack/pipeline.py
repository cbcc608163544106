"""
Build pipeline - ties ingestion, label resolution and snapshot output together.

Two modes:
    combined     every input root -> one IngestionResult -> one snapshot
    per-source   every `.lu` file -> its own resolver handle -> snapshot
                 (+ recognizer documents) and a settings document
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .orchestrator import (
    DEFAULT_SNAPSHOT_NAME,
    SnapshotOrchestrator,
    collect_markup_sources,
    load_snapshots,
    snapshot_file_path,
    write_build_outputs,
)
from .resolver import LabelResolver
from .session import IngestionSession
from .utils import split_input_paths, write_bytes

logger = logging.getLogger(__name__)


@dataclass
class BuildConfig:
    """Configuration for a snapshot build."""

    # Input: comma-separated roots
    inputs: str

    # Output
    output_dir: Path = field(default_factory=lambda: Path("./output"))

    # Ingestion
    hierarchical: bool = False
    routing_name: str = ""

    # Embedding
    embedding_model: Optional[str] = None  # preset name or HF id; env chain if None
    embedding_batch_size: int = 32
    full_embedding: bool = False

    # Per-source build
    per_source: bool = False
    dialog: bool = False
    skill_name: str = ""

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        if self.skill_name:
            self.dialog = True


@dataclass
class BuildResult:
    """Result of running a build."""

    success: bool
    snapshot_paths: list[Path] = field(default_factory=list)
    settings: Optional[dict] = None
    error: Optional[str] = None
    stats: dict = field(default_factory=dict)


class BuildPipeline:
    """
    Builds label snapshots from corpus files.

    Example:
        pipeline = BuildPipeline(BuildConfig(
            inputs="corpus/travel,corpus/faq.qna",
            output_dir="out",
            hierarchical=True,
        ))
        result = pipeline.run()
    """

    def __init__(self, config: BuildConfig, embedder: Any = None):
        self.config = config
        self._embedder = embedder

    def run(self) -> BuildResult:
        """Run the build synchronously."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> BuildResult:
        logger.info(f"Starting build for: {self.config.inputs}")

        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
            if self.config.per_source:
                result = await self._build_per_source()
            else:
                result = await self._build_combined()
            logger.info(f"✅ Build complete: {len(result.snapshot_paths)} snapshot(s)")
            return result

        except Exception as e:
            logger.exception(f"Build failed: {e}")
            return BuildResult(success=False, error=str(e))

    async def _build_combined(self) -> BuildResult:
        logger.info("Step 1/3: Ingesting corpus files...")
        session = IngestionSession(
            hierarchical=self.config.hierarchical,
            routing_name=self.config.routing_name,
        )
        ingestion = await session.ingest_async(self.config.inputs)

        logger.info("Step 2/3: Embedding examples...")
        resolver = LabelResolver(
            embedder=self._embedder,
            model_id=self.config.embedding_model,
            compact=not self.config.full_embedding,
            batch_size=self.config.embedding_batch_size,
        )
        resolver.add_examples(ingestion)

        logger.info("Step 3/3: Writing snapshot...")
        roots = split_input_paths(self.config.inputs)
        if len(roots) == 1:
            target = snapshot_file_path(self.config.output_dir, roots[0])
        else:
            target = self.config.output_dir / DEFAULT_SNAPSHOT_NAME
        write_bytes(resolver.create_snapshot(), target)
        logger.info(f"  Snapshot written to {target}")

        return BuildResult(
            success=True,
            snapshot_paths=[target],
            stats={**ingestion.summary(), "files": len(session.context.processed)},
        )

    async def _build_per_source(self) -> BuildResult:
        logger.info("Step 1/3: Collecting markup sources...")
        sources = []
        for root in split_input_paths(self.config.inputs):
            sources.extend(await asyncio.to_thread(collect_markup_sources, root))
        logger.info(f"  Found {len(sources)} markup file(s)")

        orchestrator = SnapshotOrchestrator(
            embedder=self._embedder,
            model_id=self.config.embedding_model,
            batch_size=self.config.embedding_batch_size,
        )
        restored = orchestrator.seed_from_snapshots(load_snapshots(self.config.output_dir))
        if restored:
            logger.info(f"  Restored {restored} resolver(s) from existing snapshots")

        logger.info("Step 2/3: Building snapshots...")
        outputs = [
            orchestrator.process_markup(
                source,
                routing_name=self.config.routing_name,
                is_dialog=self.config.dialog,
                full_embedding=self.config.full_embedding,
                skill_name=self.config.skill_name,
            )
            for source in sources
        ]

        logger.info("Step 3/3: Writing build outputs...")
        settings: dict[str, Any] = {"orchestrator": {"modelPath": self.config.embedding_model or "", "snapshots": {}}}
        settings = write_build_outputs(self.config.output_dir, outputs, settings)

        return BuildResult(
            success=True,
            snapshot_paths=[self.config.output_dir / f"{output.id}.blu" for output in outputs],
            settings=settings,
            stats={"sources": len(sources), "restored_resolvers": restored},
        )
