"""
Labelpack - labeled utterance ingestion and snapshot building.

This package provides:
- IngestionSession: reads corpus files into one IngestionResult
- LabelAggregator: merges labels and entity spans, recording conflicts
- LabelResolver / SnapshotOrchestrator: embed examples and export snapshots
- CLI: command-line interface for builds and exports

Quick Start:
    from labelpack import ingest

    result = ingest("corpus/travel,corpus/faq.qna", hierarchical=True)
    print(result.to_tsv())
"""

from .aggregator import LabelAggregator
from .labels import (
    EntityLabel,
    EntityScore,
    IngestionResult,
    IntentScore,
    LabeledExample,
    LabelType,
    ScoredExample,
)
from .orchestrator import (
    BuildOutput,
    SnapshotOrchestrator,
    collect_markup_sources,
    load_snapshots,
    snapshot_file_path,
    write_build_outputs,
)
from .pipeline import BuildConfig, BuildPipeline, BuildResult
from .resolver import LabelResolver
from .session import IngestionContext, IngestionSession, ingest
from .utils import (
    LabelpackError,
    MalformedEntityRecord,
    MalformedRecord,
    ParseFailure,
    SnapshotError,
    UnsupportedFormat,
)

__all__ = [
    # Data model
    "EntityLabel",
    "EntityScore",
    "IngestionResult",
    "IntentScore",
    "LabeledExample",
    "LabelType",
    "ScoredExample",
    # Ingestion
    "LabelAggregator",
    "IngestionContext",
    "IngestionSession",
    "ingest",
    # Snapshots
    "LabelResolver",
    "BuildOutput",
    "SnapshotOrchestrator",
    "collect_markup_sources",
    "load_snapshots",
    "snapshot_file_path",
    "write_build_outputs",
    "BuildConfig",
    "BuildPipeline",
    "BuildResult",
    # Errors
    "LabelpackError",
    "MalformedEntityRecord",
    "MalformedRecord",
    "ParseFailure",
    "SnapshotError",
    "UnsupportedFormat",
]
