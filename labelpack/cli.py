#!/usr/bin/env python3
"""
Labelpack CLI - Command-line interface for ingesting corpora and building snapshots.

Usage:
    labelpack build <inputs> [options]
    labelpack tsv <inputs> [options]
    labelpack info <snapshot>
    labelpack extractors
    labelpack download-model [-m MODEL]

Examples:
    # One snapshot from a folder and a Q&A file, labels bucketed per file
    labelpack build corpus/travel,corpus/faq.qna -o ./out --hierarchical

    # One snapshot per .lu file, with recognizer documents for a dialog bot
    labelpack build bot/dialogs -o ./generated --per-source --dialog

    # Flatten a corpus to label<TAB>utterance lines
    labelpack tsv corpus/ -o corpus.tsv

    # Inspect a snapshot
    labelpack info out/labelpack.blu
"""
from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


def cmd_build(args: argparse.Namespace) -> int:
    """Build snapshots from corpus files."""
    from .pipeline import BuildConfig, BuildPipeline

    config = BuildConfig(
        inputs=args.inputs,
        output_dir=Path(args.output),
        hierarchical=args.hierarchical,
        routing_name=args.routing_name,
        embedding_model=args.model,
        embedding_batch_size=args.batch_size,
        full_embedding=args.full_embedding,
        per_source=args.per_source,
        dialog=args.dialog,
        skill_name=args.skill_name,
    )

    logger.info(f"Output directory: {args.output}")

    result = BuildPipeline(config).run()

    if result.success:
        print("\n✅ Build finished!")
        for path in result.snapshot_paths:
            print(f"   Snapshot: {path}")
        for key, value in result.stats.items():
            print(f"   {key}: {value}")
        return 0
    else:
        print("\n❌ Build failed!")
        print(f"   Error: {result.error}")
        return 1


def cmd_tsv(args: argparse.Namespace) -> int:
    """Ingest corpus files and write label/utterance lines."""
    from .session import IngestionSession
    from .utils import LabelpackError

    session = IngestionSession(hierarchical=args.hierarchical, routing_name=args.routing_name)
    try:
        result = session.ingest(args.inputs)
    except LabelpackError as e:
        print(f"❌ Ingestion failed: {e}")
        return 1

    content = result.to_dte() if args.dte else result.to_tsv()
    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content, encoding="utf-8")
        print(f"✅ Wrote {len(result.utterance_labels)} utterances to {output}")
    else:
        sys.stdout.write(content)

    if result.utterance_label_duplicates:
        logger.info(f"{len(result.utterance_label_duplicates)} utterances carry more than one label")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Display information about a snapshot."""
    from .resolver import LabelResolver
    from .utils import SnapshotError

    snapshot_path = Path(args.snapshot)

    if not snapshot_path.exists():
        print(f"❌ File not found: {snapshot_path}")
        return 1

    if snapshot_path.suffix != ".blu":
        print("⚠️  Warning: File does not have .blu extension")

    try:
        resolver = LabelResolver.load_snapshot(snapshot_path.read_bytes())
    except SnapshotError as e:
        print(f"❌ Invalid snapshot: {e}")
        return 1

    label_counts = Counter(label for example in resolver.examples for label in example.labels)
    entity_count = sum(len(example.entity_labels) for example in resolver.examples)

    print(f"\n📦 Snapshot: {snapshot_path.name}")
    print(f"   Size: {snapshot_path.stat().st_size / 1024:.1f} KB")
    print(f"   Model: {resolver.model_id or 'N/A'}")
    print(f"   Precision: {resolver.dtype}")
    print(f"   Examples: {len(resolver)}")
    print(f"   Entity labels: {entity_count}")
    print("\n📋 Labels:")
    for label, count in label_counts.most_common(args.top):
        print(f"   {label:<30} {count:>6}")
    return 0


def cmd_extractors(args: argparse.Namespace) -> int:
    """List available format extractors."""
    from .extractors import RESERVED_EXTENSIONS, get_registry

    print("\n📋 Available Extractors:")
    print("-" * 60)
    for extractor in get_registry().list_extractors():
        extensions = ",".join(extractor["extensions"])
        print(f"  {extractor['name']:<18} extensions={extensions:<10} priority={extractor['priority']}")

    print(f"\n   Reserved: {', '.join(sorted(RESERVED_EXTENSIONS))}")
    return 0


def cmd_download_model(args: argparse.Namespace) -> int:
    """Download the embedding model ahead of a build."""
    from .embedder import MODEL_PRESETS, EmbeddingModel

    if args.list:
        print("\n📦 Available Embedding Model Presets:")
        for name, model_id in MODEL_PRESETS.items():
            print(f"   {name:<14} → {model_id}")
        return 0

    embedder = EmbeddingModel(model_id=args.model, cache_dir=args.cache_dir)
    try:
        path = embedder.download_model()
    except Exception as e:
        logger.exception(f"Download failed: {e}")
        print(f"❌ Download failed: {e}")
        return 1

    print(f"✅ {embedder.model_id} cached at {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="labelpack",
        description="Ingest labeled utterance corpora and build label-resolution snapshots",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build snapshots from corpus files",
    )
    build_parser.add_argument(
        "inputs",
        help="Comma-separated files or folders",
    )
    build_parser.add_argument(
        "-o", "--output",
        default="./output",
        help="Output directory (default: ./output)",
    )
    build_parser.add_argument(
        "--hierarchical",
        action="store_true",
        help="Label every utterance with its source file's name",
    )
    build_parser.add_argument(
        "--routing-name",
        default="",
        help="Bucket label for directly named files in hierarchical mode",
    )
    build_parser.add_argument(
        "-m", "--model",
        default=None,
        help="Embedding model preset or HuggingFace ID (default: env or fast)",
    )
    build_parser.add_argument(
        "--batch-size",
        type=int,
        default=32,
        help="Embedding batch size (default: 32)",
    )
    build_parser.add_argument(
        "--full-embedding",
        action="store_true",
        help="Store float32 embeddings instead of compact float16",
    )
    build_parser.add_argument(
        "--per-source",
        action="store_true",
        help="Build one snapshot per .lu file and write a settings document",
    )
    build_parser.add_argument(
        "--dialog",
        action="store_true",
        help="Also write recognizer documents in per-source builds",
    )
    build_parser.add_argument(
        "--skill-name",
        default="",
        help="Route recognized intents to this skill",
    )
    build_parser.set_defaults(func=cmd_build)

    # TSV command
    tsv_parser = subparsers.add_parser(
        "tsv",
        help="Flatten corpus files to label/utterance lines",
    )
    tsv_parser.add_argument(
        "inputs",
        help="Comma-separated files or folders",
    )
    tsv_parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output file (default: stdout)",
    )
    tsv_parser.add_argument(
        "--hierarchical",
        action="store_true",
        help="Label every utterance with its source file's name",
    )
    tsv_parser.add_argument(
        "--routing-name",
        default="",
        help="Bucket label for directly named files in hierarchical mode",
    )
    tsv_parser.add_argument(
        "--dte",
        action="store_true",
        help="Write index<TAB>label<TAB>utterances lines instead",
    )
    tsv_parser.set_defaults(func=cmd_tsv)

    # Info command
    info_parser = subparsers.add_parser(
        "info",
        help="Display information about a snapshot",
    )
    info_parser.add_argument(
        "snapshot",
        help="Path to the .blu file",
    )
    info_parser.add_argument(
        "--top",
        type=int,
        default=20,
        help="Number of labels to list (default: 20)",
    )
    info_parser.set_defaults(func=cmd_info)

    # Extractors command
    extractors_parser = subparsers.add_parser(
        "extractors",
        help="List available format extractors",
    )
    extractors_parser.set_defaults(func=cmd_extractors)

    # Download command
    download_parser = subparsers.add_parser(
        "download-model",
        help="Pre-download the embedding model",
    )
    download_parser.add_argument(
        "-m", "--model",
        default=None,
        help="Embedding model preset or HuggingFace ID (default: env or fast)",
    )
    download_parser.add_argument(
        "--cache-dir",
        default=None,
        help="Model cache directory",
    )
    download_parser.add_argument(
        "--list",
        action="store_true",
        help="List model presets and exit",
    )
    download_parser.set_defaults(func=cmd_download_model)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
