"""
Label resolver - an in-process nearest-neighbour label model.

A resolver handle holds labeled examples plus one sentence embedding per
utterance. It can be synchronized incrementally with a newer
IngestionResult, score new utterances, and export its state as a snapshot.

Snapshot format (UTF-8 text, one record per line):

    #labelpack-snapshot<TAB>{"dims": 384, "dtype": "float16", ...}
    BookFlight<TAB>book a flight<TAB><base64 embedding><TAB>[{"name": "city", ...}]

The rows keep labels and utterance in the first two fields, so a snapshot is
also readable as prior-snapshot tabular input.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from .binary_io import decode_embedding, encode_embedding, normalize_rows, tensor_to_numpy
from .labels import EntityLabel, IngestionResult, IntentScore, LabelType
from .utils import SnapshotError

logger = logging.getLogger(__name__)

SNAPSHOT_MAGIC = "#labelpack-snapshot"
SNAPSHOT_VERSION = 1


@dataclass
class ResolverExample:
    utterance: str
    labels: list[str] = field(default_factory=list)
    entity_labels: list[EntityLabel] = field(default_factory=list)


def _sanitize(text: str) -> str:
    """Tabs and line breaks would split a snapshot row."""
    return " ".join(text.replace("\t", " ").splitlines())


class LabelResolver:
    """
    A resolver handle keyed by one logical base name.

    Usage:
        resolver = LabelResolver(model_id="fast")
        resolver.add_examples(result)
        resolver.score("fly me to paris")
        snapshot = resolver.create_snapshot()
    """

    def __init__(
        self,
        embedder: Any = None,
        model_id: Optional[str] = None,
        compact: bool = True,
        batch_size: int = 32,
    ):
        self._embedder = embedder
        self.model_id = model_id
        self.compact = compact
        self.batch_size = batch_size
        self._examples: dict[str, ResolverExample] = {}
        self._embeddings: dict[str, np.ndarray] = {}

    @property
    def dtype(self) -> str:
        return "float16" if self.compact else "float32"

    def _get_embedder(self):
        if self._embedder is None:
            # Lazy import keeps torch off the ingestion-only path
            from .embedder import EmbeddingModel

            self._embedder = EmbeddingModel(model_id=self.model_id)
        return self._embedder

    def _embed(self, utterances: list[str]) -> None:
        pending = [u for u in utterances if u not in self._embeddings]
        if not pending:
            return
        vectors = tensor_to_numpy(self._get_embedder().embed(pending, batch_size=self.batch_size))
        if self._embeddings and vectors.shape[-1] != self._dims():
            logger.warning(
                f"Embedder returned {vectors.shape[-1]} dimensions, cached embeddings have "
                f"{self._dims()}; re-embedding every example"
            )
            self._embeddings.clear()
            self._embed(list(self._examples))
            return
        for utterance, vector in zip(pending, vectors):
            self._embeddings[utterance] = vector
        logger.debug(f"Embedded {len(pending)} utterances")

    def _dims(self) -> int:
        if not self._embeddings:
            return 0
        return int(len(next(iter(self._embeddings.values()))))

    def discard_foreign_embeddings(self) -> bool:
        """
        Drop cached embeddings produced by a model other than the embedder's.

        Returns:
            True if embeddings were dropped; they are recomputed on demand
        """
        active = getattr(self._get_embedder(), "model_id", None)
        if not active or not self.model_id or active == self.model_id:
            return False
        logger.info(f"Cached embeddings come from {self.model_id}, not {active}; they will be recomputed")
        self._embeddings.clear()
        self.model_id = active
        return True

    # ------------------------------------------------------------------
    # Examples
    # ------------------------------------------------------------------

    @property
    def examples(self) -> list[ResolverExample]:
        return list(self._examples.values())

    def __len__(self) -> int:
        return len(self._examples)

    def add_examples(self, result: IngestionResult) -> int:
        """
        Add every labeled utterance of an ingestion result.

        Labels of an utterance already present are merged in.

        Returns:
            Number of utterances that were new
        """
        added = 0
        for utterance, example in self._examples_from(result).items():
            existing = self._examples.get(utterance)
            if existing is None:
                self._examples[utterance] = example
                added += 1
                continue
            for label in example.labels:
                if label not in existing.labels:
                    existing.labels.append(label)
            for entity_label in example.entity_labels:
                if entity_label not in existing.entity_labels:
                    existing.entity_labels.append(entity_label)

        self._embed(list(self._examples))
        return added

    def sync(self, result: IngestionResult) -> dict[str, int]:
        """
        Bring the handle in line with a newer ingestion result.

        Utterances missing from ``result`` are removed, changed labels are
        replaced and only utterances without an embedding are embedded.

        Returns:
            Counts of added, removed, updated and unchanged utterances
        """
        incoming = self._examples_from(result)
        counts = {"added": 0, "removed": 0, "updated": 0, "unchanged": 0}

        for utterance in list(self._examples):
            if utterance not in incoming:
                self.remove_example(utterance)
                counts["removed"] += 1

        for utterance, example in incoming.items():
            existing = self._examples.get(utterance)
            if existing is None:
                counts["added"] += 1
            elif existing == example:
                counts["unchanged"] += 1
                continue
            else:
                counts["updated"] += 1
            self._examples[utterance] = example

        # Keep the incoming order so equal inputs give equal snapshots
        self._examples = {utterance: self._examples[utterance] for utterance in incoming}
        self._embed(list(self._examples))
        logger.info(
            f"Synchronized resolver: {counts['added']} added, {counts['removed']} removed, "
            f"{counts['updated']} updated"
        )
        return counts

    def remove_example(self, utterance: str) -> bool:
        removed = self._examples.pop(utterance, None) is not None
        self._embeddings.pop(utterance, None)
        return removed

    @staticmethod
    def _examples_from(result: IngestionResult) -> dict[str, ResolverExample]:
        # Keyed by the text a snapshot row can hold, so reloads match
        examples: dict[str, ResolverExample] = {}
        for utterance, labels in result.utterance_labels.items():
            example = examples.setdefault(_sanitize(utterance), ResolverExample(_sanitize(utterance)))
            example.labels.extend(label for label in labels if label not in example.labels)
        for utterance, entity_labels in result.utterance_entity_labels.items():
            example = examples.setdefault(_sanitize(utterance), ResolverExample(_sanitize(utterance)))
            example.entity_labels.extend(label for label in entity_labels if label not in example.entity_labels)
        return examples

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(self, utterance: str, top_k: int = 5) -> list[IntentScore]:
        """
        Cosine-similarity scores per label, best first.

        A label's score is its closest example's similarity.
        """
        labeled = [e for e in self._examples.values() if e.labels]
        if not labeled:
            return []

        self._embed([e.utterance for e in labeled])
        matrix = normalize_rows(np.stack([self._embeddings[e.utterance] for e in labeled]))
        query = normalize_rows(tensor_to_numpy(self._get_embedder().embed([utterance], batch_size=1)))[0]
        similarities = matrix @ query

        best: dict[str, float] = {}
        for example, similarity in zip(labeled, similarities):
            for label in example.labels:
                if similarity > best.get(label, -2.0):
                    best[label] = float(similarity)

        ranked = sorted(best.items(), key=lambda item: item[1], reverse=True)
        return [IntentScore(label, score) for label, score in ranked[:top_k]]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def create_snapshot(self) -> bytes:
        """Export labels, utterances and embeddings as snapshot bytes."""
        self._embed(list(self._examples))
        dims = self._dims()

        manifest = {
            "version": SNAPSHOT_VERSION,
            "model_id": self._model_name(),
            "dtype": self.dtype,
            "dims": dims,
            "examples": len(self._examples),
        }
        lines = [f"{SNAPSHOT_MAGIC}\t{json.dumps(manifest, sort_keys=True)}"]

        for example in self._examples.values():
            entities = [
                {"name": label.name, "start": label.start_offset, "end": label.end_offset}
                for label in example.entity_labels
            ]
            lines.append("\t".join([
                ",".join(example.labels),
                example.utterance,
                encode_embedding(self._embeddings[example.utterance], self.dtype),
                json.dumps(entities, ensure_ascii=False),
            ]))

        return ("\n".join(lines) + "\n").encode("utf-8")

    def _model_name(self) -> Optional[str]:
        if self._embedder is not None:
            return getattr(self._embedder, "model_id", self.model_id)
        return self.model_id

    @classmethod
    def load_snapshot(cls, data: bytes, embedder: Any = None, batch_size: int = 32) -> "LabelResolver":
        """
        Rebuild a resolver from snapshot bytes.

        Raises:
            SnapshotError: If the buffer is not a readable snapshot
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotError(f"Snapshot is not UTF-8 text: {e}") from e

        lines = text.split("\n")
        magic, _, manifest_text = lines[0].partition("\t")
        if magic != SNAPSHOT_MAGIC:
            raise SnapshotError("Snapshot header is missing")
        try:
            manifest = json.loads(manifest_text)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot manifest is not valid JSON: {e}") from e

        dtype = manifest.get("dtype", "float16")
        resolver = cls(
            embedder=embedder,
            model_id=manifest.get("model_id"),
            compact=(dtype == "float16"),
            batch_size=batch_size,
        )

        for index, line in enumerate(lines[1:], start=1):
            if not line.strip():
                continue
            fields = line.split("\t")
            if len(fields) != 4:
                raise SnapshotError(f"Snapshot row {index} has {len(fields)} fields, expected 4")
            labels, utterance, encoded, entities = fields
            try:
                vector = decode_embedding(encoded, dtype, manifest.get("dims", -1))
                entity_labels = [
                    EntityLabel(e["name"], int(e["start"]), int(e["end"]), LabelType.ENTITY)
                    for e in json.loads(entities)
                ]
            except (ValueError, KeyError, TypeError) as e:
                raise SnapshotError(f"Snapshot row {index} is malformed: {e}") from e

            resolver._examples[utterance] = ResolverExample(
                utterance,
                [label for label in labels.split(",") if label],
                entity_labels,
            )
            resolver._embeddings[utterance] = vector

        logger.debug(f"Loaded snapshot with {len(resolver)} examples")
        return resolver
