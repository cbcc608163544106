"""
Label data model shared by every extractor and the aggregator.

Extractors emit LabeledExample / ScoredExample values; the aggregator folds
them into an IngestionResult. Downstream consumers (the label resolver, the
snapshot orchestrator, the TSV exports) only read IngestionResult.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class LabelType(int, Enum):
    """Numeric label-type codes used by labeled example arrays."""
    UNKNOWN = 0
    INTENT = 1
    ENTITY = 2

    @classmethod
    def from_code(cls, code: Any) -> "LabelType":
        """Map a numeric code to a LabelType, UNKNOWN for anything else."""
        if isinstance(code, bool):
            return cls.UNKNOWN
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            return cls.UNKNOWN


@dataclass(frozen=True)
class EntityLabel:
    """
    A named span within an utterance.

    Offsets are inclusive character positions. ``name`` may be a
    colon-delimited path (``parent:child``) for nested entities.
    Equality is structural.
    """
    name: str
    start_offset: int
    end_offset: int
    label_type: LabelType = LabelType.ENTITY

    @classmethod
    def from_span(
        cls,
        name: str,
        offset: int,
        length: int,
        label_type: LabelType = LabelType.ENTITY,
    ) -> "EntityLabel":
        """Build a label from an offset/length span."""
        return cls(name, offset, offset + length - 1, label_type)

    @property
    def offset(self) -> int:
        return self.start_offset

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label_type": self.label_type.name.lower(),
            "start": self.start_offset,
            "end": self.end_offset,
        }


@dataclass(frozen=True)
class IntentScore:
    label: str
    score: float


@dataclass(frozen=True)
class EntityScore:
    label: str
    score: float
    start_offset: int
    end_offset: int


@dataclass
class LabeledExample:
    """
    One normalized training tuple emitted by an extractor.

    ``entity_trees`` are raw (untrusted) nested annotations with
    ``entity``/``startPos``/``endPos``/``children`` keys; the aggregator
    validates and flattens them. ``entity_labels`` are already-built labels.
    """
    utterance: str
    labels: list[str] = field(default_factory=list)
    entity_trees: list[Any] = field(default_factory=list)
    entity_labels: list[EntityLabel] = field(default_factory=list)


@dataclass
class ScoredExample:
    """An evaluation tuple: scores per intent and per entity span."""
    utterance: str
    intent_scores: Optional[list[IntentScore]] = None
    entity_scores: Optional[list[EntityScore]] = None


@dataclass
class IngestionResult:
    """
    The canonical maps produced by one ingestion session.

    Maps are keyed by trimmed utterance text and keep insertion order.
    Label lists never contain the same string twice.
    """
    utterance_labels: dict[str, list[str]] = field(default_factory=dict)
    utterance_label_duplicates: dict[str, list[str]] = field(default_factory=dict)
    utterance_entity_labels: dict[str, list[EntityLabel]] = field(default_factory=dict)
    utterance_entity_label_duplicates: dict[str, list[EntityLabel]] = field(default_factory=dict)
    utterance_label_scores: dict[str, list[IntentScore]] = field(default_factory=dict)
    utterance_entity_label_scores: dict[str, list[EntityScore]] = field(default_factory=dict)

    def summary(self) -> dict[str, int]:
        """Counts of every map, for logging and reporting."""
        return {
            "utterances": len(self.utterance_labels),
            "label_duplicates": len(self.utterance_label_duplicates),
            "entity_utterances": len(self.utterance_entity_labels),
            "entity_duplicates": len(self.utterance_entity_label_duplicates),
            "scored_utterances": len(self.utterance_label_scores),
            "entity_scored_utterances": len(self.utterance_entity_label_scores),
        }

    def labels(self) -> list[str]:
        """Distinct labels in first-seen order."""
        seen: dict[str, None] = {}
        for labels in self.utterance_labels.values():
            for label in labels:
                seen.setdefault(label, None)
        return list(seen)

    def to_tsv(self) -> str:
        """One ``labels<TAB>utterance`` line per utterance."""
        lines = [
            f"{','.join(labels)}\t{utterance}\n"
            for utterance, labels in self.utterance_labels.items()
        ]
        return "".join(lines)

    def to_dte(self) -> str:
        """One ``index<TAB>label<TAB>utterance|utterance...`` line per label."""
        label_utterances: dict[str, list[str]] = {}
        for utterance, labels in self.utterance_labels.items():
            for label in labels:
                label_utterances.setdefault(label, []).append(utterance)

        lines = [
            f"{index}\t{label}\t{'|'.join(utterances)}\n"
            for index, (label, utterances) in enumerate(label_utterances.items())
        ]
        return "".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "utterance_labels": self.utterance_labels,
            "utterance_label_duplicates": self.utterance_label_duplicates,
            "utterance_entity_labels": {
                utterance: [label.to_dict() for label in labels]
                for utterance, labels in self.utterance_entity_labels.items()
            },
            "utterance_entity_label_duplicates": {
                utterance: [label.to_dict() for label in labels]
                for utterance, labels in self.utterance_entity_label_duplicates.items()
            },
            "utterance_label_scores": {
                utterance: [{"intent": s.label, "score": s.score} for s in scores]
                for utterance, scores in self.utterance_label_scores.items()
            },
            "utterance_entity_label_scores": {
                utterance: [
                    {"entity": s.label, "score": s.score, "start": s.start_offset, "end": s.end_offset}
                    for s in scores
                ]
                for utterance, scores in self.utterance_entity_label_scores.items()
            },
        }
