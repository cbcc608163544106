"""
JSON example extractors.

A `.json` source is decoded into exactly one tagged variant by validating it
against each known schema in a fixed priority order:

    1. luis_application   {"utterances": [{"text", "intent", "entities"}]}
    2. snapshot_examples  {"examples": [{"text", "intents": [{"name"}],
                                         "entities": [{"entity", "offset", "length"}]}]}
    3. labeled_examples   [{"text", "labels": [{"name", "label_type", "span"}]}]
    4. scored_examples    [{"text", "intent_scores": [...], "entity_scores": [...]}]
    5. flat_examples      [{"text", "intents": [...], "entities": [...]}]
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from ..labels import (
    EntityLabel,
    EntityScore,
    IntentScore,
    LabeledExample,
    LabelType,
    ScoredExample,
)
from ..utils import MalformedRecord
from .base import ExtractionContext, Extracted, Extractor

logger = logging.getLogger(__name__)


class JsonVariant(str, Enum):
    LUIS_APPLICATION = "luis_application"
    SNAPSHOT_EXAMPLES = "snapshot_examples"
    LABELED_EXAMPLES = "labeled_examples"
    SCORED_EXAMPLES = "scored_examples"
    FLAT_EXAMPLES = "flat_examples"


# =============================================================================
# Schemas
# =============================================================================

class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LuisUtterance(_Record):
    """An utterance of a LUIS application; entities are nested trees."""
    text: str
    intent: str
    entities: list[dict[str, Any]] = Field(default_factory=list)


class LuisApplication(_Record):
    utterances: list[LuisUtterance]
    prebuilt_entities: list[dict[str, Any]] = Field(default_factory=list, alias="prebuiltEntities")


class SnapshotIntent(_Record):
    name: str


class SnapshotEntity(_Record):
    entity: str
    offset: int
    length: int


class SnapshotExample(_Record):
    text: str
    intents: list[SnapshotIntent] = Field(default_factory=list)
    entities: list[SnapshotEntity] = Field(default_factory=list)


class SnapshotExport(_Record):
    examples: list[SnapshotExample]


class LabelSpan(_Record):
    offset: int
    length: int


class ExampleLabel(_Record):
    name: str
    label_type: Optional[int] = None
    span: Optional[LabelSpan] = None


class LabeledExampleRecord(_Record):
    text: str
    labels: list[ExampleLabel]


class IntentScoreRecord(_Record):
    intent: str
    score: float


class EntityScoreRecord(_Record):
    entity: str
    score: float
    start_pos: int = Field(alias="startPos")
    end_pos: int = Field(alias="endPos")


class ScoredExampleRecord(_Record):
    text: str
    intent_scores: Optional[list[IntentScoreRecord]] = None
    entity_scores: Optional[list[EntityScoreRecord]] = None

    @model_validator(mode="after")
    def _has_scores(self) -> "ScoredExampleRecord":
        if self.intent_scores is None and self.entity_scores is None:
            raise ValueError("scored example needs intent_scores or entity_scores")
        return self


class FlatExampleRecord(_Record):
    text: str
    intents: list[str] = Field(default_factory=list)
    entities: list[dict[str, Any]] = Field(default_factory=list)


# Fixed decode priority
_VARIANT_SCHEMAS: list[tuple[JsonVariant, TypeAdapter]] = [
    (JsonVariant.LUIS_APPLICATION, TypeAdapter(LuisApplication)),
    (JsonVariant.SNAPSHOT_EXAMPLES, TypeAdapter(SnapshotExport)),
    (JsonVariant.LABELED_EXAMPLES, TypeAdapter(list[LabeledExampleRecord])),
    (JsonVariant.SCORED_EXAMPLES, TypeAdapter(list[ScoredExampleRecord])),
    (JsonVariant.FLAT_EXAMPLES, TypeAdapter(list[FlatExampleRecord])),
]


@dataclass
class DecodedJson:
    variant: JsonVariant
    payload: Any


def decode_json_variant(document: Any) -> DecodedJson:
    """
    Validate a parsed JSON document against each known schema in order.

    Returns:
        The first variant whose schema validates, with the validated payload

    Raises:
        MalformedRecord: If no schema matches
    """
    failures: list[str] = []
    for variant, adapter in _VARIANT_SCHEMAS:
        try:
            payload = adapter.validate_python(document)
        except ValidationError as e:
            failures.append(f"{variant.value}: {e.error_count()} error(s), first: {e.errors()[0]['msg']}")
            continue
        logger.debug(f"Decoded JSON document as {variant.value}")
        return DecodedJson(variant=variant, payload=payload)

    raise MalformedRecord(
        "JSON document matches no known example schema (" + "; ".join(failures) + ")",
        record=type(document).__name__,
    )


# =============================================================================
# Variant readers
# =============================================================================

def iter_luis_application(app: LuisApplication) -> Iterator[Extracted]:
    for utterance in app.utterances:
        yield LabeledExample(
            utterance=utterance.text.strip(),
            labels=[utterance.intent.strip()],
            entity_trees=list(utterance.entities),
        )


def _iter_snapshot_examples(export: SnapshotExport) -> Iterator[Extracted]:
    for example in export.examples:
        yield LabeledExample(
            utterance=example.text.strip(),
            labels=[intent.name for intent in example.intents],
            entity_labels=[
                EntityLabel.from_span(entity.entity, entity.offset, entity.length)
                for entity in example.entities
            ],
        )


def _iter_labeled_examples(records: list[LabeledExampleRecord]) -> Iterator[Extracted]:
    for record in records:
        utterance = record.text.strip()
        example = LabeledExample(utterance=utterance)
        for label in record.labels:
            label_type = LabelType.from_code(label.label_type)
            if label_type is LabelType.INTENT:
                example.labels.append(label.name)
            elif label_type is LabelType.ENTITY:
                if label.span is None:
                    raise MalformedRecord(
                        f"Entity label '{label.name}' for utterance '{utterance}' has no span",
                        record=label.model_dump(),
                    )
                example.entity_labels.append(
                    EntityLabel.from_span(label.name, label.span.offset, label.span.length)
                )
            else:
                logger.debug(f"Skipping label without a known label type: {label.model_dump()}")
        yield example


def _iter_scored_examples(records: list[ScoredExampleRecord]) -> Iterator[Extracted]:
    for record in records:
        intent_scores = None
        if record.intent_scores is not None:
            intent_scores = [IntentScore(s.intent, s.score) for s in record.intent_scores]
        entity_scores = None
        if record.entity_scores is not None:
            entity_scores = [
                EntityScore(s.entity, s.score, s.start_pos, s.end_pos) for s in record.entity_scores
            ]
        yield ScoredExample(
            utterance=record.text.strip(),
            intent_scores=intent_scores,
            entity_scores=entity_scores,
        )


def _iter_flat_examples(records: list[FlatExampleRecord]) -> Iterator[Extracted]:
    for record in records:
        yield LabeledExample(
            utterance=record.text.strip(),
            labels=list(record.intents),
            entity_trees=list(record.entities),
        )


_READERS = {
    JsonVariant.LUIS_APPLICATION: iter_luis_application,
    JsonVariant.SNAPSHOT_EXAMPLES: _iter_snapshot_examples,
    JsonVariant.LABELED_EXAMPLES: _iter_labeled_examples,
    JsonVariant.SCORED_EXAMPLES: _iter_scored_examples,
    JsonVariant.FLAT_EXAMPLES: _iter_flat_examples,
}


class JsonExtractor(Extractor):
    """Reads every JSON example variant after a tagged decode step."""

    name = "json"
    extensions = (".json",)

    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        if not content.strip():
            return
        decoded = decode_json_variant(json.loads(content))
        logger.info(f"  {context.path.name}: {decoded.variant.value}")
        yield from _READERS[decoded.variant](decoded.payload)
