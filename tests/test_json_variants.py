# tests/test_json_variants.py

import json
from pathlib import Path

import pytest

from labelpack.extractors.base import ExtractionContext
from labelpack.extractors.json_variants import JsonExtractor, JsonVariant, decode_json_variant
from labelpack.labels import EntityLabel, EntityScore, IntentScore, LabeledExample, ScoredExample
from labelpack.session import IngestionSession
from labelpack.utils import MalformedRecord, ParseFailure


def _extract(document) -> list:
    content = json.dumps(document)
    return list(JsonExtractor().extract(content, ExtractionContext(path=Path("examples.json"))))


def test_luis_application_variant() -> None:
    document = {
        "utterances": [
            {"text": " fly to Paris ", "intent": "BookFlight",
             "entities": [{"entity": "city", "startPos": 7, "endPos": 11}]},
        ],
        "examples": [],
    }

    assert decode_json_variant(document).variant is JsonVariant.LUIS_APPLICATION
    assert _extract(document) == [
        LabeledExample(
            utterance="fly to Paris",
            labels=["BookFlight"],
            entity_trees=[{"entity": "city", "startPos": 7, "endPos": 11}],
        )
    ]


def test_snapshot_examples_variant_converts_spans() -> None:
    document = {
        "examples": [
            {"text": "fly to Paris", "intents": [{"name": "BookFlight"}],
             "entities": [{"entity": "city", "offset": 7, "length": 5}]},
        ]
    }

    assert decode_json_variant(document).variant is JsonVariant.SNAPSHOT_EXAMPLES
    [example] = _extract(document)
    assert example.labels == ["BookFlight"]
    assert example.entity_labels == [EntityLabel("city", 7, 11)]


def test_labeled_examples_variant_maps_label_type_codes() -> None:
    document = [
        {"text": " fly to Paris", "labels": [
            {"name": "BookFlight", "label_type": 1},
            {"name": "city", "label_type": 2, "span": {"offset": 7, "length": 5}},
            {"name": "mystery", "label_type": 9},
            {"name": "untyped"},
        ]},
    ]

    assert decode_json_variant(document).variant is JsonVariant.LABELED_EXAMPLES
    [example] = _extract(document)
    assert example.utterance == "fly to Paris"
    assert example.labels == ["BookFlight"]
    assert example.entity_labels == [EntityLabel("city", 7, 11)]


def test_labeled_entity_without_span_is_malformed() -> None:
    document = [{"text": "fly", "labels": [{"name": "city", "label_type": 2}]}]
    with pytest.raises(MalformedRecord):
        _extract(document)


def test_scored_variant() -> None:
    document = [
        {"text": "hi", "intent_scores": [{"intent": "Greeting", "score": 0.8}]},
        {"text": "fly to Paris", "entity_scores": [
            {"entity": "city", "score": 0.7, "startPos": 7, "endPos": 11}]},
    ]

    assert decode_json_variant(document).variant is JsonVariant.SCORED_EXAMPLES
    assert _extract(document) == [
        ScoredExample(utterance="hi", intent_scores=[IntentScore("Greeting", 0.8)]),
        ScoredExample(utterance="fly to Paris", entity_scores=[EntityScore("city", 0.7, 7, 11)]),
    ]


def test_flat_variant() -> None:
    document = [
        {"text": "hello", "intents": ["Greeting"]},
        {"text": "Paris", "entities": [{"entity": "city", "startPos": 0, "endPos": 4}]},
    ]

    assert decode_json_variant(document).variant is JsonVariant.FLAT_EXAMPLES
    examples = _extract(document)
    assert examples[0] == LabeledExample(utterance="hello", labels=["Greeting"])
    assert examples[1].entity_trees == [{"entity": "city", "startPos": 0, "endPos": 4}]


def test_unknown_shape_is_malformed() -> None:
    with pytest.raises(MalformedRecord) as excinfo:
        decode_json_variant({"something": "else"})
    assert "luis_application" in str(excinfo.value)


def test_empty_content_yields_nothing() -> None:
    extractor = JsonExtractor()
    assert list(extractor.extract("   \n", ExtractionContext(path=Path("empty.json")))) == []


def test_scored_ingestion_leaves_label_maps_untouched(tmp_path: Path) -> None:
    path = tmp_path / "scores.json"
    path.write_text(json.dumps([
        {"text": "hi", "intent_scores": [{"intent": "Greeting", "score": 0.8}]},
    ]), encoding="utf-8")

    result = IngestionSession(hierarchical=True).ingest(str(path))

    assert result.utterance_labels == {}
    assert result.utterance_entity_labels == {}
    assert result.utterance_label_scores == {"hi": [IntentScore("Greeting", 0.8)]}


def test_json_variants_honor_override(tmp_path: Path) -> None:
    path = tmp_path / "travel.json"
    path.write_text(json.dumps([{"text": "fly", "intents": ["BookFlight"]}]), encoding="utf-8")

    result = IngestionSession(hierarchical=True).ingest(str(path))

    assert result.utterance_labels == {"fly": ["travel"]}


def test_invalid_json_is_a_parse_failure(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ParseFailure) as excinfo:
        IngestionSession().ingest(str(path))
    assert excinfo.value.path == path


def test_malformed_record_carries_path(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"text": "x", "entities": [{"entity": "city"}]}]), encoding="utf-8")

    with pytest.raises(MalformedRecord) as excinfo:
        IngestionSession().ingest(str(path))
    assert excinfo.value.path == path
