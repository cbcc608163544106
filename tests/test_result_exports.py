# tests/test_result_exports.py

from labelpack.aggregator import LabelAggregator
from labelpack.labels import EntityLabel, IntentScore


def _aggregated() -> LabelAggregator:
    aggregator = LabelAggregator()
    aggregator.add_label("book a flight", "BookFlight")
    aggregator.add_label("book a flight", "Travel")
    aggregator.add_label("hello", "Greeting")
    aggregator.add_label("reserve a seat", "BookFlight")
    aggregator.add_entity_label("book a flight", {"entity": "thing", "startPos": 7, "endPos": 12})
    aggregator.add_scores("hi", intent_scores=[IntentScore("Greeting", 0.75)])
    return aggregator


def test_to_tsv_lists_labels_in_insertion_order() -> None:
    assert _aggregated().result.to_tsv() == (
        "BookFlight,Travel\tbook a flight\n"
        "Greeting\thello\n"
        "BookFlight\treserve a seat\n"
    )


def test_to_dte_groups_utterances_by_label() -> None:
    assert _aggregated().result.to_dte() == (
        "0\tBookFlight\tbook a flight|reserve a seat\n"
        "1\tTravel\tbook a flight\n"
        "2\tGreeting\thello\n"
    )


def test_summary_counts_every_map() -> None:
    assert _aggregated().result.summary() == {
        "utterances": 3,
        "label_duplicates": 1,
        "entity_utterances": 1,
        "entity_duplicates": 0,
        "scored_utterances": 1,
        "entity_scored_utterances": 0,
    }


def test_labels_and_dict_export() -> None:
    result = _aggregated().result

    assert result.labels() == ["BookFlight", "Travel", "Greeting"]
    exported = result.to_dict()
    assert exported["utterance_label_duplicates"] == {"book a flight": ["Travel"]}
    assert exported["utterance_entity_labels"]["book a flight"] == [
        EntityLabel("thing", 7, 12).to_dict()
    ]
    assert exported["utterance_label_scores"] == {"hi": [{"intent": "Greeting", "score": 0.75}]}
