# tests/test_registry.py

from pathlib import Path

import pytest

from labelpack.extractors import (
    ExtractionContext,
    Extractor,
    create_default_registry,
)
from labelpack.labels import LabeledExample
from labelpack.utils import UnsupportedFormat


@pytest.mark.parametrize(
    "name, expected",
    [
        ("intents.lu", "markup"),
        ("faq.qna", "qna"),
        ("examples.json", "json"),
        ("corpus.tsv", "tabular"),
        ("corpus.txt", "tabular"),
        ("previous.blu", "snapshot-tabular"),
        ("UPPER.TSV", "tabular"),
        ("Mixed.Lu", "markup"),
    ],
)
def test_select_by_extension(name: str, expected: str) -> None:
    registry = create_default_registry()
    assert registry.select(Path(name), "Greeting\thello").name == expected


def test_qna_header_routes_tabular_files_to_qna_extractor() -> None:
    registry = create_default_registry()
    extractor = registry.select(Path("kb.tsv"), "Question\tAnswer\nhi\thello\n")
    assert extractor.name == "qna-tabular"


def test_unsupported_extension_names_the_path() -> None:
    registry = create_default_registry()
    with pytest.raises(UnsupportedFormat) as excinfo:
        registry.select(Path("notes.md"), "# heading")
    assert excinfo.value.path == Path("notes.md")
    assert "notes.md" in str(excinfo.value)


def test_dispatch_extension_is_reserved() -> None:
    registry = create_default_registry()
    with pytest.raises(UnsupportedFormat) as excinfo:
        registry.select(Path("routing.dispatch"), "{}")
    assert "reserved" in str(excinfo.value)


def test_custom_extractor_with_higher_priority_wins() -> None:
    class ShoutingExtractor(Extractor):
        name = "shouting"
        extensions = (".txt",)
        priority = 50

        def detect(self, path, content):
            return self.handles_extension(path) and content.isupper()

        def extract(self, content, context: ExtractionContext):
            yield LabeledExample(utterance=content.strip(), labels=["Shout"])

    registry = create_default_registry()
    registry.register(ShoutingExtractor)

    assert registry.select(Path("a.txt"), "HELLO").name == "shouting"
    assert registry.select(Path("a.txt"), "Greeting\thello").name == "tabular"

    assert registry.unregister("shouting") is True
    assert registry.get("shouting") is None
    assert registry.unregister("shouting") is False


def test_list_extractors_is_sorted_by_priority() -> None:
    listed = create_default_registry().list_extractors()
    priorities = [entry["priority"] for entry in listed]

    assert priorities == sorted(priorities, reverse=True)
    assert {entry["name"] for entry in listed} == {
        "markup", "qna", "json", "qna-tabular", "tabular", "snapshot-tabular",
    }
