# tests/test_tabular.py

from pathlib import Path

from labelpack.extractors.base import ExtractionContext
from labelpack.extractors.tabular import (
    QnaTabularExtractor,
    SnapshotTabularExtractor,
    TabularExtractor,
    has_label_utterance_header,
    is_qna_header,
)
from labelpack.labels import LabeledExample
from labelpack.session import IngestionSession


def _extract(extractor, content: str, name: str = "corpus.tsv") -> list:
    return list(extractor.extract(content, ExtractionContext(path=Path(name))))


def test_headerless_row_is_data() -> None:
    examples = _extract(TabularExtractor(), "Greeting\tHello there\n")
    assert examples == [LabeledExample(utterance="Hello there", labels=["Greeting"])]


def test_label_text_header_is_skipped() -> None:
    plain = _extract(TabularExtractor(), "Greeting\tHello there\n")
    with_header = _extract(TabularExtractor(), "Label\tText\nGreeting\tHello there\n")
    assert with_header == plain


def test_header_and_headerless_ingest_identically(tmp_path: Path) -> None:
    plain = tmp_path / "plain.tsv"
    plain.write_text("Greeting\tHello there\n", encoding="utf-8")
    headed = tmp_path / "headed.tsv"
    headed.write_text("Label\tText\nGreeting\tHello there\n", encoding="utf-8")

    first = IngestionSession().ingest(str(plain))
    second = IngestionSession().ingest(str(headed))

    assert first.utterance_labels == {"Hello there": ["Greeting"]}
    assert second.utterance_labels == first.utterance_labels


def test_three_fields_use_last_as_utterance() -> None:
    examples = _extract(TabularExtractor(), "A, B\treserved\tturn on the lights\n")
    assert examples == [LabeledExample(utterance="turn on the lights", labels=["A", "B"])]


def test_short_and_blank_lines_are_ignored() -> None:
    content = "\n   \nonlyonefield\nGreeting\thi\n"
    examples = _extract(TabularExtractor(), content)
    assert [e.utterance for e in examples] == ["hi"]


def test_header_markers() -> None:
    assert has_label_utterance_header("Label\tText")
    assert has_label_utterance_header("Label\tUtterance")
    assert not has_label_utterance_header("Greeting\tHello there")
    assert is_qna_header("Question\tAnswer\tSource")
    assert not is_qna_header("Answer\tQuestion")


def test_qna_tabular_rows_map_questions_to_cleaned_answers() -> None:
    content = "Question\tAnswer\nhow are you\tFine, thanks  a lot\n\tno question\n"
    extractor = QnaTabularExtractor()

    assert extractor.detect(Path("kb.tsv"), content)
    examples = _extract(extractor, content, "kb.tsv")

    assert examples == [LabeledExample(utterance="how are you", labels=["Fine_thanks_a_lot"])]


def test_qna_tabular_honors_override_but_plain_tabular_does_not(tmp_path: Path) -> None:
    qna = tmp_path / "faq.tsv"
    qna.write_text("Question\tAnswer\nhow are you\tFine\n", encoding="utf-8")
    plain = tmp_path / "chat.tsv"
    plain.write_text("Greeting\thello\n", encoding="utf-8")

    result = IngestionSession(hierarchical=True).ingest(tmp_path)

    assert result.utterance_labels == {"how are you": ["faq"], "hello": ["Greeting"]}


def test_snapshot_rows_always_skip_header_and_use_second_field() -> None:
    content = "#header\nBookFlight\tbook a flight\tAAAA\t[]\nGreeting,Smalltalk\thi\textra\n"
    examples = _extract(SnapshotTabularExtractor(), content, "old.blu")

    assert examples == [
        LabeledExample(utterance="book a flight", labels=["BookFlight"]),
        LabeledExample(utterance="hi", labels=["Greeting", "Smalltalk"]),
    ]


def test_snapshot_with_only_a_header_yields_nothing() -> None:
    assert _extract(SnapshotTabularExtractor(), "#header", "old.blu") == []
