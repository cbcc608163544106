# tests/test_cli.py

from pathlib import Path

from labelpack.aggregator import LabelAggregator
from labelpack.cli import main
from labelpack.resolver import LabelResolver
from tests.fakes.fake_embedder import FakeEmbedder


def test_tsv_command_writes_file(tmp_path: Path) -> None:
    corpus = tmp_path / "travel.lu"
    corpus.write_text("# BookFlight\n- book a flight\n", encoding="utf-8")
    output = tmp_path / "out" / "corpus.tsv"

    assert main(["tsv", str(corpus), "-o", str(output), "--hierarchical"]) == 0
    assert output.read_text(encoding="utf-8") == "travel\tbook a flight\n"


def test_tsv_command_fails_on_unsupported_input(tmp_path: Path, capsys) -> None:
    notes = tmp_path / "notes.md"
    notes.write_text("hello", encoding="utf-8")

    assert main(["tsv", str(notes)]) == 1
    assert "notes.md" in capsys.readouterr().out


def test_info_command_reads_snapshot(tmp_path: Path, capsys) -> None:
    aggregator = LabelAggregator()
    aggregator.add_label("hello", "Greeting")
    resolver = LabelResolver(embedder=FakeEmbedder())
    resolver.add_examples(aggregator.result)
    snapshot = tmp_path / "chat.blu"
    snapshot.write_bytes(resolver.create_snapshot())

    assert main(["info", str(snapshot)]) == 0
    out = capsys.readouterr().out
    assert "Examples: 1" in out
    assert "Greeting" in out


def test_info_command_rejects_garbage(tmp_path: Path) -> None:
    snapshot = tmp_path / "bad.blu"
    snapshot.write_bytes(b"garbage")
    assert main(["info", str(snapshot)]) == 1


def test_extractors_command_lists_formats(capsys) -> None:
    assert main(["extractors"]) == 0
    out = capsys.readouterr().out
    assert "qna-tabular" in out
    assert ".dispatch" in out
