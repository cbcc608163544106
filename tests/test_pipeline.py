# tests/test_pipeline.py

import json
from pathlib import Path

from labelpack.pipeline import BuildConfig, BuildPipeline
from labelpack.resolver import LabelResolver
from labelpack.session import SETTINGS_FILE_NAME
from tests.fakes.fake_embedder import FakeEmbedder


def _corpus(root: Path) -> Path:
    corpus = root / "corpus"
    corpus.mkdir()
    (corpus / "travel.lu").write_text("# BookFlight\n- book a flight\n", encoding="utf-8")
    (corpus / "chitchat.tsv").write_text("Greeting\thello\n", encoding="utf-8")
    return corpus


def test_combined_build_writes_one_snapshot(tmp_path: Path) -> None:
    corpus = _corpus(tmp_path)
    out = tmp_path / "out"

    result = BuildPipeline(
        BuildConfig(inputs=str(corpus), output_dir=out, hierarchical=True),
        embedder=FakeEmbedder(),
    ).run()

    assert result.success, result.error
    assert result.snapshot_paths == [out / "labelpack.blu"]
    assert result.stats["utterances"] == 2
    restored = LabelResolver.load_snapshot((out / "labelpack.blu").read_bytes())
    assert {e.utterance: e.labels for e in restored.examples} == {
        "hello": ["Greeting"],
        "book a flight": ["travel"],
    }


def test_single_file_build_is_named_after_the_input(tmp_path: Path) -> None:
    corpus = _corpus(tmp_path)

    result = BuildPipeline(
        BuildConfig(inputs=str(corpus / "travel.lu"), output_dir=tmp_path / "out"),
        embedder=FakeEmbedder(),
    ).run()

    assert result.snapshot_paths == [tmp_path / "out" / "travel.blu"]


def test_failed_build_reports_the_error(tmp_path: Path) -> None:
    notes = tmp_path / "notes.md"
    notes.write_text("hello", encoding="utf-8")

    result = BuildPipeline(
        BuildConfig(inputs=str(notes), output_dir=tmp_path / "out"),
        embedder=FakeEmbedder(),
    ).run()

    assert not result.success
    assert "notes.md" in result.error


def test_per_source_build_writes_settings_and_recognizers(tmp_path: Path) -> None:
    corpus = _corpus(tmp_path)
    (corpus / "weather.lu").write_text("@ prebuilt temperature\n# Weather\n- is it cold\n", encoding="utf-8")
    out = tmp_path / "generated"

    result = BuildPipeline(
        BuildConfig(inputs=str(corpus), output_dir=out, per_source=True, dialog=True, embedding_model="fast"),
        embedder=FakeEmbedder(),
    ).run()

    assert result.success, result.error
    assert result.snapshot_paths == [out / "travel.blu", out / "weather.blu"]
    settings = json.loads((out / SETTINGS_FILE_NAME).read_text())
    assert settings["orchestrator"]["modelPath"] == "fast"
    assert set(settings["orchestrator"]["snapshots"]) == {"travel", "weather"}
    weather = json.loads((out / "weather.lu.dialog").read_text())
    assert weather["entityRecognizers"] == [{"$kind": "Microsoft.TemperatureEntityRecognizer"}]


def test_per_source_rebuild_restores_existing_snapshots(tmp_path: Path) -> None:
    corpus = _corpus(tmp_path)
    out = tmp_path / "generated"
    config = BuildConfig(inputs=str(corpus), output_dir=out, per_source=True)

    first = BuildPipeline(config, embedder=FakeEmbedder()).run()
    embedder = FakeEmbedder()
    second = BuildPipeline(config, embedder=embedder).run()

    assert first.success and second.success
    assert second.stats["restored_resolvers"] == 1
    # Restored embeddings are reused, nothing new to embed
    assert embedder.embedded_texts == []


def test_skill_name_implies_dialog() -> None:
    config = BuildConfig(inputs="corpus", skill_name="TravelSkill")
    assert config.dialog is True
    assert isinstance(config.output_dir, Path)
