# tests/test_qna.py

from pathlib import Path

import pytest

from labelpack.extractors.base import ExtractionContext
from labelpack.extractors.qna import QnaExtractor
from labelpack.labels import LabeledExample
from labelpack.parsers import GrammarError, QnaParser
from labelpack.session import IngestionSession
from labelpack.utils import ParseFailure

FAQ_QNA = """> Account questions

# ? How do I reset my password?
- I forgot my password
- reset password

**Filters:**
- category = account

```markdown
Use the reset link, on the sign-in page.
```

# ? What are your hours?
```
9 to 5
```
"""


def test_parser_builds_knowledge_base() -> None:
    kb = QnaParser().parse(FAQ_QNA, "faq.qna")

    assert kb["kb"]["qnaList"] == [
        {
            "id": 1,
            "questions": ["How do I reset my password?", "I forgot my password", "reset password"],
            "answer": "Use the reset link, on the sign-in page.",
        },
        {"id": 2, "questions": ["What are your hours?"], "answer": "9 to 5"},
    ]


def test_question_without_answer_is_a_grammar_error() -> None:
    with pytest.raises(GrammarError):
        QnaParser().parse("# ? Lonely question\n- alternate\n")


def test_second_answer_is_a_grammar_error() -> None:
    content = "# ? q\n```\na\n```\n```\nb\n```\n"
    with pytest.raises(GrammarError):
        QnaParser().parse(content)


def test_unclosed_answer_is_a_grammar_error() -> None:
    with pytest.raises(GrammarError):
        QnaParser().parse("# ? q\n```\nnever closed\n")


def test_every_question_maps_to_cleaned_answer() -> None:
    examples = list(QnaExtractor().extract(FAQ_QNA, ExtractionContext(path=Path("faq.qna"))))

    label = "Use_the_reset_link_on_the_sign-in_page."
    assert examples[:3] == [
        LabeledExample(utterance="How do I reset my password?", labels=[label]),
        LabeledExample(utterance="I forgot my password", labels=[label]),
        LabeledExample(utterance="reset password", labels=[label]),
    ]
    assert examples[3] == LabeledExample(utterance="What are your hours?", labels=["9_to_5"])


def test_empty_qna_yields_nothing() -> None:
    assert list(QnaExtractor().extract("", ExtractionContext(path=Path("empty.qna")))) == []


def test_override_replaces_answers(tmp_path: Path) -> None:
    path = tmp_path / "faq.qna"
    path.write_text(FAQ_QNA, encoding="utf-8")

    result = IngestionSession(hierarchical=True, routing_name="Support").ingest(str(path))

    assert set(result.utterance_labels) == {
        "How do I reset my password?",
        "I forgot my password",
        "reset password",
        "What are your hours?",
    }
    assert all(labels == ["Support"] for labels in result.utterance_labels.values())


def test_grammar_errors_surface_as_parse_failures(tmp_path: Path) -> None:
    path = tmp_path / "broken.qna"
    path.write_text("# ? q\n", encoding="utf-8")

    with pytest.raises(ParseFailure) as excinfo:
        IngestionSession().ingest(str(path))
    assert isinstance(excinfo.value.__cause__, GrammarError)
