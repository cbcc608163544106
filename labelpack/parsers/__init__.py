"""
Markup grammars for the two rich corpus formats.

The extractors only depend on the ``parse`` contract of these classes, so an
externally supplied grammar with the same method can be injected instead.

    LuParser.parse(content, source_id, resolve) -> LUIS application dict
    QnaParser.parse(content, source_id) -> {"kb": {"qnaList": [...]}}
"""
from .base import GrammarError, ReferenceResolver, SourceDocument
from .lu import LuParser, parse_labeled_utterance
from .qna import QnaParser

__all__ = [
    "GrammarError",
    "ReferenceResolver",
    "SourceDocument",
    "LuParser",
    "parse_labeled_utterance",
    "QnaParser",
]
