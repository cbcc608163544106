"""Extractor for `.qna` question/answer markup."""
from __future__ import annotations

import logging
from typing import Iterator, Optional

from ..labels import LabeledExample
from ..parsers.qna import QnaParser
from ..utils import clean_label
from .base import ExtractionContext, Extracted, Extractor

logger = logging.getLogger(__name__)


class QnaExtractor(Extractor):
    """
    Every question (and alternate phrasing) becomes an utterance labeled
    with its cleaned answer text.
    """

    name = "qna"
    extensions = (".qna",)

    def __init__(self, parser: Optional[QnaParser] = None):
        self.parser = parser or QnaParser()

    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        if not content.strip():
            return
        knowledge_base = self.parser.parse(content, context.source_id)
        for pair in knowledge_base["kb"]["qnaList"]:
            label = clean_label(pair["answer"])
            for question in pair["questions"]:
                yield LabeledExample(utterance=question.strip(), labels=[label])
