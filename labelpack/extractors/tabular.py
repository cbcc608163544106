"""
Tab-separated extractors.

Three layouts share the `.tsv`/`.txt` family:

    Q&A export        Question<TAB>Answer header, then question<TAB>answer
    label/utterance   label(,label)*<TAB>[reserved<TAB>]utterance, header optional
    snapshot (.blu)   header always present, then labels<TAB>utterance[<TAB>...]
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from ..labels import LabeledExample
from ..utils import clean_label
from .base import ExtractionContext, Extracted, Extractor, first_line

logger = logging.getLogger(__name__)

TABULAR_EXTENSIONS = (".tsv", ".txt")
SNAPSHOT_EXTENSION = ".blu"


def is_qna_header(header: str) -> bool:
    """A header naming both a Question and an Answer column."""
    return header.find("Question") >= 0 and header.find("Answer") > 0


def has_label_utterance_header(header: str) -> bool:
    """A header naming a Label column and a Text or Utterance column."""
    return header.find("Label") >= 0 and (header.find("Text") > 0 or header.find("Utterance") > 0)


def iter_label_utterance_rows(lines: list[str], snapshot_format: bool = False) -> Iterator[LabeledExample]:
    """
    Parse ``labels<TAB>utterance`` rows.

    With exactly three fields the middle one is a reserved column and the
    utterance is the last field, unless ``snapshot_format`` is set, in which
    case the second field is always the utterance and rows without labels
    (entity-only snapshot examples) are skipped.
    """
    processed = 0
    ignored = 0

    for index, line in enumerate(lines):
        # A snapshot row may start with an empty label field
        trimmed = line.rstrip("\r\n") if snapshot_format else line.strip()
        if not trimmed.strip():
            ignored += 1
            continue

        items = trimmed.split("\t")
        if len(items) < 2:
            logger.debug(f"Ignoring line {index}, fewer than 2 fields: '{line}'")
            ignored += 1
            continue

        utterance_index = 2 if (len(items) == 3 and not snapshot_format) else 1
        utterance = items[utterance_index].strip()
        labels = [label.strip() for label in items[0].split(",") if label.strip()]
        if snapshot_format and not labels:
            logger.debug(f"Ignoring line {index}, no labels: '{utterance}'")
            ignored += 1
            continue
        processed += 1
        yield LabeledExample(utterance=utterance, labels=labels)

    logger.debug(f"Processed {processed} rows, ignored {ignored} of {len(lines)} lines")


class TabularExtractor(Extractor):
    """Label/utterance rows with an optional header line."""

    name = "tabular"
    extensions = TABULAR_EXTENSIONS
    priority = 0
    honors_routing_label = False

    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        lines = content.split("\n")
        if has_label_utterance_header(lines[0]):
            lines = lines[1:]
        yield from iter_label_utterance_rows(lines)


class QnaTabularExtractor(Extractor):
    """Question/answer rows exported from a knowledge base."""

    name = "qna-tabular"
    extensions = TABULAR_EXTENSIONS
    priority = 10

    def detect(self, path: Path, content: str) -> bool:
        return self.handles_extension(path) and is_qna_header(first_line(content))

    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        for index, line in enumerate(content.split("\n")[1:], start=1):
            items = line.split("\t")
            if len(items) < 2:
                continue
            question = items[0].strip()
            if not question:
                logger.debug(f"Ignoring line {index} with an empty question in {context.path}")
                continue
            yield LabeledExample(utterance=question, labels=[clean_label(items[1])])


class SnapshotTabularExtractor(Extractor):
    """Rows of a previously exported snapshot; the first line is a header."""

    name = "snapshot-tabular"
    extensions = (SNAPSHOT_EXTENSION,)
    honors_routing_label = False

    def extract(self, content: str, context: ExtractionContext) -> Iterator[Extracted]:
        lines = content.split("\n")
        if len(lines) <= 1:
            return
        yield from iter_label_utterance_rows(lines[1:], snapshot_format=True)
