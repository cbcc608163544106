"""
Label aggregation - folds extractor output into the canonical maps.

The aggregator is the only writer of an IngestionResult. It must be driven
from a single thread of control: duplicate detection depends on the order in
which labels for one utterance are observed.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from .labels import (
    EntityLabel,
    EntityScore,
    IngestionResult,
    IntentScore,
    LabeledExample,
    LabelType,
    ScoredExample,
)
from .utils import MalformedEntityRecord, MalformedRecord

logger = logging.getLogger(__name__)

# Nesting deeper than this is treated as a malformed (or cyclic) tree.
MAX_ENTITY_DEPTH = 64


def _coerce_offset(value: Any) -> Optional[int]:
    """Return an integer offset, or None when the value isn't numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


class LabelAggregator:
    """
    Merges utterances and their intent/entity labels, recording conflicts.

    Usage:
        aggregator = LabelAggregator()
        aggregator.add_label("book a flight", "BookFlight")
        aggregator.add_label("book a flight", "CancelFlight")
        aggregator.result.utterance_label_duplicates
        # {"book a flight": ["CancelFlight"]}
    """

    def __init__(self, result: Optional[IngestionResult] = None):
        self.result = result if result is not None else IngestionResult()

    # ------------------------------------------------------------------
    # Intent labels
    # ------------------------------------------------------------------

    def add_label(self, utterance: str, label: str, hierarchical_label: str = "") -> bool:
        """
        Add a label to an utterance.

        With a non-empty ``hierarchical_label`` the override is inserted
        instead of ``label``. Re-adding a present label is a no-op. Once an
        utterance has a label, every further distinct label is added and
        also recorded in the duplicate map.

        Returns:
            True if the label set changed
        """
        candidate = hierarchical_label if hierarchical_label else label
        if not candidate:
            raise MalformedRecord(
                f"Empty label for utterance '{utterance}'",
                record={"utterance": utterance, "label": label},
            )

        existing = self.result.utterance_labels.setdefault(utterance, [])
        if candidate in existing:
            return False

        if existing:
            duplicates = self.result.utterance_label_duplicates.setdefault(utterance, [])
            if candidate not in duplicates:
                duplicates.append(candidate)
            logger.debug(f"Utterance '{utterance}' has multiple labels, flagged '{candidate}'")

        existing.append(candidate)
        return True

    # ------------------------------------------------------------------
    # Entity labels
    # ------------------------------------------------------------------

    def add_entity_label(self, utterance: str, entity_tree: Any, name_prefix: str = "") -> None:
        """
        Flatten a nested entity annotation into the utterance's entity list.

        Nodes are visited depth-first in source order; a child's name is
        prefixed by its parent's effective name (``parent:child``). Every
        node is validated before its children are visited.

        Raises:
            MalformedEntityRecord: If a node lacks a name or numeric offsets,
                or the tree is nested deeper than MAX_ENTITY_DEPTH
        """
        stack: list[tuple[Any, str, int]] = [(entity_tree, name_prefix, 0)]

        while stack:
            node, prefix, depth = stack.pop()
            if depth > MAX_ENTITY_DEPTH:
                raise MalformedEntityRecord(
                    f"Entity tree for utterance '{utterance}' is nested deeper than {MAX_ENTITY_DEPTH} levels",
                    record=entity_tree,
                )

            entity_label = self._entity_label_from_node(utterance, node, prefix)
            self._add_unique_entity_label(utterance, entity_label)

            children = node.get("children") or []
            if not isinstance(children, list):
                raise MalformedEntityRecord(
                    f"Entity '{entity_label.name}' has non-list children",
                    record=node,
                )
            # Reversed so the first child is popped first
            for child in reversed(children):
                stack.append((child, entity_label.name, depth + 1))

    def add_entity_label_object(self, utterance: str, entity_label: EntityLabel) -> bool:
        """
        Add a pre-built entity label, routing structural duplicates.

        Returns:
            True if the label was appended
        """
        if not entity_label.name or entity_label.label_type is None:
            raise MalformedEntityRecord(
                f"Entity label for utterance '{utterance}' has no name or label type",
                record=entity_label,
            )
        if _coerce_offset(entity_label.start_offset) is None or _coerce_offset(entity_label.end_offset) is None:
            raise MalformedEntityRecord(
                f"Entity label '{entity_label.name}' has non-numeric offsets",
                record=entity_label,
            )
        return self._add_unique_entity_label(utterance, entity_label)

    def _entity_label_from_node(self, utterance: str, node: Any, prefix: str) -> EntityLabel:
        if not isinstance(node, Mapping):
            raise MalformedEntityRecord(
                f"Entity annotation for utterance '{utterance}' is not an object",
                record=node,
            )

        name = node.get("entity")
        start = _coerce_offset(node.get("startPos"))
        end = _coerce_offset(node.get("endPos"))
        if not isinstance(name, str) or not name.strip() or start is None or end is None:
            raise MalformedEntityRecord(
                f"Malformed entity annotation name='{name}', startPos='{node.get('startPos')}', "
                f"endPos='{node.get('endPos')}' for utterance '{utterance}'",
                record=dict(node),
            )

        name = name.strip()
        if prefix:
            name = f"{prefix}:{name}"
        return EntityLabel(name, start, end, LabelType.ENTITY)

    def _add_unique_entity_label(self, utterance: str, entity_label: EntityLabel) -> bool:
        existing = self.result.utterance_entity_labels.get(utterance)
        if not existing:
            self.result.utterance_entity_labels[utterance] = [entity_label]
            return True

        if entity_label in existing:
            duplicates = self.result.utterance_entity_label_duplicates.setdefault(utterance, [])
            if entity_label not in duplicates:
                duplicates.append(entity_label)
            logger.debug(f"Duplicate entity label {entity_label} for utterance '{utterance}'")
            return False

        existing.append(entity_label)
        return True

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def add_scores(
        self,
        utterance: str,
        intent_scores: Optional[list[IntentScore]] = None,
        entity_scores: Optional[list[EntityScore]] = None,
    ) -> None:
        """Record evaluation scores; never touches the label maps."""
        if intent_scores is not None:
            self.result.utterance_label_scores[utterance] = list(intent_scores)
        if entity_scores is not None:
            self.result.utterance_entity_label_scores[utterance] = list(entity_scores)

    # ------------------------------------------------------------------
    # Folding extractor output
    # ------------------------------------------------------------------

    def fold(self, example: Union[LabeledExample, ScoredExample], hierarchical_label: str = "") -> None:
        """Fold one extractor tuple into the maps."""
        if isinstance(example, ScoredExample):
            self.add_scores(example.utterance, example.intent_scores, example.entity_scores)
            return

        for label in example.labels:
            self.add_label(example.utterance, label, hierarchical_label)
        for entity_tree in example.entity_trees:
            self.add_entity_label(example.utterance, entity_tree)
        for entity_label in example.entity_labels:
            self.add_entity_label_object(example.utterance, entity_label)
