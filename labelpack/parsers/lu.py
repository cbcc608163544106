"""
Built-in grammar for `.lu` utterance markup.

Supported subset:

    > comment
    @ prebuilt number, datetimeV2
    # BookFlight
    - book a flight to {city=Paris}
    - fly to {@destination={city=Lyon} in {country=France}}
    - [more examples](./shared/travel.lu)
    - [one intent only](./shared/travel.lu#CancelFlight)

The output mirrors a LUIS application export:

    {
        "intents": [{"name": "BookFlight"}],
        "utterances": [
            {"text": "...", "intent": "BookFlight",
             "entities": [{"entity": "city", "startPos": 17, "endPos": 21}]},
        ],
        "prebuiltEntities": [{"name": "number"}],
    }

Entity offsets are inclusive positions in the label-free utterance text.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .base import GrammarError, ReferenceResolver

logger = logging.getLogger(__name__)

_INTENT_HEADER = re.compile(r"^#+\s*(?P<name>[^?\s#].*?)\s*$")
_QNA_HEADER = re.compile(r"^#+\s*\?")
_REFERENCE = re.compile(r"^(?:[-*+]\s+)?\[(?P<label>[^\]]*)\]\((?P<target>[^)]+)\)\s*$")
_UTTERANCE = re.compile(r"^[-*+]\s+(?P<text>.*\S)\s*$")
_ENTITY_DEFINITION = re.compile(r"^@\s*(?P<kind>[\w.\-]+)\s+(?P<rest>.+?)\s*$")
_DEFINITION_MODIFIERS = re.compile(r"\s+(?:hasRoles?|usesFeatures?)\s+", re.IGNORECASE)
_ENTITY_OPEN = re.compile(r"\{@?\s*(?P<name>[^\s{}=]+)\s*=\s*")

# Fragment selecting every utterance of a referenced file
_ALL_UTTERANCES = "*utterances*"


@dataclass
class _OpenEntity:
    name: str
    start: int
    children: list[dict[str, Any]] = field(default_factory=list)


def parse_labeled_utterance(raw: str) -> tuple[str, list[dict[str, Any]]]:
    """
    Strip inline entity labels from an utterance.

    Returns:
        Tuple of (plain text, entity trees with startPos/endPos/children)

    Raises:
        ValueError: If an entity label is never closed
    """
    text: list[str] = []
    stack: list[_OpenEntity] = []
    roots: list[dict[str, Any]] = []
    i = 0

    while i < len(raw):
        char = raw[i]

        if char == "\\" and i + 1 < len(raw):
            text.append(raw[i + 1])
            i += 2
            continue

        if char == "{":
            match = _ENTITY_OPEN.match(raw, i)
            if match:
                stack.append(_OpenEntity(name=match.group("name"), start=len(text)))
                i = match.end()
                continue

        if char == "}" and stack:
            entity = stack.pop()
            node: dict[str, Any] = {
                "entity": entity.name,
                "startPos": entity.start,
                "endPos": len(text) - 1,
            }
            if entity.children:
                node["children"] = entity.children
            (stack[-1].children if stack else roots).append(node)
            i += 1
            continue

        text.append(char)
        i += 1

    if stack:
        raise ValueError(f"Unclosed entity label '{stack[-1].name}'")

    return "".join(text), roots


class LuParser:
    """Parses `.lu` markup into the LUIS application shape."""

    name = "lu"

    def parse(
        self,
        content: str,
        source_id: str = "",
        resolve: Optional[ReferenceResolver] = None,
    ) -> dict[str, Any]:
        """
        Parse markup content, pulling in referenced files through ``resolve``.

        Raises:
            GrammarError: On malformed markup or an unresolvable reference
        """
        return self._parse(content, source_id, resolve, (source_id,))

    def _parse(
        self,
        content: str,
        source_id: str,
        resolve: Optional[ReferenceResolver],
        ancestors: tuple[str, ...],
    ) -> dict[str, Any]:
        intents: dict[str, None] = {}
        utterances: list[dict[str, Any]] = []
        prebuilt: dict[str, None] = {}
        current_intent: Optional[str] = None
        in_fence = False
        in_qna = False

        for line_number, line in enumerate(content.splitlines(), start=1):
            stripped = line.strip()

            if stripped.startswith("```"):
                in_fence = not in_fence
                continue
            if in_fence or not stripped or stripped.startswith(">"):
                continue

            if _QNA_HEADER.match(stripped):
                in_qna = True
                current_intent = None
                continue

            header = _INTENT_HEADER.match(stripped)
            if header:
                in_qna = False
                current_intent = header.group("name")
                intents.setdefault(current_intent, None)
                continue

            definition = _ENTITY_DEFINITION.match(stripped)
            if definition:
                if definition.group("kind").lower() == "prebuilt":
                    names = _DEFINITION_MODIFIERS.split(definition.group("rest"))[0]
                    for entity_name in names.split(","):
                        if entity_name.strip():
                            prebuilt.setdefault(entity_name.strip(), None)
                continue

            if in_qna:
                continue

            reference = _REFERENCE.match(stripped)
            if reference:
                imported = self._parse_reference(
                    reference.group("target").strip(), source_id, resolve, line_number, ancestors
                )
                for utterance in imported["utterances"]:
                    intents.setdefault(utterance["intent"], None)
                    utterances.append(utterance)
                for entry in imported["prebuiltEntities"]:
                    prebuilt.setdefault(entry["name"], None)
                continue

            utterance_line = _UTTERANCE.match(stripped)
            if utterance_line:
                if current_intent is None:
                    raise GrammarError("Utterance outside of an intent section", line_number, source_id)
                try:
                    text, entities = parse_labeled_utterance(utterance_line.group("text"))
                except ValueError as e:
                    raise GrammarError(str(e), line_number, source_id) from e
                utterances.append({
                    "text": text.rstrip(),
                    "intent": current_intent,
                    "entities": entities,
                })
                continue

            logger.debug(f"Ignoring unrecognized line {line_number} in {source_id or '<content>'}: {stripped}")

        return {
            "intents": [{"name": name} for name in intents],
            "utterances": utterances,
            "prebuiltEntities": [{"name": name} for name in prebuilt],
        }

    def _parse_reference(
        self,
        target: str,
        source_id: str,
        resolve: Optional[ReferenceResolver],
        line_number: int,
        ancestors: tuple[str, ...],
    ) -> dict[str, Any]:
        file_part, _, fragment = target.partition("#")
        if resolve is None:
            raise GrammarError(f"Cannot resolve reference '{target}' without a resolver", line_number, source_id)

        utterances: list[dict[str, Any]] = []
        prebuilt: list[dict[str, Any]] = []
        for document in resolve(source_id, [file_part]):
            if document.id in ancestors:
                logger.debug(f"Skipping cyclic reference '{target}' from {source_id}")
                continue
            logger.debug(f"Resolved reference '{target}' from {source_id} to {document.id}")
            parsed = self._parse(document.content, document.id, resolve, ancestors + (document.id,))
            selected = parsed["utterances"]
            if fragment and fragment != _ALL_UTTERANCES:
                selected = [u for u in selected if u["intent"] == fragment]
            utterances.extend(selected)
            prebuilt.extend(parsed["prebuiltEntities"])

        return {"utterances": utterances, "prebuiltEntities": prebuilt}
