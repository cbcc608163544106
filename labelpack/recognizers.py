"""
Recognizer descriptor documents for dialog runtimes.

Two shapes, picked by whether a target skill is named:

- an in-process recognizer bound to the model folder and the base name's
  snapshot setting, listing entity recognizers for the prebuilt entities;
- an intent trigger that begins a skill invocation instead.

Both come with a multi-language wrapper that maps ``en-us`` and the default
language to the same per-base-name resource file.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Iterable

logger = logging.getLogger(__name__)

# Prebuilt entity name -> entity recognizer kind ("" = no recognizer exists)
PREBUILT_RECOGNIZER_MAP = {
    "age": "Microsoft.AgeEntityRecognizer",
    "datetimev2": "Microsoft.DateTimeEntityRecognizer",
    "datetime": "Microsoft.DateTimeEntityRecognizer",
    "dimension": "Microsoft.DimensionEntityRecognizer",
    "email": "Microsoft.EmailEntityRecognizer",
    "geographyv2": "",
    "keyphrase": "",
    "money": "Microsoft.CurrencyEntityRecognizer",
    "number": "Microsoft.NumberEntityRecognizer",
    "ordinal": "Microsoft.OrdinalEntityRecognizer",
    "ordinalv2": "Microsoft.OrdinalEntityRecognizer",
    "percentage": "Microsoft.PercentageEntityRecognizer",
    "personname": "",
    "phonenumber": "Microsoft.PhoneNumberEntityRecognizer",
    "temperature": "Microsoft.TemperatureEntityRecognizer",
    "url": "Microsoft.UrlEntityRecognizer",
}

ORCHESTRATOR_RECOGNIZER_KIND = "Microsoft.OrchestratorRecognizer"
MULTI_LANGUAGE_RECOGNIZER_KIND = "Microsoft.MultiLanguageRecognizer"
DEFAULT_LANGUAGE = "en-us"


@dataclass
class RecognizerDocuments:
    orchestrator_recognizer: dict[str, Any]
    multi_language_recognizer: dict[str, Any]


def recognizers_for_prebuilt(prebuilt_names: Iterable[str]) -> list[dict[str, str]]:
    """Entity recognizer entries for the given prebuilt entity names."""
    recognizers = []
    for name in prebuilt_names:
        kind = PREBUILT_RECOGNIZER_MAP.get(name.lower().strip())
        if kind:
            recognizers.append({"$kind": kind})
        else:
            logger.warning(f"No entity recognizer available for prebuilt entity '{name}'")
    return recognizers


def designer_id(*parts: str) -> str:
    """Stable 6-character id for authoring tools."""
    return hashlib.sha1(":".join(parts).encode("utf-8")).hexdigest()[:6]


def build_recognizer_documents(
    base_name: str,
    recognizers: list[dict[str, str]] | None = None,
    routing_name: str = "",
    skill_name: str = "",
) -> RecognizerDocuments:
    """
    Build the recognizer descriptor and its multi-language wrapper.

    Args:
        base_name: Logical name of the snapshot
        recognizers: Entity recognizer entries
        routing_name: Intent that triggers the skill (defaults to base_name)
        skill_name: Target skill; empty for in-process recognition
    """
    if not skill_name:
        recognizer: dict[str, Any] = {
            "$kind": ORCHESTRATOR_RECOGNIZER_KIND,
            "modelFolder": "=settings.orchestrator.modelPath",
            "snapshotFile": f"=settings.orchestrator.snapshots.{base_name}",
            "entityRecognizers": list(recognizers or []),
        }
    else:
        intent = routing_name or base_name
        recognizer = {
            "$kind": "Microsoft.OnIntent",
            "$designer": {"id": designer_id(intent), "name": intent},
            "intent": intent,
            "actions": [
                {
                    "$kind": "Microsoft.BeginSkill",
                    "$designer": {"id": designer_id(intent, skill_name)},
                    "activityProcessed": True,
                    "botId": "=settings.MicrosoftAppId",
                    "skillHostEndpoint": "=settings.skillHostEndpoint",
                    "connectionName": "=settings.connectionName",
                    "allowInterruptions": True,
                    "skillEndpoint": f"=settings.skill['{skill_name}'].endpointUrl",
                    "skillAppId": f"=settings.skill['{skill_name}'].msAppId",
                }
            ],
        }

    resource = f"{base_name}.{DEFAULT_LANGUAGE}.lu"
    multi_language = {
        "$kind": MULTI_LANGUAGE_RECOGNIZER_KIND,
        "recognizers": {DEFAULT_LANGUAGE: resource, "": resource},
    }
    return RecognizerDocuments(recognizer, multi_language)
