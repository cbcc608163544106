"""
Format extractors.

Each extractor reads one family of source files and yields normalized
LabeledExample / ScoredExample tuples for the aggregator.
"""
from .base import Extracted, ExtractionContext, Extractor
from .json_variants import DecodedJson, JsonExtractor, JsonVariant, decode_json_variant
from .markup import MarkupExtractor
from .qna import QnaExtractor
from .registry import (
    RESERVED_EXTENSIONS,
    ExtractorRegistry,
    create_default_registry,
    get_registry,
)
from .tabular import QnaTabularExtractor, SnapshotTabularExtractor, TabularExtractor

__all__ = [
    "Extracted",
    "ExtractionContext",
    "Extractor",
    "DecodedJson",
    "JsonExtractor",
    "JsonVariant",
    "decode_json_variant",
    "MarkupExtractor",
    "QnaExtractor",
    "RESERVED_EXTENSIONS",
    "ExtractorRegistry",
    "create_default_registry",
    "get_registry",
    "QnaTabularExtractor",
    "SnapshotTabularExtractor",
    "TabularExtractor",
]
