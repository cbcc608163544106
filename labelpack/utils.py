"""
Utility functions for the labelpack ingestion engine.
Provides helpers for file I/O, JSON handling, label cleanup and error management.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional, Union

# Type definitions
PathLike = Union[str, Path]

logger = logging.getLogger(__name__)

_SPACE_COMMA_RUN = re.compile(r"[\s,]+")


# ============================================================================
# File I/O Utilities
# ============================================================================

def read_text(
    path: PathLike,
    encodings: tuple[str, ...] = ("utf-8-sig", "latin-1"),
) -> str:
    """
    Read a text file, trying each encoding in order.

    Empty files read as an empty string.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    path = Path(path)
    raw = path.read_bytes()
    if not raw:
        return ""

    for encoding in encodings:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue

    # latin-1 never fails, so this only happens with a custom encoding list
    raise UnicodeDecodeError(encodings[-1], raw, 0, len(raw), f"Could not decode {path}")


def write_json(
    data: Any,
    path: PathLike,
    indent: int = 2,
    ensure_ascii: bool = False,
) -> Path:
    """
    Write data to a JSON file, creating parent directories.

    Returns:
        Path to written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii)

    return path


def write_bytes(data: bytes, path: PathLike) -> Path:
    """Write raw bytes, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def split_input_paths(inputs: Union[str, PathLike, Iterable[PathLike]]) -> list[Path]:
    """
    Normalize a comma-separated input string into a list of paths.

    Accepts a comma-separated string of roots, a single path, or an
    iterable of paths. Blank entries are dropped.
    """
    if isinstance(inputs, Path):
        return [inputs]
    if isinstance(inputs, str):
        entries = [entry.strip() for entry in inputs.split(",")]
        return [Path(entry) for entry in entries if entry]
    return [Path(entry) for entry in inputs]


# ============================================================================
# Label Utilities
# ============================================================================

def clean_label(text: str) -> str:
    """
    Collapse runs of whitespace and commas into a single underscore.

    Used to turn free-text answers into label names, so that a label
    never contains the comma separator of the tabular format.
    """
    return _SPACE_COMMA_RUN.sub("_", text.strip())


# ============================================================================
# Error Handling
# ============================================================================

class LabelpackError(Exception):
    """Base exception for labelpack errors."""
    pass


class UnsupportedFormat(LabelpackError):
    """A file extension is outside the supported set (or reserved)."""

    def __init__(self, path: PathLike, reason: str = ""):
        self.path = Path(path)
        message = f"{self.path} has an unsupported extension"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedRecord(LabelpackError):
    """A record is missing a required field or is structurally invalid."""

    def __init__(
        self,
        message: str,
        record: Any = None,
        path: Optional[PathLike] = None,
    ):
        self.record = record
        self.path = Path(path) if path is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            message = f"{message} (in {self.path})"
        return message


class MalformedEntityRecord(MalformedRecord):
    """An entity annotation lacks a name or numeric offsets."""
    pass


class ParseFailure(LabelpackError):
    """An underlying grammar or schema parser failed on a file."""

    def __init__(self, message: str, path: Optional[PathLike] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class SnapshotError(LabelpackError):
    """A snapshot buffer could not be read or written."""
    pass
