"""Locate, rewrite, and classify the version watermark of a document."""

from __future__ import annotations

import re
from enum import Enum

DEFAULT_VERSION_PREFIX = "Arena Survivor v"
BASELINE_VERSION = "0.00"

_VERSION_TEXT_RE = re.compile(r"^\d+(?:\.\d+)+$")


class VersionClass(str, Enum):
    """Significance of a mutation, deciding whether the old document is archived."""

    MAJOR = "MAJOR"
    MINOR = "MINOR"


def extract_version(
    document: str,
    prefix: str = DEFAULT_VERSION_PREFIX,
    *,
    default: str = BASELINE_VERSION,
) -> str:
    """Return the first ``<prefix><major>.<minor>`` version found in ``document``.

    Falls back to ``default`` when the label is absent.
    """

    match = re.search(re.escape(prefix) + r"(\d+\.\d+)", document)
    return match.group(1) if match else default


def rewrite_version(
    document: str, new_version: str, prefix: str = DEFAULT_VERSION_PREFIX
) -> str:
    """Replace every labelled version in ``document`` with ``new_version``.

    The label is watermarked in several places (page title, on-canvas text);
    all of them are rewritten so none is left stale.
    """

    version = validate_version_text(new_version)
    return re.sub(
        re.escape(prefix) + r"[\d.]+",
        lambda _match: f"{prefix}{version}",
        document,
    )


def count_version_labels(document: str, prefix: str = DEFAULT_VERSION_PREFIX) -> int:
    return len(re.findall(re.escape(prefix) + r"[\d.]+", document))


def should_archive(version_class: VersionClass | str) -> bool:
    return VersionClass(version_class) is VersionClass.MAJOR


def validate_version_text(value: str) -> str:
    """Ensure ``value`` is a dotted numeric version such as ``0.02``."""

    if not isinstance(value, str):
        raise TypeError(f"version must be a string, got {type(value)!r}")
    stripped = value.strip()
    if stripped.lower().startswith("v"):
        stripped = stripped[1:]
    if not _VERSION_TEXT_RE.match(stripped):
        raise ValueError(f"version must be a dotted number such as '0.02', got {value!r}")
    return stripped


__all__ = [
    "BASELINE_VERSION",
    "DEFAULT_VERSION_PREFIX",
    "VersionClass",
    "count_version_labels",
    "extract_version",
    "rewrite_version",
    "should_archive",
    "validate_version_text",
]
