"""Structural checks run over a reassembled document before it is persisted."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from .sections import DOCUMENT_TERMINATOR, SCRIPT_TERMINATOR, SectionMap, split_lines

DEFAULT_MAX_LINES = 4000


@dataclass(frozen=True)
class ValidationPolicy:
    """Parameters for :func:`validate_document`."""

    required_markers: tuple[str, ...] = ()
    closing_markers: tuple[str, ...] = (SCRIPT_TERMINATOR, DOCUMENT_TERMINATOR)
    delimiter_bounds: tuple[str, str] = ("<script>", SCRIPT_TERMINATOR)
    delimiters: tuple[str, str] = ("{", "}")
    max_lines: int = DEFAULT_MAX_LINES
    protected_tokens: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.max_lines < 1:
            raise ValueError("max_lines must be at least 1")
        if len(self.delimiters) != 2 or self.delimiters[0] == self.delimiters[1]:
            raise ValueError("delimiters must be two distinct strings")
        object.__setattr__(self, "required_markers", tuple(self.required_markers))
        object.__setattr__(self, "closing_markers", tuple(self.closing_markers))
        object.__setattr__(self, "protected_tokens", tuple(self.protected_tokens))

    @classmethod
    def for_section_map(cls, section_map: SectionMap, **overrides: object) -> "ValidationPolicy":
        return cls(required_markers=tuple(section_map.markers()), **overrides)  # type: ignore[arg-type]

    def protecting(self, tokens: Iterable[str]) -> "ValidationPolicy":
        """Return a copy that also requires ``tokens`` to survive."""

        merged = list(self.protected_tokens)
        merged.extend(token for token in tokens if token not in merged)
        return replace(self, protected_tokens=tuple(merged))


@dataclass(frozen=True)
class ValidationResult:
    """Every violation found in a document. Empty means acceptable."""

    errors: tuple[str, ...] = ()
    line_count: int = 0
    size_exceeded: bool = field(default=False, compare=False)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_document(document: str, policy: ValidationPolicy) -> ValidationResult:
    """Run all checks in ``policy`` against ``document``.

    Checks never short-circuit: every violation is collected so a single report
    shows the full picture.
    """

    errors: list[str] = []

    for marker in policy.closing_markers:
        if marker not in document:
            errors.append(f"Missing {marker} tag")

    for marker in policy.required_markers:
        if marker not in document:
            errors.append(f'Missing section banner: "{marker}"')

    line_count = len(split_lines(document))
    size_exceeded = line_count > policy.max_lines
    if size_exceeded:
        errors.append(f"File too large: {line_count} lines (max {policy.max_lines})")

    balance = delimiter_balance(document, policy.delimiter_bounds, policy.delimiters)
    if balance:
        start, _ = policy.delimiter_bounds
        open_char, _ = policy.delimiters
        sign = "+" if balance > 0 else ""
        errors.append(
            f"{_delimiter_label(open_char)} imbalance in {start}: {sign}{balance}"
        )

    for token in policy.protected_tokens:
        if token not in document:
            errors.append(f'Protected storage key removed or renamed: "{token}"')

    return ValidationResult(
        errors=tuple(errors), line_count=line_count, size_exceeded=size_exceeded
    )


def delimiter_balance(
    document: str,
    bounds: Sequence[str],
    delimiters: Sequence[str],
) -> int:
    """Return opens minus closes inside the first bounded region of ``document``.

    This is a character count, not a parse: delimiters inside strings or
    comments are counted too. Returns ``0`` when the region is absent.
    """

    start_marker, end_marker = bounds
    start = document.find(start_marker)
    if start < 0:
        return 0
    region_start = start + len(start_marker)
    end = document.find(end_marker, region_start)
    if end < 0:
        return 0

    open_char, close_char = delimiters
    region = document[region_start:end]
    return region.count(open_char) - region.count(close_char)


def find_protected_tokens(document: str, candidates: Iterable[str]) -> list[str]:
    """Return the ``candidates`` that currently appear in ``document``."""

    return [token for token in candidates if token and token in document]


def _delimiter_label(open_char: str) -> str:
    return {"{": "Brace", "(": "Parenthesis", "[": "Bracket"}.get(open_char, "Delimiter")


__all__ = [
    "DEFAULT_MAX_LINES",
    "ValidationPolicy",
    "ValidationResult",
    "delimiter_balance",
    "find_protected_tokens",
    "validate_document",
]
