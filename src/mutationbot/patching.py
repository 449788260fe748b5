"""Whole-body section replacement and document reassembly."""

from __future__ import annotations

import re
from typing import Iterable, Protocol

from .errors import ProposalError, SectionNotFoundError
from .sections import (
    SCRIPT_TERMINATOR,
    SECTION_BANNER_RE,
    ParsedDocument,
    Section,
    SectionMap,
    parse_sections,
    reassemble,
    split_lines,
)


class SectionReplacement(Protocol):
    """Anything carrying a section identifier and its complete new body."""

    section_name: str
    content: str


def apply_section_changes(
    parsed: ParsedDocument,
    section_map: SectionMap,
    changes: Iterable[SectionReplacement],
) -> ParsedDocument:
    """Return a copy of ``parsed`` with the referenced section bodies replaced.

    Each change overwrites the full body of its section; untouched sections
    keep their original lines and every section keeps its position.

    Raises:
        UnknownIdentifierError: If a change names an identifier missing from
            ``section_map``.
        SectionNotFoundError: If the mapped marker text is not a section of
            ``parsed``.
        ProposalError: If two changes target the same identifier.
    """

    replacements: dict[str, list[str]] = {}
    seen: set[str] = set()
    for change in changes:
        identifier = str(change.section_name)
        if identifier in seen:
            raise ProposalError(f"Section '{identifier}' is changed more than once")
        seen.add(identifier)

        marker = section_map.resolve(identifier)
        if parsed.find(marker) is None:
            raise SectionNotFoundError(identifier, marker)
        replacements[marker] = split_lines(change.content)

    if not replacements:
        return parsed

    updated: list[Section] = []
    for section in parsed.sections:
        body = replacements.pop(section.name, None)
        updated.append(section if body is None else section.with_body(body))
    return parsed.with_sections(updated)


def patch_document(
    document: str,
    section_map: SectionMap,
    changes: Iterable[SectionReplacement],
    *,
    marker_pattern: re.Pattern[str] = SECTION_BANNER_RE,
    terminal_marker: str = SCRIPT_TERMINATOR,
) -> str:
    """Parse ``document``, apply ``changes``, and return the reassembled text."""

    parsed = parse_sections(
        document,
        marker_pattern=marker_pattern,
        terminal_marker=terminal_marker,
    )
    return reassemble(apply_section_changes(parsed, section_map, changes))


__all__ = ["SectionReplacement", "apply_section_changes", "patch_document"]
