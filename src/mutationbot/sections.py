"""Section identifiers, marker parsing, and document reassembly."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Sequence

from .errors import UnknownIdentifierError

SECTION_BANNER_RE = re.compile(r"^\s*// =+ (.+?) =+\s*$")
"""Matches banner lines such as ``// ===== PLAYER UPDATE =====``."""

SCRIPT_TERMINATOR = "</script>"
DOCUMENT_TERMINATOR = "</html>"


class SectionId(str, Enum):
    """Caller-facing section identifiers, stable across document revisions."""

    CONFIG = "CONFIG"
    SKETCH_HELPERS = "SKETCH_HELPERS"
    CANVAS = "CANVAS"
    STATE = "STATE"
    INPUT = "INPUT"
    UPGRADES = "UPGRADES"
    PLAYER_UPDATE = "PLAYER_UPDATE"
    ENEMIES = "ENEMIES"
    PROJECTILES = "PROJECTILES"
    KILL_XP = "KILL_XP"
    PARTICLES = "PARTICLES"
    DRAW = "DRAW"
    HUD = "HUD"
    GAME_OVER = "GAME_OVER"
    AUDIO = "AUDIO"
    DEXSCREENER_GROWTH = "DEXSCREENER_GROWTH"
    GAME_LOOP = "GAME_LOOP"
    START_RESTART = "START_RESTART"
    INIT = "INIT"

    @property
    def marker(self) -> str:
        """Return the literal banner text for this identifier."""

        return _SECTION_MARKERS[self]


_SECTION_MARKERS: Mapping[SectionId, str] = MappingProxyType(
    {
        SectionId.CONFIG: "CONFIG",
        SectionId.SKETCH_HELPERS: "SKETCH HELPERS",
        SectionId.CANVAS: "CANVAS",
        SectionId.STATE: "STATE",
        SectionId.INPUT: "INPUT",
        SectionId.UPGRADES: "UPGRADES",
        SectionId.PLAYER_UPDATE: "PLAYER UPDATE",
        SectionId.ENEMIES: "ENEMIES",
        SectionId.PROJECTILES: "PROJECTILES",
        SectionId.KILL_XP: "KILL / XP",
        SectionId.PARTICLES: "PARTICLES",
        SectionId.DRAW: "DRAW",
        SectionId.HUD: "HUD",
        SectionId.GAME_OVER: "GAME OVER",
        SectionId.AUDIO: "AUDIO",
        SectionId.DEXSCREENER_GROWTH: "DEXSCREENER + GROWTH SYSTEM",
        SectionId.GAME_LOOP: "GAME LOOP",
        SectionId.START_RESTART: "START / RESTART",
        SectionId.INIT: "INIT",
    }
)

_unmapped = [member.value for member in SectionId if member not in _SECTION_MARKERS]
if _unmapped:  # pragma: no cover - guards edits to the tables above
    raise RuntimeError(f"Section identifiers without marker text: {_unmapped}")


def _require_text(value: str, *, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string, got {type(value)!r}")
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must be a non-empty string")
    return stripped


class SectionMap(Mapping[str, str]):
    """Bijection from caller-facing identifiers to literal marker text."""

    def __init__(self, entries: Mapping[str, str]) -> None:
        if not isinstance(entries, Mapping):
            raise TypeError("entries must be a mapping of identifier to marker text")
        data: dict[str, str] = {}
        seen_markers: dict[str, str] = {}
        for identifier, marker in entries.items():
            key = _require_text(identifier, field_name="section identifier")
            text = _require_text(marker, field_name=f"marker for '{key}'")
            if text in seen_markers:
                raise ValueError(
                    f"Marker '{text}' is mapped by both '{seen_markers[text]}' and '{key}'"
                )
            seen_markers[text] = key
            data[key] = text
        if not data:
            raise ValueError("SectionMap requires at least one entry")
        self._entries: Mapping[str, str] = MappingProxyType(data)

    @classmethod
    def from_enum(cls) -> "SectionMap":
        """Build the map from :class:`SectionId` and its marker table."""

        return cls({member.value: member.marker for member in SectionId})

    def __getitem__(self, identifier: str) -> str:
        return self._entries[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, identifier: str) -> str:
        """Return the marker text for ``identifier``.

        Raises:
            UnknownIdentifierError: If ``identifier`` is not mapped.
        """

        key = identifier.value if isinstance(identifier, SectionId) else identifier
        try:
            return self._entries[key]
        except KeyError as exc:
            raise UnknownIdentifierError(str(identifier)) from exc

    def identifiers(self) -> list[str]:
        return list(self._entries.keys())

    def markers(self) -> list[str]:
        return list(self._entries.values())


DEFAULT_SECTION_MAP = SectionMap.from_enum()


@dataclass(frozen=True)
class Section:
    """A banner line together with the body lines that follow it."""

    marker_line: str
    name: str
    body: tuple[str, ...] = ()

    def with_body(self, body: Iterable[str]) -> "Section":
        return replace(self, body=tuple(body))

    def lines(self) -> list[str]:
        return [self.marker_line, *self.body]


@dataclass(frozen=True)
class ParsedDocument:
    """Result of splitting a document into preamble, sections, and postamble."""

    preamble: tuple[str, ...] = ()
    sections: tuple[Section, ...] = ()
    postamble: tuple[str, ...] = ()
    terminated: bool = field(default=False, compare=False)

    def find(self, name: str) -> Section | None:
        """Return the first section whose banner text equals ``name``."""

        for section in self.sections:
            if section.name == name:
                return section
        return None

    def section_names(self) -> list[str]:
        return [section.name for section in self.sections]

    def with_sections(self, sections: Iterable[Section]) -> "ParsedDocument":
        return replace(self, sections=tuple(sections))


def split_lines(text: str) -> list[str]:
    """Split ``text`` into lines so that :func:`join_lines` restores it exactly."""

    return text.split("\n")


def join_lines(lines: Iterable[str]) -> str:
    return "\n".join(lines)


def parse_sections(
    document: str | Sequence[str],
    *,
    marker_pattern: re.Pattern[str] = SECTION_BANNER_RE,
    terminal_marker: str = SCRIPT_TERMINATOR,
) -> ParsedDocument:
    """Split ``document`` into a preamble, named sections, and a postamble.

    A line matching ``marker_pattern`` opens a new section named after the
    pattern's first group, whether or not that name is mapped. The first line
    equal to ``terminal_marker`` (ignoring surrounding whitespace) inside a
    section closes it; that line and everything after it form the postamble.

    Parsing never fails. Without any marker the whole document is preamble;
    without a terminal line the last section simply runs to the end and
    ``terminated`` is ``False``.
    """

    lines = split_lines(document) if isinstance(document, str) else list(document)
    terminal = terminal_marker.strip()

    preamble: list[str] = []
    sections: list[Section] = []
    postamble: list[str] = []
    current: tuple[str, str, list[str]] | None = None
    terminated = False

    for index, line in enumerate(lines):
        name = _banner_name(line, marker_pattern)
        if name is not None:
            if current is not None:
                sections.append(_close(current))
            current = (line, name, [])
            continue

        if current is None:
            preamble.append(line)
            continue

        if line.strip() == terminal:
            sections.append(_close(current))
            current = None
            postamble = lines[index:]
            terminated = True
            break

        current[2].append(line)

    if current is not None:
        sections.append(_close(current))

    return ParsedDocument(
        preamble=tuple(preamble),
        sections=tuple(sections),
        postamble=tuple(postamble),
        terminated=terminated,
    )


def reassemble_lines(parsed: ParsedDocument) -> list[str]:
    """Concatenate preamble, every section in order, and postamble."""

    lines: list[str] = list(parsed.preamble)
    for section in parsed.sections:
        lines.extend(section.lines())
    lines.extend(parsed.postamble)
    return lines


def reassemble(parsed: ParsedDocument) -> str:
    return join_lines(reassemble_lines(parsed))


def _banner_name(
    line: str,
    marker_pattern: re.Pattern[str],
) -> str | None:
    match = marker_pattern.match(line)
    return None if match is None else match.group(1)


def _close(current: tuple[str, str, list[str]]) -> Section:
    marker_line, name, body = current
    return Section(marker_line=marker_line, name=name, body=tuple(body))


__all__ = [
    "DEFAULT_SECTION_MAP",
    "DOCUMENT_TERMINATOR",
    "ParsedDocument",
    "SCRIPT_TERMINATOR",
    "SECTION_BANNER_RE",
    "Section",
    "SectionId",
    "SectionMap",
    "join_lines",
    "parse_sections",
    "reassemble",
    "reassemble_lines",
    "split_lines",
]
