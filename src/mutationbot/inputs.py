"""Reading the workspace files a mutation run starts from."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .errors import InputReadError, MissingFileError, NoInputContentError
from .settings import WorkspacePaths

_SCAFFOLDING_PREFIXES = ("#", "<!--")


@dataclass(frozen=True)
class MutationInputs:
    ruleset: str
    reference: str
    change_requests: str
    document: str
    change_request_count: int


def count_change_requests(text: str) -> int:
    """Count request lines, ignoring blanks, headings, and HTML comments."""

    return len(list(_request_lines(text.split("\n"))))


def _request_lines(lines: Iterable[str]) -> Iterable[str]:
    for line in lines:
        if not line.strip():
            continue
        if line.startswith(_SCAFFOLDING_PREFIXES):
            continue
        yield line


def _read(name: str, path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputReadError(name, path, str(exc)) from exc


def load_inputs(paths: WorkspacePaths) -> MutationInputs:
    """Read every input file, failing before any other work if one is unusable.

    Raises:
        MissingFileError: If a required file does not exist.
        InputReadError: If a file cannot be read or is not valid UTF-8.
        NoInputContentError: If the submissions file holds no requests.
    """

    for name, path in paths.required_inputs().items():
        if not path.is_file():
            raise MissingFileError(name, path)

    change_requests = _read("submissions", paths.submissions)
    count = count_change_requests(change_requests)
    if count == 0:
        raise NoInputContentError(
            f"No submissions found in {paths.submissions.name}. "
            "Add player submissions (one per line) and run again."
        )

    return MutationInputs(
        ruleset=_read("dna", paths.ruleset),
        reference=_read("reference", paths.reference),
        change_requests=change_requests,
        document=_read("index", paths.document),
        change_request_count=count,
    )


__all__ = ["MutationInputs", "count_change_requests", "load_inputs"]
