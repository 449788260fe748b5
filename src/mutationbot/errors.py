"""Exception hierarchy raised by the mutation pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class MutationError(RuntimeError):
    """Base exception for every failure that aborts a mutation run."""


class MissingFileError(MutationError):
    """Raised when a required workspace file does not exist."""

    def __init__(self, name: str, path: Path) -> None:
        super().__init__(f"{name} not found at {path}")
        self.name = name
        self.path = path


class InputReadError(MutationError):
    """Raised when a required workspace file exists but cannot be read as UTF-8 text."""

    def __init__(self, name: str, path: Path, reason: str) -> None:
        super().__init__(f"Could not read {name} at {path}: {reason}")
        self.name = name
        self.path = path


class NoInputContentError(MutationError):
    """Raised when the change request file holds nothing but scaffolding."""


class MissingCredentialError(MutationError):
    """Raised when the collaborator credential is not configured."""


class ConcurrentRunError(MutationError):
    """Raised when another invocation already holds the workspace lock."""


class ServiceCallError(MutationError):
    """Raised when the collaborator call fails at the transport or protocol level."""


class ProposalError(ServiceCallError):
    """Raised when the collaborator answers with a structurally invalid proposal."""


class UnknownIdentifierError(MutationError):
    """Raised when a proposal names a section identifier that is not mapped."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Unknown section name: {identifier}")
        self.identifier = identifier


class SectionNotFoundError(MutationError):
    """Raised when a mapped marker text is absent from the parsed document.

    This is a configuration error: the identifier map and the document have
    drifted apart.
    """

    def __init__(self, identifier: str, marker: str) -> None:
        super().__init__(
            f"Section not found in document: \"{marker}\" (identifier {identifier})"
        )
        self.identifier = identifier
        self.marker = marker


class ValidationError(MutationError):
    """Raised when the patched document violates structural checks."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        summary = "; ".join(self.errors)
        super().__init__(f"Validation failed ({len(self.errors)} error(s)): {summary}")


class WriteError(MutationError):
    """Raised when persisting fails; live files were restored from backups."""

    def __init__(self, message: str, *, restored: Sequence[Path] = ()) -> None:
        super().__init__(message)
        self.restored = list(restored)


class HistoryRecordError(MutationError):
    """Raised when the change could not be recorded in history.

    The orchestrator treats this as non-fatal.
    """


__all__ = [
    "ConcurrentRunError",
    "HistoryRecordError",
    "InputReadError",
    "MissingCredentialError",
    "MissingFileError",
    "MutationError",
    "NoInputContentError",
    "ProposalError",
    "SectionNotFoundError",
    "ServiceCallError",
    "UnknownIdentifierError",
    "ValidationError",
    "WriteError",
]
