"""Configuration for a mutation run, read from environment variables."""

from __future__ import annotations

import hashlib
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .service import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, DEFAULT_TIMEOUT
from .validation import DEFAULT_MAX_LINES
from .versioning import DEFAULT_VERSION_PREFIX

CREDENTIAL_ENV_VAR = "ANTHROPIC_API_KEY"


def _normalise_path(value: str | None) -> Path | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    return Path(trimmed).expanduser()


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _positive_int(value: str | None, *, name: str, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


def _positive_float(value: str | None, *, name: str, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive number of seconds.") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


def _lock_path(root: Path) -> Path:
    digest = hashlib.sha1(str(root.resolve()).encode("utf-8")).hexdigest()[:16]
    return Path(tempfile.gettempdir()) / f"mutation-bot-{digest}.lock"


@dataclass(frozen=True)
class WorkspacePaths:
    """Locations of every file a run reads or writes.

    The run lock lives in the system temp directory, keyed by the resolved
    workspace root, so a preview leaves the workspace untouched.
    """

    root: Path
    ruleset: Path
    reference: Path
    submissions: Path
    document: Path
    archive_dir: Path
    lock_file: Path

    @classmethod
    def under(cls, root: Path) -> "WorkspacePaths":
        return cls(
            root=root,
            ruleset=root / "GAME-DNA.md",
            reference=root / "GAME-REFERENCE.md",
            submissions=root / "submissions.md",
            document=root / "index.html",
            archive_dir=root / "versions",
            lock_file=_lock_path(root),
        )

    def required_inputs(self) -> dict[str, Path]:
        return {
            "dna": self.ruleset,
            "reference": self.reference,
            "submissions": self.submissions,
            "index": self.document,
        }


@dataclass(frozen=True)
class MutationSettings:
    """Explicit configuration threaded through :class:`MutationOrchestrator`.

    Empty environment values are treated as unset. The credential is kept as
    read; whether it is present is checked by the orchestrator so the failure
    surfaces in the right phase.
    """

    paths: WorkspacePaths
    api_key: str | None = field(default=None, repr=False)
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT
    max_lines: int = DEFAULT_MAX_LINES
    version_prefix: str = DEFAULT_VERSION_PREFIX
    protected_tokens: tuple[str, ...] = ()

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        root: Path | None = None,
    ) -> "MutationSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
            root: Workspace directory overriding ``MUTATE_ROOT``.
        """

        source = environ if environ is not None else os.environ

        workspace = root or _normalise_path(source.get("MUTATE_ROOT")) or Path.cwd()
        api_key = source.get(CREDENTIAL_ENV_VAR)
        if api_key is not None:
            api_key = api_key.strip() or None

        protected_raw = source.get("MUTATE_PROTECTED_TOKENS") or ""
        protected = tuple(
            token.strip() for token in protected_raw.split(",") if token.strip()
        )

        return cls(
            paths=WorkspacePaths.under(workspace),
            api_key=api_key,
            model=_normalise_string(source.get("MUTATE_MODEL"), default=DEFAULT_MODEL),
            max_tokens=_positive_int(
                source.get("MUTATE_MAX_TOKENS"),
                name="MUTATE_MAX_TOKENS",
                default=DEFAULT_MAX_TOKENS,
            ),
            timeout=_positive_float(
                source.get("MUTATE_TIMEOUT"),
                name="MUTATE_TIMEOUT",
                default=DEFAULT_TIMEOUT,
            ),
            max_lines=_positive_int(
                source.get("MUTATE_MAX_LINES"),
                name="MUTATE_MAX_LINES",
                default=DEFAULT_MAX_LINES,
            ),
            version_prefix=_normalise_string(
                source.get("MUTATE_VERSION_PREFIX"), default=DEFAULT_VERSION_PREFIX
            ),
            protected_tokens=protected,
        )


__all__ = ["CREDENTIAL_ENV_VAR", "MutationSettings", "WorkspacePaths"]
