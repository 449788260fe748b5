"""Recording applied mutations in version-control history."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Sequence

from .errors import HistoryRecordError

CommandRunner = Callable[..., "subprocess.CompletedProcess[str]"]


def format_history_entry(version: str, summary: str) -> str:
    """Return the one-line history message ``v<version>: <summary>``."""

    return f"v{version}: {' '.join(summary.split())}"


class HistoryRecorder(ABC):
    """Interface for best-effort change recording."""

    @abstractmethod
    def record(self, version: str, summary: str, paths: Sequence[Path]) -> str:
        """Record the change and return the history message.

        Raises:
            HistoryRecordError: If the change could not be recorded.
        """


class NullHistoryRecorder(HistoryRecorder):
    """Recorder that only formats the message, used when history is disabled."""

    def record(self, version: str, summary: str, paths: Sequence[Path]) -> str:
        return format_history_entry(version, summary)


class GitHistoryRecorder(HistoryRecorder):
    """Stage the written files and commit them with a ``v<version>`` message."""

    def __init__(self, repo_root: Path, *, runner: CommandRunner | None = None) -> None:
        self.repo_root = repo_root
        self._runner = runner or subprocess.run

    def record(self, version: str, summary: str, paths: Sequence[Path]) -> str:
        message = format_history_entry(version, summary)
        relative = [self._relative(path) for path in paths]
        self._git("add", "--", *relative)
        self._git("commit", "-m", message)
        return message

    def _git(self, *args: str) -> None:
        try:
            self._runner(
                ["git", *args],
                cwd=self.repo_root,
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip() or f"exit status {exc.returncode}"
            raise HistoryRecordError(f"git {args[0]} failed: {detail}") from exc
        except OSError as exc:
            raise HistoryRecordError(f"git {args[0]} could not run: {exc}") from exc

    def _relative(self, path: Path) -> str:
        try:
            return str(path.resolve().relative_to(self.repo_root.resolve()))
        except ValueError:
            return str(path)


__all__ = [
    "GitHistoryRecorder",
    "HistoryRecorder",
    "NullHistoryRecorder",
    "format_history_entry",
]
