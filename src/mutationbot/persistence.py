"""Archive snapshots and backup-protected writes of the live documents."""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from .errors import WriteError
from .versioning import validate_version_text

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"

FileWriter = Callable[[Path, str], None]


class ArchiveStore(ABC):
    """Interface describing where pre-mutation snapshots are kept."""

    @abstractmethod
    def save(self, version: str, content: str) -> str:
        """Store ``content`` under ``version`` and return a display location."""

    @abstractmethod
    def load(self, version: str) -> str:
        """Return the snapshot archived under ``version``.

        Raises:
            KeyError: If no snapshot exists for ``version``.
        """

    @abstractmethod
    def list_versions(self) -> List[str]:
        """Return every archived version key."""


class InMemoryArchiveStore(ArchiveStore):
    """Keep archived snapshots in local process memory."""

    def __init__(self) -> None:
        self._snapshots: Dict[str, str] = {}

    def save(self, version: str, content: str) -> str:
        key = validate_version_text(version)
        self._snapshots[key] = content
        return f"memory:v{key}"

    def load(self, version: str) -> str:
        key = validate_version_text(version)
        try:
            return self._snapshots[key]
        except KeyError as exc:
            raise KeyError(f"No archive for version '{version}'") from exc

    def list_versions(self) -> List[str]:
        return sorted(self._snapshots.keys())


class DirectoryArchiveStore(ArchiveStore):
    """Persist snapshots as ``v<version><suffix>`` files in a directory."""

    def __init__(self, archive_dir: Path, *, suffix: str = ".html") -> None:
        self.archive_dir = archive_dir
        self.suffix = suffix

    def save(self, version: str, content: str) -> str:
        self.archive_dir.mkdir(parents=True, exist_ok=True)
        archive_path = self._archive_path(version)
        try:
            archive_path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise WriteError(f"Failed to archive {archive_path}: {exc}") from exc
        return str(archive_path)

    def load(self, version: str) -> str:
        archive_path = self._archive_path(version)
        if not archive_path.exists():
            raise KeyError(f"No archive for version '{version}'")
        return archive_path.read_text(encoding="utf-8")

    def list_versions(self) -> List[str]:
        if not self.archive_dir.is_dir():
            return []
        return sorted(
            path.stem[1:]
            for path in self.archive_dir.glob(f"v*{self.suffix}")
            if path.is_file()
        )

    def _archive_path(self, version: str) -> Path:
        key = validate_version_text(version)
        return self.archive_dir / f"v{key}{self.suffix}"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def _write_text(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def write_files_with_backup(
    writes: Sequence[tuple[Path, str]],
    *,
    writer: FileWriter = _write_text,
) -> List[Path]:
    """Write every ``(path, content)`` pair, restoring all of them on failure.

    Existing targets are copied to ``<name>.bak`` first. If any write fails,
    each target is restored from its backup (or removed if it did not exist)
    and :class:`WriteError` is raised. Content that cannot be encoded counts as
    a failed write. Backups are deleted once every write succeeded, so a crash
    mid-write leaves the ``.bak`` copies behind.
    """

    backups: Dict[Path, Path | None] = {}
    try:
        for path, _ in writes:
            if path.exists():
                backup = backup_path(path)
                shutil.copy2(path, backup)
                backups[path] = backup
            else:
                backups[path] = None
    except OSError as exc:
        _discard_backups(backups)
        raise WriteError(f"Failed to back up files before writing: {exc}") from exc

    written: List[Path] = []
    try:
        for path, content in writes:
            writer(path, content)
            written.append(path)
    except (OSError, ValueError) as exc:
        restored = _restore_backups(backups)
        raise WriteError(
            f"Error writing {path}: {exc}. Restored from backup.", restored=restored
        ) from exc

    _discard_backups(backups)
    return written


def _restore_backups(backups: Dict[Path, Path | None]) -> List[Path]:
    restored: List[Path] = []
    for path, backup in backups.items():
        if backup is None:
            if path.exists():
                path.unlink()
            continue
        logger.warning("restoring %s from %s", path, backup)
        shutil.copy2(backup, path)
        backup.unlink()
        restored.append(path)
    return restored


def _discard_backups(backups: Dict[Path, Path | None]) -> None:
    for backup in backups.values():
        if backup is not None and backup.exists():
            backup.unlink()


__all__ = [
    "ArchiveStore",
    "BACKUP_SUFFIX",
    "DirectoryArchiveStore",
    "InMemoryArchiveStore",
    "backup_path",
    "write_files_with_backup",
]
