"""Linear mutation pipeline: read, propose, patch, version, validate, persist."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

import portalocker

from .errors import (
    ConcurrentRunError,
    HistoryRecordError,
    MissingCredentialError,
    MissingFileError,
    ValidationError,
)
from .history import GitHistoryRecorder, HistoryRecorder
from .inputs import MutationInputs, load_inputs
from .patching import patch_document
from .persistence import ArchiveStore, DirectoryArchiveStore, write_files_with_backup
from .proposal import MutationProposal
from .sections import DEFAULT_SECTION_MAP, SCRIPT_TERMINATOR, SECTION_BANNER_RE, SectionMap
from .service import AnthropicMutationService, MutationRequest, MutationService
from .settings import CREDENTIAL_ENV_VAR, MutationSettings
from .validation import (
    ValidationPolicy,
    ValidationResult,
    find_protected_tokens,
    validate_document,
)
from .versioning import (
    DEFAULT_VERSION_PREFIX,
    extract_version,
    rewrite_version,
    should_archive,
)

logger = logging.getLogger(__name__)


class RunPhase(str, Enum):
    READ_INPUTS = "read_inputs"
    REQUEST_PROPOSAL = "request_proposal"
    APPLY_PATCH = "apply_patch"
    REWRITE_VERSION = "rewrite_version"
    VALIDATE = "validate"
    PERSIST = "persist"
    RECORD_HISTORY = "record_history"
    DONE = "done"


@dataclass(frozen=True)
class PreparedMutation:
    """In-memory result of applying a proposal, before anything is written."""

    proposal: MutationProposal
    previous_version: str
    original_document: str
    document: str
    validation: ValidationResult


@dataclass(frozen=True)
class MutationOutcome:
    """Summary of a completed run, preview or not."""

    prepared: PreparedMutation
    preview: bool
    change_request_count: int = 0
    model: str | None = None
    written: tuple[Path, ...] = ()
    archive_location: str | None = None
    history_message: str | None = None
    history_error: str | None = None

    @property
    def proposal(self) -> MutationProposal:
        return self.prepared.proposal

    @property
    def validation(self) -> ValidationResult:
        return self.prepared.validation

    @property
    def applied(self) -> bool:
        return not self.preview and bool(self.written)


def prepare_mutation(
    document: str,
    proposal: MutationProposal,
    *,
    section_map: SectionMap = DEFAULT_SECTION_MAP,
    policy: ValidationPolicy | None = None,
    version_prefix: str = DEFAULT_VERSION_PREFIX,
    marker_pattern: re.Pattern[str] = SECTION_BANNER_RE,
    terminal_marker: str = SCRIPT_TERMINATOR,
    on_phase: Callable[[RunPhase], None] | None = None,
) -> PreparedMutation:
    """Apply ``proposal`` to ``document`` in memory and validate the result.

    Raises:
        UnknownIdentifierError: See :func:`~mutationbot.patching.apply_section_changes`.
        SectionNotFoundError: See :func:`~mutationbot.patching.apply_section_changes`.
    """

    if policy is None:
        policy = ValidationPolicy.for_section_map(section_map)
    notify = on_phase or (lambda _phase: None)
    previous_version = extract_version(document, version_prefix)
    notify(RunPhase.APPLY_PATCH)
    patched = patch_document(
        document,
        section_map,
        proposal.section_changes,
        marker_pattern=marker_pattern,
        terminal_marker=terminal_marker,
    )
    notify(RunPhase.REWRITE_VERSION)
    versioned = rewrite_version(patched, proposal.version, version_prefix)
    notify(RunPhase.VALIDATE)
    return PreparedMutation(
        proposal=proposal,
        previous_version=previous_version,
        original_document=document,
        document=versioned,
        validation=validate_document(versioned, policy),
    )


@contextmanager
def run_lock(lock_path: Path) -> Iterator[None]:
    """Hold an exclusive, non-blocking lock on ``lock_path`` for one run.

    Raises:
        ConcurrentRunError: If another process already holds the lock.
    """

    with open(lock_path, "a", encoding="utf-8") as handle:
        try:
            portalocker.lock(handle, portalocker.LOCK_EX | portalocker.LOCK_NB)
        except portalocker.LockException as exc:
            raise ConcurrentRunError(
                f"Another mutation run holds {lock_path}; try again once it finishes."
            ) from exc
        try:
            yield
        finally:
            portalocker.unlock(handle)


class MutationOrchestrator:
    """Drive one mutation from reading inputs to recording history.

    Nothing on disk changes until validation passes. In preview mode the run
    stops after validation and reports instead of writing.
    """

    def __init__(
        self,
        settings: MutationSettings,
        *,
        service: MutationService | None = None,
        archive_store: ArchiveStore | None = None,
        history: HistoryRecorder | None = None,
        section_map: SectionMap = DEFAULT_SECTION_MAP,
        marker_pattern: re.Pattern[str] = SECTION_BANNER_RE,
    ) -> None:
        self.settings = settings
        self.section_map = section_map
        self.marker_pattern = marker_pattern
        self.archive_store = archive_store or DirectoryArchiveStore(
            settings.paths.archive_dir
        )
        self.history = history or GitHistoryRecorder(settings.paths.root)
        self._service = service
        self.phase = RunPhase.READ_INPUTS

    def run(self, *, preview: bool = False) -> MutationOutcome:
        """Execute the pipeline once.

        Raises:
            MutationError: Any abort; the live files are left untouched unless
                the error is a :class:`~mutationbot.errors.WriteError`, in
                which case they were restored from backup.
        """

        self._enter(RunPhase.READ_INPUTS)
        paths = self.settings.paths
        if not paths.root.is_dir():
            raise MissingFileError("workspace", paths.root)

        with run_lock(paths.lock_file):
            inputs = load_inputs(paths)
            service = self._resolve_service()
            return self._run_locked(inputs, service, preview=preview)

    def _run_locked(
        self, inputs: MutationInputs, service: MutationService, *, preview: bool
    ) -> MutationOutcome:
        prefix = self.settings.version_prefix
        current_version = extract_version(inputs.document, prefix)
        logger.info(
            "current version v%s, %d change request(s)",
            current_version,
            inputs.change_request_count,
        )

        self._enter(RunPhase.REQUEST_PROPOSAL)
        proposal = service.propose(
            MutationRequest(
                ruleset=inputs.ruleset,
                reference=inputs.reference,
                change_requests=inputs.change_requests,
                current_version=current_version,
            )
        )
        logger.info(
            "proposal v%s (%s) touching %s",
            proposal.version,
            proposal.version_class.value,
            ", ".join(proposal.changed_sections()) or "no sections",
        )

        policy = ValidationPolicy.for_section_map(
            self.section_map, max_lines=self.settings.max_lines
        ).protecting(find_protected_tokens(inputs.document, self.settings.protected_tokens))
        prepared = prepare_mutation(
            inputs.document,
            proposal,
            section_map=self.section_map,
            policy=policy,
            version_prefix=prefix,
            marker_pattern=self.marker_pattern,
            on_phase=self._enter,
        )

        if not prepared.validation.ok:
            for error in prepared.validation.errors:
                logger.info("validation: %s", error)
            if not preview:
                raise ValidationError(prepared.validation.errors)

        if preview:
            self._enter(RunPhase.DONE)
            return MutationOutcome(
                prepared=prepared,
                preview=True,
                change_request_count=inputs.change_request_count,
                model=service.describe(),
            )

        self._enter(RunPhase.PERSIST)
        archive_location = None
        if should_archive(proposal.version_class):
            archive_location = self.archive_store.save(
                prepared.previous_version, inputs.document
            )
            logger.info("archived v%s to %s", prepared.previous_version, archive_location)

        paths = self.settings.paths
        written = write_files_with_backup(
            [
                (paths.document, prepared.document),
                (paths.reference, proposal.reference_doc),
            ]
        )

        self._enter(RunPhase.RECORD_HISTORY)
        history_message = None
        history_error = None
        try:
            history_message = self.history.record(
                proposal.version, proposal.summary, written
            )
        except HistoryRecordError as exc:
            history_error = str(exc)
            logger.warning(
                "history record failed: %s. Files were written but not recorded.", exc
            )

        self._enter(RunPhase.DONE)
        return MutationOutcome(
            prepared=prepared,
            preview=False,
            change_request_count=inputs.change_request_count,
            model=service.describe(),
            written=tuple(written),
            archive_location=archive_location,
            history_message=history_message,
            history_error=history_error,
        )

    def _resolve_service(self) -> MutationService:
        if self._service is not None:
            return self._service
        if not self.settings.api_key:
            raise MissingCredentialError(
                f"{CREDENTIAL_ENV_VAR} environment variable not set."
            )
        self._service = AnthropicMutationService(
            model=self.settings.model,
            api_key=self.settings.api_key,
            max_tokens=self.settings.max_tokens,
            timeout=self.settings.timeout,
            section_map=self.section_map,
        )
        return self._service

    def _enter(self, phase: RunPhase) -> None:
        self.phase = phase
        logger.debug("phase %s", phase.value)


__all__ = [
    "MutationOrchestrator",
    "MutationOutcome",
    "PreparedMutation",
    "RunPhase",
    "prepare_mutation",
    "run_lock",
]
