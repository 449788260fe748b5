"""Validated, section-level mutation of a single structured document."""

from .errors import (
    ConcurrentRunError,
    HistoryRecordError,
    InputReadError,
    MissingCredentialError,
    MissingFileError,
    MutationError,
    NoInputContentError,
    ProposalError,
    SectionNotFoundError,
    ServiceCallError,
    UnknownIdentifierError,
    ValidationError,
    WriteError,
)
from .history import (
    GitHistoryRecorder,
    HistoryRecorder,
    NullHistoryRecorder,
    format_history_entry,
)
from .orchestrator import (
    MutationOrchestrator,
    MutationOutcome,
    PreparedMutation,
    RunPhase,
    prepare_mutation,
)
from .patching import apply_section_changes, patch_document
from .persistence import (
    ArchiveStore,
    DirectoryArchiveStore,
    InMemoryArchiveStore,
    write_files_with_backup,
)
from .proposal import MutationProposal, SectionChange, build_mutation_tool
from .sections import (
    DEFAULT_SECTION_MAP,
    ParsedDocument,
    Section,
    SectionId,
    SectionMap,
    parse_sections,
    reassemble,
)
from .service import AnthropicMutationService, MutationRequest, MutationService
from .settings import MutationSettings, WorkspacePaths
from .validation import ValidationPolicy, ValidationResult, validate_document
from .versioning import VersionClass, extract_version, rewrite_version, should_archive

__all__ = [
    "AnthropicMutationService",
    "ArchiveStore",
    "ConcurrentRunError",
    "DEFAULT_SECTION_MAP",
    "DirectoryArchiveStore",
    "GitHistoryRecorder",
    "HistoryRecordError",
    "HistoryRecorder",
    "InMemoryArchiveStore",
    "InputReadError",
    "MissingCredentialError",
    "MissingFileError",
    "MutationError",
    "MutationOrchestrator",
    "MutationOutcome",
    "MutationProposal",
    "MutationRequest",
    "MutationService",
    "MutationSettings",
    "NoInputContentError",
    "NullHistoryRecorder",
    "ParsedDocument",
    "PreparedMutation",
    "ProposalError",
    "RunPhase",
    "Section",
    "SectionChange",
    "SectionId",
    "SectionMap",
    "SectionNotFoundError",
    "ServiceCallError",
    "UnknownIdentifierError",
    "ValidationError",
    "ValidationPolicy",
    "ValidationResult",
    "VersionClass",
    "WorkspacePaths",
    "WriteError",
    "apply_section_changes",
    "build_mutation_tool",
    "extract_version",
    "format_history_entry",
    "parse_sections",
    "patch_document",
    "prepare_mutation",
    "reassemble",
    "rewrite_version",
    "should_archive",
    "validate_document",
    "write_files_with_backup",
]
