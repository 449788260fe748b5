"""Schema of the mutation proposal returned by the collaborator."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from .errors import ProposalError
from .sections import SectionMap, split_lines
from .versioning import VersionClass, validate_version_text

MUTATION_TOOL_NAME = "apply_mutation"


class SectionChange(BaseModel):
    """Full replacement body for one named section (banner excluded)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    section_name: str = Field(..., alias="sectionName", min_length=1)
    content: str

    @property
    def line_count(self) -> int:
        return len(split_lines(self.content))


class MutationProposal(BaseModel):
    """One mutation proposed by the collaborator."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: str = Field(..., alias="versionNumber")
    version_class: VersionClass = Field(..., alias="versionType")
    summary: str = Field(..., min_length=1)
    changelog: str = ""
    section_changes: list[SectionChange] = Field(
        default_factory=list, alias="sectionChanges"
    )
    reference_doc: str = Field(..., alias="referenceDoc")

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return validate_version_text(value)

    @field_validator("summary")
    @classmethod
    def _strip_summary(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("summary must be a non-empty string")
        return stripped

    @model_validator(mode="after")
    def _reject_duplicate_sections(self) -> "MutationProposal":
        seen: set[str] = set()
        for change in self.section_changes:
            if change.section_name in seen:
                raise ValueError(
                    f"section '{change.section_name}' is changed more than once"
                )
            seen.add(change.section_name)
        return self

    @classmethod
    def from_tool_input(cls, payload: Mapping[str, Any]) -> "MutationProposal":
        """Validate the raw ``apply_mutation`` tool input.

        Raises:
            ProposalError: If ``payload`` does not satisfy the schema.
        """

        if not isinstance(payload, Mapping):
            raise ProposalError(
                f"Proposal payload must be an object, got {type(payload).__name__}"
            )
        try:
            return cls.model_validate(dict(payload))
        except PydanticValidationError as exc:
            raise ProposalError(f"Invalid mutation proposal: {exc}") from exc

    def changed_sections(self) -> list[str]:
        return [change.section_name for change in self.section_changes]


def build_mutation_tool(section_map: SectionMap) -> dict[str, Any]:
    """Return the tool definition that forces a structured proposal."""

    return {
        "name": MUTATION_TOOL_NAME,
        "description": (
            "Apply a mutation to the game. Provide the new version, summary, and the "
            "COMPLETE replacement content for each modified code section. Section "
            "content must NOT include the section banner comment; it is preserved "
            "automatically."
        ),
        "input_schema": {
            "type": "object",
            "required": [
                "versionNumber",
                "versionType",
                "summary",
                "changelog",
                "sectionChanges",
                "referenceDoc",
            ],
            "properties": {
                "versionNumber": {
                    "type": "string",
                    "description": 'New version number, e.g. "0.02" or "1.00"',
                },
                "versionType": {
                    "type": "string",
                    "enum": [member.value for member in VersionClass],
                    "description": "Whether this is a major or minor version bump",
                },
                "summary": {
                    "type": "string",
                    "description": "1-2 sentence description of what changed",
                },
                "changelog": {
                    "type": "string",
                    "description": 'Timeline entry, e.g. "v0.02: bosses arrive"',
                },
                "sectionChanges": {
                    "type": "array",
                    "description": (
                        "Section replacements. Each item replaces the FULL body of a "
                        "named section (everything between its banner and the next "
                        "banner). Provide ONLY sections you are modifying."
                    ),
                    "items": {
                        "type": "object",
                        "required": ["sectionName", "content"],
                        "properties": {
                            "sectionName": {
                                "type": "string",
                                "enum": section_map.identifiers(),
                                "description": "The section identifier to replace",
                            },
                            "content": {
                                "type": "string",
                                "description": (
                                    "The complete new content for this section, "
                                    "without the banner comment."
                                ),
                            },
                        },
                    },
                },
                "referenceDoc": {
                    "type": "string",
                    "description": "The complete updated reference document",
                },
            },
        },
    }


__all__ = [
    "MUTATION_TOOL_NAME",
    "MutationProposal",
    "SectionChange",
    "build_mutation_tool",
]
