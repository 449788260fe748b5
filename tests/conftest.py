"""Test configuration for the mutation bot project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from collections.abc import Sequence
from typing import Any

import pytest

from mutationbot.proposal import MutationProposal
from mutationbot.sections import SectionId
from mutationbot.service import MutationRequest, MutationService
from mutationbot.settings import MutationSettings, WorkspacePaths

HIGH_SCORE_KEY = "arenaSurvivorHighScore"


def build_document(version: str = "0.00", *, extra_body: dict[str, list[str]] | None = None) -> str:
    """Return a small game document containing every mapped section."""

    lines = [
        "<!DOCTYPE html>",
        "<html>",
        f"<head><title>Arena Survivor v{version}</title></head>",
        "<body>",
        "<script>",
    ]
    for member in SectionId:
        lines.append(f"// ===== {member.marker} =====")
        if member is SectionId.STATE:
            lines.append(
                f"let best = Number(localStorage.getItem('{HIGH_SCORE_KEY}') || 0);"
            )
        if member is SectionId.HUD:
            lines.append(f"ctx.fillText('Arena Survivor v{version}', 10, 20);")
        lines.append(f"function {member.value.lower()}() {{")
        lines.extend((extra_body or {}).get(member.value, []))
        lines.append("  return 1;")
        lines.append("}")
        lines.append("")
    lines.extend(["</script>", "</body>", "</html>", ""])
    return "\n".join(lines)


class ScriptedMutationService(MutationService):
    """Deterministic collaborator used in tests to avoid real API calls."""

    def __init__(self, responses: Sequence[MutationProposal | Exception] | None = None) -> None:
        self.calls: list[MutationRequest] = []
        self._responses: list[MutationProposal | Exception] = list(responses or [])

    def queue(self, response: MutationProposal | Exception) -> None:
        self._responses.append(response)

    def describe(self) -> str:
        return "scripted-model"

    def propose(self, request: MutationRequest) -> MutationProposal:
        self.calls.append(request)
        if not self._responses:
            raise AssertionError(
                "ScriptedMutationService expected a queued response but none remain",
            )
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_proposal(
    *,
    version: str = "0.01",
    version_class: str = "MINOR",
    summary: str = "Enemies move faster",
    changelog: str = "v0.01: faster enemies",
    changes: Sequence[tuple[str, str]] = (),
    reference_doc: str = "# Reference\nUpdated.\n",
) -> MutationProposal:
    return MutationProposal.model_validate(
        {
            "versionNumber": version,
            "versionType": version_class,
            "summary": summary,
            "changelog": changelog,
            "sectionChanges": [
                {"sectionName": name, "content": content} for name, content in changes
            ],
            "referenceDoc": reference_doc,
        }
    )


@pytest.fixture()
def sample_document() -> str:
    return build_document()


@pytest.fixture()
def proposal_factory() -> Any:
    return make_proposal


@pytest.fixture()
def workspace(tmp_path: Path) -> WorkspacePaths:
    """Populate ``tmp_path`` with the files a run reads."""

    paths = WorkspacePaths.under(tmp_path)
    paths.ruleset.write_text("You mutate the game.\n", encoding="utf-8")
    paths.reference.write_text("# Reference\nOriginal.\n", encoding="utf-8")
    paths.submissions.write_text(
        "# Submissions\n<!-- one per line -->\n\nmake enemies faster\nadd a boss\n",
        encoding="utf-8",
    )
    paths.document.write_text(build_document(), encoding="utf-8")
    return paths


@pytest.fixture()
def settings(workspace: WorkspacePaths) -> MutationSettings:
    return MutationSettings(
        paths=workspace,
        api_key="sk-test",
        protected_tokens=(HIGH_SCORE_KEY,),
    )


@pytest.fixture()
def make_scripted_service() -> Any:
    """Factory fixture for collaborators with canned proposals."""

    def _factory(
        responses: Sequence[MutationProposal | Exception] | None = None,
    ) -> ScriptedMutationService:
        return ScriptedMutationService(responses)

    return _factory


__all__ = [
    "HIGH_SCORE_KEY",
    "ScriptedMutationService",
    "build_document",
    "make_proposal",
]
