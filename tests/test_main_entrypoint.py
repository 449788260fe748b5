"""Tests covering the CLI entry point and its exit codes."""

from __future__ import annotations

import pytest

from conftest import ScriptedMutationService, make_proposal
from main import main
from mutationbot.errors import ServiceCallError
from mutationbot.history import NullHistoryRecorder
from mutationbot.settings import WorkspacePaths

_ENV = {"ANTHROPIC_API_KEY": "sk-test"}


def _run(workspace: WorkspacePaths, *responses: object, args: tuple[str, ...] = ()) -> None:
    main(
        ["--root", str(workspace.root), *args],
        environ=_ENV,
        service=ScriptedMutationService(list(responses)),  # type: ignore[arg-type]
        history=NullHistoryRecorder(),
    )


def test_successful_run_prints_report(workspace: WorkspacePaths, capsys) -> None:
    _run(workspace, make_proposal(changes=[("HUD", "drawHud();")]))

    output = capsys.readouterr().out
    assert "Current version: v0.00" in output
    assert "Submissions: 2 line(s)" in output
    assert "Version: v0.01 (MINOR)" in output
    assert "Sections modified: HUD" in output
    assert "Written: index.html" in output
    assert "Written: GAME-REFERENCE.md" in output
    assert "Recorded: v0.01: Enemies move faster" in output
    assert "Mutation applied successfully." in output
    assert "Arena Survivor v0.01" in workspace.document.read_text(encoding="utf-8")


def test_dry_run_lists_sections_and_writes_nothing(workspace: WorkspacePaths, capsys) -> None:
    before = workspace.document.read_bytes()

    _run(
        workspace,
        make_proposal(changes=[("ENEMIES", "a\nb\nc")]),
        args=("--dry-run",),
    )

    output = capsys.readouterr().out
    assert "(DRY RUN)" in output
    assert "DRY RUN: no files were modified." in output
    assert "ENEMIES: 3 lines" in output
    assert workspace.document.read_bytes() == before


def test_validation_failure_exits_non_zero(workspace: WorkspacePaths, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, make_proposal(changes=[("HUD", "function hud() {")]))

    assert excinfo.value.code == 1
    errors = capsys.readouterr().err
    assert "Brace imbalance in <script>: +1" in errors
    assert "Aborting: no files were modified." in errors


def test_unknown_section_exits_non_zero(workspace: WorkspacePaths, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, make_proposal(changes=[("BOSSES", "boss();")]))

    assert excinfo.value.code == 1
    assert "Unknown section name: BOSSES" in capsys.readouterr().err


def test_service_error_exits_non_zero(workspace: WorkspacePaths, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, ServiceCallError("Error calling collaborator: boom"))

    assert excinfo.value.code == 1
    assert "boom" in capsys.readouterr().err


def test_missing_credential_exits_non_zero(workspace: WorkspacePaths, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(workspace.root), "--no-commit"], environ={})

    assert excinfo.value.code == 1
    assert "ANTHROPIC_API_KEY" in capsys.readouterr().err


def test_invalid_configuration_exits_with_usage_code(workspace: WorkspacePaths, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(workspace.root)], environ={"MUTATE_MAX_LINES": "lots"})

    assert excinfo.value.code == 2
    assert "MUTATE_MAX_LINES" in capsys.readouterr().err


def test_report_names_the_collaborator_model(workspace: WorkspacePaths, capsys) -> None:
    _run(workspace, make_proposal(), args=("--preview",))

    assert "Model: scripted-model" in capsys.readouterr().out


def test_undecodable_input_exits_non_zero(workspace: WorkspacePaths, capsys) -> None:
    workspace.ruleset.write_bytes(b"\xff\xfe not utf-8")

    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, make_proposal())

    assert excinfo.value.code == 1
    assert f"Could not read dna at {workspace.ruleset}" in capsys.readouterr().err


def test_unexpected_os_error_names_the_phase(workspace: WorkspacePaths, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, PermissionError("permission denied"))

    assert excinfo.value.code == 1
    assert "Error during request_proposal: permission denied" in capsys.readouterr().err
