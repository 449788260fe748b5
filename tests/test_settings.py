"""Tests for :mod:`mutationbot.settings`."""

from __future__ import annotations

from pathlib import Path

import pytest

from mutationbot.service import DEFAULT_MODEL
from mutationbot.settings import MutationSettings, WorkspacePaths


def test_from_env_uses_defaults(tmp_path: Path) -> None:
    settings = MutationSettings.from_env({"MUTATE_ROOT": str(tmp_path)})

    assert settings.paths == WorkspacePaths.under(tmp_path)
    assert settings.paths.document == tmp_path / "index.html"
    assert settings.paths.archive_dir == tmp_path / "versions"
    assert settings.api_key is None
    assert settings.model == DEFAULT_MODEL
    assert settings.max_tokens == 16000
    assert settings.timeout == 600.0
    assert settings.max_lines == 4000
    assert settings.version_prefix == "Arena Survivor v"
    assert settings.protected_tokens == ()


def test_from_env_reads_overrides(tmp_path: Path) -> None:
    settings = MutationSettings.from_env(
        {
            "ANTHROPIC_API_KEY": " sk-ant-123 ",
            "MUTATE_MODEL": "claude-other",
            "MUTATE_MAX_TOKENS": "2048",
            "MUTATE_TIMEOUT": "12.5",
            "MUTATE_MAX_LINES": "500",
            "MUTATE_VERSION_PREFIX": "My Game v",
            "MUTATE_PROTECTED_TOKENS": "highScore, ,gameSettings",
        },
        root=tmp_path,
    )

    assert settings.api_key == "sk-ant-123"
    assert settings.model == "claude-other"
    assert settings.max_tokens == 2048
    assert settings.timeout == 12.5
    assert settings.max_lines == 500
    assert settings.version_prefix == "My Game v"
    assert settings.protected_tokens == ("highScore", "gameSettings")
    assert settings.paths.root == tmp_path


def test_blank_values_are_treated_as_unset(tmp_path: Path) -> None:
    settings = MutationSettings.from_env(
        {"ANTHROPIC_API_KEY": "   ", "MUTATE_MODEL": "", "MUTATE_MAX_LINES": " "},
        root=tmp_path,
    )

    assert settings.api_key is None
    assert settings.model == DEFAULT_MODEL
    assert settings.max_lines == 4000


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("MUTATE_MAX_LINES", "many"),
        ("MUTATE_MAX_LINES", "0"),
        ("MUTATE_MAX_TOKENS", "-5"),
        ("MUTATE_TIMEOUT", "never"),
        ("MUTATE_TIMEOUT", "0"),
    ],
)
def test_invalid_numbers_name_the_variable(tmp_path: Path, name: str, value: str) -> None:
    with pytest.raises(ValueError) as excinfo:
        MutationSettings.from_env({name: value}, root=tmp_path)

    assert name in str(excinfo.value)


def test_api_key_is_hidden_from_repr(tmp_path: Path) -> None:
    settings = MutationSettings.from_env({"ANTHROPIC_API_KEY": "sk-secret"}, root=tmp_path)

    assert "sk-secret" not in repr(settings)


def test_run_lock_lives_outside_the_workspace(tmp_path: Path) -> None:
    paths = WorkspacePaths.under(tmp_path)

    assert tmp_path not in paths.lock_file.parents
    assert paths.lock_file == WorkspacePaths.under(tmp_path / "sub" / "..").lock_file
    assert paths.lock_file != WorkspacePaths.under(tmp_path / "other").lock_file
