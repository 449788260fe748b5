"""Unit tests for :mod:`mutationbot.service`."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from mutationbot.errors import ProposalError, ServiceCallError
from mutationbot.proposal import MUTATION_TOOL_NAME
from mutationbot.service import (
    AnthropicMutationService,
    MutationRequest,
    build_user_message,
    extract_tool_input,
)

_TOOL_INPUT = {
    "versionNumber": "0.01",
    "versionType": "MINOR",
    "summary": "Faster enemies",
    "changelog": "v0.01: faster",
    "sectionChanges": [{"sectionName": "ENEMIES", "content": "speed = 4;"}],
    "referenceDoc": "# Ref",
}

_REQUEST = MutationRequest(
    ruleset="RULES",
    reference="# Reference",
    change_requests="make enemies faster",
    current_version="0.00",
)


class _RecordingMessages:
    def __init__(self, result: object) -> None:
        self._result = result
        self.calls: list[dict[str, object]] = []

    def create(self, **kwargs: object) -> object:
        self.calls.append(kwargs)
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def _build_service(
    result: object, **kwargs: object
) -> tuple[AnthropicMutationService, _RecordingMessages]:
    recorder = _RecordingMessages(result)
    client = SimpleNamespace(messages=SimpleNamespace(create=recorder.create))
    service = AnthropicMutationService(model="claude-test", client=client, **kwargs)
    return service, recorder


def test_propose_forces_mutation_tool_and_parses_input() -> None:
    response = SimpleNamespace(
        content=[
            {"type": "text", "text": "thinking"},
            SimpleNamespace(type="tool_use", name=MUTATION_TOOL_NAME, input=_TOOL_INPUT),
        ]
    )
    service, recorder = _build_service(response, max_tokens=512, timeout=30.0)

    proposal = service.propose(_REQUEST)

    assert proposal.version == "0.01"
    assert proposal.changed_sections() == ["ENEMIES"]
    (call,) = recorder.calls
    assert call["model"] == "claude-test"
    assert call["max_tokens"] == 512
    assert call["timeout"] == 30.0
    assert call["system"] == "RULES"
    assert call["tool_choice"] == {"type": "tool", "name": MUTATION_TOOL_NAME}
    assert [tool["name"] for tool in call["tools"]] == [MUTATION_TOOL_NAME]
    assert call["messages"] == [{"role": "user", "content": build_user_message(_REQUEST)}]


def test_transport_failure_becomes_service_call_error() -> None:
    service, recorder = _build_service(RuntimeError("connection reset"))

    with pytest.raises(ServiceCallError) as excinfo:
        service.propose(_REQUEST)

    assert "connection reset" in str(excinfo.value)
    assert len(recorder.calls) == 1


def test_missing_tool_block_is_a_proposal_error() -> None:
    service, _ = _build_service(SimpleNamespace(content=[{"type": "text", "text": "no"}]))

    with pytest.raises(ProposalError):
        service.propose(_REQUEST)


def test_timeout_can_be_disabled() -> None:
    response = SimpleNamespace(content=[{"type": "tool_use", "input": _TOOL_INPUT}])
    service, recorder = _build_service(response, timeout=None)

    service.propose(_REQUEST)

    assert "timeout" not in recorder.calls[0]


def test_user_message_mentions_version_and_requests() -> None:
    message = build_user_message(_REQUEST)

    assert "# Reference" in message
    assert "make enemies faster" in message
    assert "The current version is v0.00." in message
    assert f"`{MUTATION_TOOL_NAME}`" in message


def test_extract_tool_input_skips_other_tools() -> None:
    content = [
        {"type": "tool_use", "name": "other", "input": {"a": 1}},
        {"type": "tool_use", "name": MUTATION_TOOL_NAME, "input": {"b": 2}},
    ]

    assert extract_tool_input(content) == {"b": 2}
    with pytest.raises(ProposalError):
        extract_tool_input(None)


def test_constructor_validation() -> None:
    client = SimpleNamespace(messages=SimpleNamespace(create=lambda **_: None))
    with pytest.raises(ValueError):
        AnthropicMutationService(model="  ", client=client)
    with pytest.raises(ValueError):
        AnthropicMutationService(model="m", client=client, timeout=0)
    with pytest.raises(TypeError):
        AnthropicMutationService(model="m", client=client, base_url="http://x")
    with pytest.raises(TypeError):
        AnthropicMutationService(model="m", client=client, default_options={"top_k": 5})
    assert AnthropicMutationService(model="claude-x", client=client).describe() == "claude-x"
