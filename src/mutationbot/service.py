"""Adapter requesting mutation proposals from the content-generation collaborator."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .errors import ProposalError, ServiceCallError
from .proposal import MUTATION_TOOL_NAME, MutationProposal, build_mutation_tool
from .sections import DEFAULT_SECTION_MAP, SectionMap

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 16000
DEFAULT_TIMEOUT = 600.0


@dataclass(frozen=True)
class MutationRequest:
    """Everything the collaborator sees for one mutation."""

    ruleset: str
    reference: str
    change_requests: str
    current_version: str


def build_user_message(request: MutationRequest) -> str:
    """Compose the user turn: current state, change requests, and instructions."""

    return "\n".join(
        [
            "## Current Game State (GAME-REFERENCE.md)\n",
            request.reference,
            "\n---\n",
            "## Player Submissions\n",
            request.change_requests,
            "\n---\n",
            "Follow the Mutation Workflow from your system prompt. "
            f"Output your mutation using the `{MUTATION_TOOL_NAME}` tool.",
            f"The current version is v{request.current_version}.",
        ]
    )


class MutationService(ABC):
    """Opaque producer of :class:`MutationProposal` values."""

    @abstractmethod
    def propose(self, request: MutationRequest) -> MutationProposal:
        """Return one proposal for ``request``.

        Raises:
            ServiceCallError: On transport or protocol failure.
        """

    def describe(self) -> str:
        return type(self).__name__


def _require_str(value: str, *, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string, got {type(value)!r}")
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must be a non-empty string")
    return stripped


def _block_field(block: Any, name: str) -> Any:
    if isinstance(block, Mapping):
        return block.get(name)
    return getattr(block, name, None)


def extract_tool_input(content: Any, tool_name: str = MUTATION_TOOL_NAME) -> Mapping[str, Any]:
    """Return the input of the first ``tool_use`` block in ``content``.

    Raises:
        ProposalError: If no matching block is present.
    """

    if isinstance(content, Sequence) and not isinstance(content, (str, bytes)):
        for block in content:
            if _block_field(block, "type") != "tool_use":
                continue
            name = _block_field(block, "name")
            if name is not None and name != tool_name:
                continue
            tool_input = _block_field(block, "input")
            if isinstance(tool_input, Mapping):
                return tool_input
            raise ProposalError("tool_use block did not carry an object input")
    raise ProposalError("Collaborator did not return a tool_use block")


class AnthropicMutationService(MutationService):
    """:class:`MutationService` built on the Anthropic Messages API.

    The call forces the ``apply_mutation`` tool, so the proposal arrives as
    structured tool input rather than free text. One blocking request is made
    per proposal; there is no retry.
    """

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        client: Any | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float | None = DEFAULT_TIMEOUT,
        section_map: SectionMap = DEFAULT_SECTION_MAP,
    ) -> None:
        self._model = _require_str(model, field_name="model")
        if max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._tool = build_mutation_tool(section_map)

        if client is None:
            try:
                from anthropic import Anthropic  # type: ignore
            except ImportError as exc:  # pragma: no cover - optional dependency path
                raise ImportError(
                    "AnthropicMutationService requires the 'anthropic' package. "
                    "Install it with 'pip install anthropic'."
                ) from exc

            client = Anthropic(api_key=api_key) if api_key is not None else Anthropic()
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def describe(self) -> str:
        return self._model

    def propose(self, request: MutationRequest) -> MutationProposal:
        request_kwargs: dict[str, Any] = {}
        if self._timeout is not None:
            request_kwargs["timeout"] = self._timeout

        logger.info("requesting mutation proposal from %s", self._model)
        try:
            response = self._client.messages.create(  # type: ignore[call-arg]
                model=self._model,
                max_tokens=self._max_tokens,
                system=request.ruleset,
                messages=[{"role": "user", "content": build_user_message(request)}],
                tools=[self._tool],
                tool_choice={"type": "tool", "name": MUTATION_TOOL_NAME},
                **request_kwargs,
            )
        except Exception as exc:
            raise ServiceCallError(f"Error calling collaborator: {exc}") from exc

        payload = extract_tool_input(getattr(response, "content", None))
        return MutationProposal.from_tool_input(payload)


__all__ = [
    "AnthropicMutationService",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "DEFAULT_TIMEOUT",
    "MutationRequest",
    "MutationService",
    "build_user_message",
    "extract_tool_input",
]
