#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Reasoning client: the orchestrator's view of an LLM provider.

Converts pmx messages and tool catalogs to the OpenAI wire format, runs the
synchronous provider call in a worker thread, and converts the reply back.
Any failure is raised as ``ReasoningServiceError``; there are no retries.
"""

import asyncio
import json
from typing import Any, Dict, List, Sequence, Tuple

from pmx.debug_logger import get_logger
from pmx.execution.orchestrator import (
    Message,
    ReasoningServiceError,
    Role,
    ServiceResponse,
    ToolInvocationRequest,
)
from pmx.llm.providers.base import LLMProvider
from pmx.tools.catalog import ToolSpec, to_openai_tools


def _wire_arguments(arguments: Any) -> str:
    if arguments is None:
        return "{}"
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments)


def to_wire_message(message: Message) -> Dict[str, Any]:
    """Render one message in OpenAI chat format."""
    wire: Dict[str, Any] = {"role": message.role.value, "content": message.content or ""}
    if message.role is Role.ASSISTANT and message.tool_calls:
        wire["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": _wire_arguments(call.arguments)},
            }
            for call in message.tool_calls
        ]
    if message.role is Role.TOOL:
        wire["tool_call_id"] = message.tool_call_id
        if message.name:
            wire["name"] = message.name
    return wire


def to_wire_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    return [to_wire_message(message) for message in messages]


def parse_response(response: Any) -> ServiceResponse:
    """Convert a provider reply into a ServiceResponse.

    Raises:
        ReasoningServiceError: On an error payload or a malformed reply.
    """
    if not isinstance(response, dict):
        raise ReasoningServiceError(f"Malformed response from reasoning service: {type(response).__name__}")
    if response.get("error"):
        raise ReasoningServiceError(str(response["error"]))

    message = response.get("message")
    if not isinstance(message, dict):
        raise ReasoningServiceError("Malformed response from reasoning service: missing 'message'")

    content = message.get("content")
    if content is not None and not isinstance(content, str):
        content = json.dumps(content) if isinstance(content, (dict, list)) else str(content)

    raw_calls = message.get("tool_calls") or []
    if not isinstance(raw_calls, list):
        raise ReasoningServiceError("Malformed response from reasoning service: 'tool_calls' is not a list")

    calls: List[ToolInvocationRequest] = []
    for call in raw_calls:
        function = call.get("function") if isinstance(call, dict) else None
        if not isinstance(function, dict) or not function.get("name"):
            raise ReasoningServiceError("Malformed tool call from reasoning service: missing function name")
        calls.append(ToolInvocationRequest(
            id=str(call.get("id") or ""),
            name=str(function["name"]),
            arguments=function.get("arguments"),
        ))
    return ServiceResponse(text=content, tool_calls=tuple(calls))


class ReasoningClient:
    """``ReasoningService`` backed by an LLM provider."""

    def __init__(self, provider: LLMProvider, model: str, temperature: float = 0.1):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.logger = get_logger()

    async def send(self, messages: Sequence[Message], catalog: Sequence[ToolSpec]) -> ServiceResponse:
        wire_messages = to_wire_messages(messages)
        tools = to_openai_tools(catalog) or None
        try:
            response = await asyncio.to_thread(
                self.provider.chat, wire_messages, tools, self.model, temperature=self.temperature,
            )
        except Exception as e:
            # Provider SDKs raise many unrelated types; all are fatal here.
            classified = self.provider.classify_error(e)
            self.logger.log_error("llm", e, {"error_class": classified.error_class.value})
            raise ReasoningServiceError(f"{self.provider.name} request failed ({classified.error_class.value}): {e}") from e
        return parse_response(response)

    def describe(self) -> Tuple[str, str]:
        """(provider name, model) for display."""
        return self.provider.name, self.model
