"""Language-model completion collaborator: protocol plus the OpenAI implementation."""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from calendar_copilot.errors import CompletionError

logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: str = "{}"

    @classmethod
    def from_raw(cls, call_id: str, name: str, raw_arguments: Optional[str]) -> "ToolCall":
        """Parse the model's JSON argument string; malformed JSON becomes ``{}``."""
        raw = raw_arguments or "{}"
        try:
            arguments = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Malformed arguments for tool call %s (%s): %r", call_id, name, raw)
            arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        return cls(id=call_id, name=name, arguments=arguments, raw_arguments=raw)


@dataclass
class AssistantTurn:
    content: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    total_tokens: int = 0

    def to_message(self) -> dict[str, Any]:
        """The assistant message to append to the conversation before tool results."""
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.raw_arguments},
                }
                for call in self.tool_calls
            ]
        return message


class CompletionClient(Protocol):
    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> AssistantTurn:
        ...

    def stream(self, messages: list[dict[str, Any]]) -> AsyncIterator[str]:
        ...


class OpenAICompletionClient:
    """Chat Completions over ``AsyncOpenAI``; any API failure becomes ``CompletionError``."""

    def __init__(self, api_key: str, model: str, client: Optional[AsyncOpenAI] = None):
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model

    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> AssistantTurn:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                tools=tools,
                tool_choice="auto",
            )
        except OpenAIError as e:
            logger.error("LLM API error: %s", e)
            raise CompletionError(str(e)) from e

        if not response.choices:
            logger.error("LLM response had no choices")
            raise CompletionError("The model returned no choices")
        message = response.choices[0].message
        calls = []
        for tool_call in message.tool_calls or []:
            function = getattr(tool_call, "function", None)
            if function is None:
                # Custom (non-function) tool calls are not part of the catalog.
                continue
            calls.append(ToolCall.from_raw(tool_call.id, function.name, function.arguments))

        return AssistantTurn(
            content=message.content,
            tool_calls=calls,
            total_tokens=response.usage.total_tokens if response.usage else 0,
        )

    async def stream(self, messages: list[dict[str, Any]]) -> AsyncIterator[str]:
        """Yield text deltas of a tool-free streaming completion."""
        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                stream=True,
            )
        except OpenAIError as e:
            logger.error("LLM streaming error: %s", e)
            raise CompletionError(str(e)) from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except OpenAIError as e:
            logger.error("LLM stream interrupted: %s", e)
            raise CompletionError(str(e)) from e
        finally:
            await stream.close()
