"""Scripted stand-ins for LLM providers used across the test suite."""

import json
from collections.abc import Callable
from typing import Any

from app.services.llm_interface import LLMInterface


def completion(content: str, finish_reason: str = "stop") -> dict[str, Any]:
    """OpenAI-shaped completion dict as returned by the providers."""
    return {
        "choices": [
            {
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
    }


def events_json(*events: dict[str, Any]) -> str:
    return json.dumps({"events": list(events)})


class FakeLLMClient(LLMInterface):
    """
    Scripted LLM client.

    `responder` receives the chat messages and returns either a completion
    dict or an exception instance to raise. Every call is recorded.
    """

    def __init__(self, responder: Callable[[list[dict[str, str]]], Any]):
        self.responder = responder
        self.calls: list[dict[str, Any]] = []

    async def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                **kwargs,
            }
        )
        result = self.responder(messages)
        if isinstance(result, Exception):
            raise result
        return result
