"""
Abstract interface for Large Language Model (LLM) services.

Defines the standard interface that all LLM providers must implement
for consistent interaction patterns across different language model services.
"""

from abc import ABC, abstractmethod
from typing import Any

# finish_reason reported when a completion stopped on its max_tokens budget
FINISH_REASON_LENGTH = "length"


class LLMInterface(ABC):
    """
    Abstract Base Class for Large Language Model services.
    Defines a common interface for interacting with different LLM providers.
    """

    @abstractmethod
    async def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Generates a chat completion based on a list of messages.

        Returns an OpenAI-shaped dict: `choices[0].message.content`,
        `choices[0].finish_reason` and, when known, `usage`.
        """

    async def close(self):
        """
        Optional method to close any underlying connections or clients.
        Providers that don't need explicit closing can have an empty implementation.
        """
        return


def completion_content(completion: dict[str, Any]) -> str:
    """Text of the first choice, or an empty string."""
    choices = completion.get("choices") or [{}]
    return (choices[0].get("message") or {}).get("content") or ""


def completion_finish_reason(completion: dict[str, Any]) -> str | None:
    choices = completion.get("choices") or [{}]
    return choices[0].get("finish_reason")
