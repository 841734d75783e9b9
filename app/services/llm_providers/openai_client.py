import time
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from app.config import settings
from app.services.llm_interface import LLMInterface
from app.utils.logger import setup_logger

logger = setup_logger("openai_client")


class OpenAIClient(LLMInterface):
    """
    LLM Client implementation for OpenAI API (and OpenAI-compatible endpoints).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        default_model: str = settings.default_openai_model,
    ):
        if not api_key:
            logger.error("OpenAI API key is required but not provided")
            raise ValueError("OpenAI API key is required.")

        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model

        client_args = {"api_key": self.api_key}
        if self.base_url:
            client_args["base_url"] = self.base_url

        try:
            self._client = AsyncOpenAI(**client_args)
            logger.info(
                f"OpenAI client initialized successfully. Base URL: {self.base_url or 'Default'}, Default Model: {self.default_model}"
            )
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI client: {e}", exc_info=True)
            raise

    async def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if not messages:
            logger.error("Empty messages list provided to generate_chat_completion")
            raise ValueError("Messages list cannot be empty")

        effective_model = self.default_model
        request_params = {
            "model": effective_model,
            "messages": messages,
            "temperature": temperature,
            **kwargs,
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens

        response_format = kwargs.get("response_format")
        if (
            isinstance(response_format, dict)
            and response_format.get("type") == "json_object"
        ):
            logger.debug(
                f"OpenAI client: JSON mode requested for model {effective_model}."
            )

        logger.debug(
            f"generate_chat_completion called with {len(messages)} messages, temperature: {temperature}, "
            f"max_tokens: {max_tokens}, model: {effective_model}"
        )

        start_time = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(**request_params)
        except OpenAIError as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"OpenAI API error during chat completion for model {effective_model} after {duration:.4f}s: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            logger.error(
                f"Failed chat request context - messages: {len(messages)}, temperature: {temperature}, max_tokens: {max_tokens}"
            )
            raise

        response_dict = response.model_dump()
        duration = time.perf_counter() - start_time

        choices = response_dict.get("choices") or []
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
            finish_reason = choices[0].get("finish_reason")
        else:
            logger.warning("No choices found in OpenAI chat completion response")
            content, finish_reason = "", None

        logger.info(
            f"OpenAI generate_chat_completion for model {effective_model} completed in {duration:.4f}s. "
            f"Output: {len(content)} chars, finish_reason: {finish_reason}"
        )
        if duration > 30:
            logger.warning(f"Slow chat completion response: {duration:.4f}s")

        return response_dict

    async def close(self):
        logger.info("Closing OpenAI client.")
        try:
            await self._client.close()
            logger.info("OpenAI client closed successfully.")
        except Exception as e:
            logger.error(f"Error closing OpenAI client: {e}", exc_info=True)
            raise
