import time
from typing import Any

import httpx

from app.services.llm_interface import FINISH_REASON_LENGTH, LLMInterface
from app.utils.logger import setup_logger

logger = setup_logger("ollama_client")

VALID_OLLAMA_OPTIONS = (
    "mirostat",
    "mirostat_eta",
    "mirostat_tau",
    "num_ctx",
    "repeat_last_n",
    "repeat_penalty",
    "seed",
    "stop",
    "tfs_z",
    "top_k",
    "top_p",
)


def completion_from_ollama(response_data: dict[str, Any]) -> dict[str, Any]:
    """
    Adapt an Ollama /api/chat response to the OpenAI-shaped completion dict.

    Ollama reports `done_reason == "length"` when `num_predict` cut the
    output short; that becomes `finish_reason == "length"`.
    """
    message = response_data.get("message") or {"role": "assistant", "content": ""}
    done_reason = response_data.get("done_reason")
    if done_reason == FINISH_REASON_LENGTH:
        finish_reason = FINISH_REASON_LENGTH
    elif response_data.get("done", True):
        finish_reason = done_reason or "stop"
    else:
        finish_reason = None

    prompt_tokens = response_data.get("prompt_eval_count", 0)
    completion_tokens = response_data.get("eval_count", 0)
    return {
        "model": response_data.get("model"),
        "choices": [{"message": message, "finish_reason": finish_reason}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


class OllamaClient(LLMInterface):
    """
    LLM Client implementation for a local Ollama API.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        default_model: str = "llama3:instruct",
        request_timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.request_timeout = request_timeout

        try:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.request_timeout,
                transport=transport,
            )
            logger.info(
                f"Ollama client initialized successfully. Base URL: {self.base_url}, Default Model: {self.default_model}, Timeout: {self.request_timeout}s"
            )
        except Exception as e:
            logger.error(f"Failed to initialize Ollama client: {e}", exc_info=True)
            raise

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        start_time = time.perf_counter()
        model_name = payload.get("model", "unknown_model")

        try:
            response = await self._client.post(endpoint, json=payload)
            if response.status_code != 200:
                logger.error(
                    f"Ollama API error ({response.status_code}) at {endpoint} for model {model_name}: {response.text}"
                )
                response.raise_for_status()
            response_json = response.json()
        except httpx.HTTPStatusError:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Ollama HTTP Status Error for model {model_name} at {endpoint} after {duration:.4f}s",
                exc_info=True,
            )
            raise
        except httpx.RequestError as request_error:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Ollama Request Error for model {model_name} at {endpoint} after {duration:.4f}s: {request_error}",
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start_time
        logger.info(
            f"Ollama request to {endpoint} with model {model_name} completed in {duration:.4f}s. "
            f"Response size: {len(response.content)} bytes"
        )
        if duration > 30:
            logger.warning(f"Slow Ollama response: {duration:.4f}s")
        return response_json

    async def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if not messages:
            logger.error("Empty messages list provided to generate_chat_completion")
            raise ValueError("Messages list cannot be empty")

        payload: dict[str, Any] = {
            "model": self.default_model,
            "messages": messages,  # Ollama /api/chat expects messages in OpenAI format
            "stream": False,
            "options": {},
        }
        if temperature is not None:
            payload["options"]["temperature"] = temperature
        if max_tokens is not None:
            payload["options"]["num_predict"] = max_tokens

        response_format = kwargs.get("response_format")
        if isinstance(response_format, dict) and (
            response_format.get("type") == "json_object"
        ):
            payload["format"] = "json"

        for k, v in kwargs.items():
            if k in VALID_OLLAMA_OPTIONS:
                payload["options"][k] = v

        response_data = await self._post("/api/chat", payload)
        completion = completion_from_ollama(response_data)

        if not completion["choices"][0]["message"].get("content"):
            logger.warning(
                f"Empty content in Ollama chat response for model {self.default_model}"
            )
        return completion

    async def close(self):
        logger.info("Closing Ollama client.")
        try:
            await self._client.aclose()
            logger.info("Ollama client closed successfully.")
        except Exception as e:
            logger.error(f"Error closing Ollama client: {e}", exc_info=True)
            raise
