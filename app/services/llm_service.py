"""
LLM Service Manager - Centralized management of LLM providers.

Caches one client per provider, initializes the configured ones at startup,
creates missing ones on demand, and closes them all at shutdown.
"""

from typing import Any

from app.config import settings
from app.services.llm_interface import LLMInterface
from app.services.llm_providers.ollama_client import OllamaClient
from app.services.llm_providers.openai_client import OpenAIClient
from app.utils.logger import setup_logger

logger = setup_logger("llm_service_manager")

# Client instances cache
_initialized_clients: dict[str, LLMInterface] = {}

# Mapping of provider names to their constructor classes
_client_constructors: dict[str, type[LLMInterface]] = {
    "openai": OpenAIClient,
    "ollama": OllamaClient,
}


def _get_client_config(provider_name: str) -> dict[str, Any]:
    """Constructor arguments for a provider; None values are left out."""
    if provider_name == "openai":
        config = {
            "api_key": settings.openai_api_key,
            "base_url": settings.openai_base_url,
            "default_model": settings.default_openai_model,
        }
        logger.debug(
            f"OpenAI config - base_url: {config['base_url']}, model: {config['default_model']}, "
            f"api_key: {config['api_key'][:5] + '...' if config['api_key'] else 'None'}"
        )
    elif provider_name == "ollama":
        config = {
            "base_url": settings.ollama_base_url,
            "default_model": settings.default_ollama_model,
            "request_timeout": settings.llm_timeout_generate,
        }
        logger.debug(
            f"Ollama config - base_url: {config['base_url']}, model: {config['default_model']}"
        )
    else:
        logger.warning(f"Unknown provider name: {provider_name}")
        return {}
    return {k: v for k, v in config.items() if v is not None}


def _missing_requirement(provider_name: str, config: dict[str, Any]) -> str | None:
    if provider_name == "openai" and not config.get("api_key"):
        return "API key missing"
    if provider_name == "ollama" and not config.get("base_url"):
        return "base URL missing"
    return None


def _create_client(provider_name: str) -> LLMInterface | None:
    config = _get_client_config(provider_name)
    missing = _missing_requirement(provider_name, config)
    if missing:
        logger.warning(f"Cannot initialize {provider_name} client: {missing}.")
        return None

    try:
        client = _client_constructors[provider_name](**config)
    except ValueError as ve:
        logger.error(f"Configuration error initializing {provider_name} client: {ve}")
        return None
    except Exception as e:
        logger.error(
            f"Failed to initialize {provider_name} client: {e}", exc_info=True
        )
        return None

    _initialized_clients[provider_name] = client
    logger.info(f"{provider_name.capitalize()} client successfully initialized.")
    return client


def initialize_all_llm_clients():
    """Initialize every provider that has the configuration it needs."""
    logger.info("Initializing LLM clients based on available configuration...")

    successful, skipped = [], []
    for provider_name in _client_constructors:
        if provider_name in _initialized_clients:
            skipped.append(provider_name)
            continue
        # Ollama has a default base URL, so only start it when it is the default provider
        if (
            provider_name == "ollama"
            and settings.default_llm_provider.lower() != "ollama"
        ):
            skipped.append(provider_name)
            continue
        if _create_client(provider_name):
            successful.append(provider_name)
        else:
            skipped.append(provider_name)

    logger.info(
        f"LLM client initialization complete. Successful: {successful}, Skipped: {skipped}"
    )


async def close_all_llm_clients():
    """Close all initialized LLM clients."""
    if not _initialized_clients:
        logger.info("No LLM clients to close.")
        return

    for provider_name, client_instance in list(_initialized_clients.items()):
        try:
            await client_instance.close()
        except Exception as e:
            logger.error(f"Error closing {provider_name} client: {e}", exc_info=True)

    _initialized_clients.clear()
    logger.info("All LLM clients closed and cleared from cache.")


def get_llm_client(provider_name: str | None = None) -> LLMInterface | None:
    """
    Get an initialized LLM client for the specified provider.

    Defaults to the configured provider. Returns None if the provider is
    unknown or not properly configured.
    """
    provider_name = (provider_name or settings.default_llm_provider).lower()
    client = _initialized_clients.get(provider_name)
    if client:
        return client

    if provider_name not in _client_constructors:
        logger.error(
            f"Unknown provider name: {provider_name}. Available providers: {list(_client_constructors)}"
        )
        return None

    logger.info(
        f"{provider_name.capitalize()} client not pre-initialized. Attempting on-demand initialization."
    )
    return _create_client(provider_name)
