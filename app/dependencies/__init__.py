from app.dependencies.llm import get_llm_client

__all__ = [
    "get_llm_client",
]
