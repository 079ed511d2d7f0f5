"""LLM and embedding provider factory, selected entirely by configuration.

Supported LLM providers:  openai | google_genai | anthropic | ollama
Supported Embedding providers:  openai | google_genai | ollama
"""

from __future__ import annotations

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from docqa.config import Settings, get_settings
from docqa.errors import ConfigurationError
from docqa.logger import get_logger

logger = get_logger(__name__)


def _require_key(value: str, env_name: str, provider: str) -> str:
    if not value:
        raise ConfigurationError(
            f"{env_name} is required for the '{provider}' provider",
            provider=provider,
        )
    return value


# ── LLM Factory ─────────────────────────────────────────────────────────────


def get_llm(settings: Settings | None = None) -> BaseChatModel:
    """Return a LangChain ChatModel based on config. Provider-agnostic."""
    settings = settings or get_settings()
    provider = settings.llm_provider

    logger.info(
        "Initialising LLM",
        provider=provider,
        model=settings.llm_model,
    )

    match provider:
        case "openai":
            from langchain_openai import ChatOpenAI

            return ChatOpenAI(
                model=settings.llm_model,
                api_key=_require_key(settings.openai_api_key, "OPENAI_API_KEY", provider),
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
                max_retries=0,
            )

        case "google_genai":
            from langchain_google_genai import ChatGoogleGenerativeAI

            return ChatGoogleGenerativeAI(
                model=settings.llm_model,
                google_api_key=_require_key(settings.google_api_key, "GOOGLE_API_KEY", provider),
                temperature=settings.llm_temperature,
                max_output_tokens=settings.llm_max_tokens,
            )

        case "anthropic":
            from langchain_anthropic import ChatAnthropic

            return ChatAnthropic(
                model=settings.llm_model,
                api_key=_require_key(settings.anthropic_api_key, "ANTHROPIC_API_KEY", provider),
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
            )

        case "ollama":
            from langchain_community.chat_models import ChatOllama

            return ChatOllama(
                model=settings.llm_model,
                base_url=settings.ollama_base_url,
                temperature=settings.llm_temperature,
            )

        case _:
            raise ConfigurationError(f"Unsupported LLM provider: {provider}")


# ── Embedding Factory ────────────────────────────────────────────────────────


def get_embeddings(settings: Settings | None = None) -> Embeddings:
    """Return a LangChain Embeddings model based on config. Provider-agnostic."""
    settings = settings or get_settings()
    provider = settings.embedding_provider

    logger.info(
        "Initialising Embeddings",
        provider=provider,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )

    match provider:
        case "openai":
            from langchain_openai import OpenAIEmbeddings

            return OpenAIEmbeddings(
                model=settings.embedding_model,
                api_key=_require_key(settings.openai_api_key, "OPENAI_API_KEY", provider),
                dimensions=settings.embedding_dimensions,
                chunk_size=settings.embedding_batch_size,
                max_retries=0,
            )

        case "google_genai":
            from langchain_google_genai import GoogleGenerativeAIEmbeddings

            return GoogleGenerativeAIEmbeddings(
                model=f"models/{settings.embedding_model}",
                google_api_key=_require_key(settings.google_api_key, "GOOGLE_API_KEY", provider),
                task_type="RETRIEVAL_DOCUMENT",
            )

        case "ollama":
            from langchain_community.embeddings import OllamaEmbeddings

            return OllamaEmbeddings(
                model=settings.embedding_model,
                base_url=settings.ollama_base_url,
            )

        case _:
            raise ConfigurationError(f"Unsupported embedding provider: {provider}")
