"""
Embedding Service for Legal Retrieval

Query embeddings from Azure OpenAI (text-embedding-3-large, 3072 dims, the
model the stored passage vectors were built with), with Voyage AI and Cohere
as alternative providers.

Rate-limit responses (HTTP 429) are retried with exponential backoff and
jitter; every other provider error is raised immediately. Exhausting the
retry budget raises EmbeddingTimeoutError.

Architecture:
    BaseEmbeddingService  -- shared caching and rate-limit retry, embed_query
        AzureOpenAIEmbeddingService  -- Azure OpenAI provider (default)
        VoyageEmbeddingService       -- Voyage AI provider
        CohereEmbeddingService       -- Cohere embed-v3 provider
"""

import os
import time
import random
import hashlib
import logging
import threading
from typing import Optional
from dataclasses import dataclass

from .errors import EmbeddingRateLimitError, EmbeddingTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for embedding service."""
    provider: str = "azure_openai"  # "azure_openai", "voyage" or "cohere"
    model: str = "text-embedding-3-large"
    dimensions: int = 3072
    request_timeout: float = 15.0
    max_attempts: int = 3
    base_delay: float = 2.0
    use_cache: bool = True
    max_cache_entries: int = 2048


def is_rate_limit_error(exc: Exception) -> bool:
    """True for provider errors that mean "slow down" (HTTP 429)."""
    if isinstance(exc, EmbeddingRateLimitError):
        return True
    for attr in ("status_code", "http_status"):
        if getattr(exc, attr, None) == 429:
            return True
    message = str(exc).lower()
    return "429" in message or "rate limit" in message


class BaseEmbeddingService:
    """
    Base class for API-based query embedding.

    Provides shared functionality:
    - In-memory cache keyed by model and text
    - Bounded retry with exponential backoff on rate limits only

    Subclasses only need to implement:
    - _init_client(): Initialize the provider-specific API client
    - _embed(text): One provider call returning a single vector
    """

    _provider_name: str = "Base"
    _env_var_name: str = ""

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or EmbeddingConfig()
        self._client = None
        self._cache = {}
        self._cache_lock = threading.Lock()
        self._init_client()

    def _init_client(self):
        """Initialize the provider-specific API client. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _init_client()")

    def _embed(self, text: str) -> list[float]:
        raise NotImplementedError("Subclasses must implement _embed()")

    def embed_query(self, query: str) -> list[float]:
        """
        Generate the embedding for a search query.

        Args:
            query: Search query string

        Returns:
            Embedding vector

        Raises:
            EmbeddingTimeoutError: rate-limit retries exhausted or the call timed out
        """
        if not self._client:
            raise RuntimeError(
                f"{self._provider_name} client not initialized. "
                f"Check {self._env_var_name}."
            )

        cache_key = self._get_cache_key(query)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        embedding = self._embed_with_retry(query)
        self._set_cached(cache_key, embedding)
        return embedding

    # Orchestrator-facing name
    generate_embedding = embed_query

    def _embed_with_retry(self, text: str) -> list[float]:
        attempts = self.config.max_attempts
        for attempt in range(attempts):
            try:
                return self._embed(text)
            except EmbeddingTimeoutError:
                logger.error(f"{self._provider_name} embedding timed out for: {text[:100]}")
                raise
            except Exception as e:
                if not is_rate_limit_error(e):
                    logger.error(f"{self._provider_name} embedding failed: {e}")
                    raise
                if attempt >= attempts - 1:
                    raise EmbeddingTimeoutError(
                        f"Embedding generation timeout: rate limited {attempts} times"
                    ) from e
                delay = self.config.base_delay * (2 ** attempt) + random.uniform(0.5, 1.5)
                logger.warning(
                    f"{self._provider_name} rate limit hit, retry {attempt + 1}/{attempts} "
                    f"after {delay:.1f}s"
                )
                time.sleep(delay)
        raise EmbeddingTimeoutError("Embedding generation timeout")

    def _get_cache_key(self, text: str) -> str:
        content = f"{self.config.model}:{self.config.dimensions}:{text}"
        return hashlib.sha256(content.encode()).hexdigest()[:32]

    def _get_cached(self, key: str) -> Optional[list[float]]:
        if not self.config.use_cache:
            return None
        with self._cache_lock:
            return self._cache.get(key)

    def _set_cached(self, key: str, embedding: list[float]) -> None:
        if not self.config.use_cache:
            return
        with self._cache_lock:
            if len(self._cache) >= self.config.max_cache_entries:
                self._cache.pop(next(iter(self._cache)))
            self._cache[key] = embedding

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self.config.dimensions


class AzureOpenAIEmbeddingService(BaseEmbeddingService):
    """
    Azure OpenAI embeddings (EU data residency).

    The deployment name equals the model name (text-embedding-3-large) and the
    vector is truncated server-side to ``config.dimensions``.
    """

    _provider_name = "Azure OpenAI"
    _env_var_name = "AZURE_OPENAI_KEY"

    def _init_client(self):
        """Initialize the Azure OpenAI client."""
        api_key = os.getenv("AZURE_OPENAI_KEY")
        endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")

        if not api_key or not endpoint:
            logger.warning(
                "AZURE_OPENAI_KEY or AZURE_OPENAI_ENDPOINT not found. Embeddings will fail. "
                "Set the environment variables or use a different provider."
            )
            return

        try:
            import openai
            self._openai = openai
            self._client = openai.AzureOpenAI(
                api_key=api_key,
                azure_endpoint=endpoint.rstrip("/"),
                api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
                timeout=self.config.request_timeout,
                max_retries=0,  # retries are ours (rate limits only)
            )
            logger.info(f"Azure OpenAI client initialized with model {self.config.model}")
        except ImportError:
            logger.error("openai package not installed. Run: pip install openai")
            raise

    def _embed(self, text: str) -> list[float]:
        try:
            response = self._client.embeddings.create(
                model=self.config.model,
                input=text,
                dimensions=self.config.dimensions,
            )
        except self._openai.APITimeoutError as e:
            raise EmbeddingTimeoutError("Embedding generation timeout") from e
        except self._openai.RateLimitError as e:
            raise EmbeddingRateLimitError(str(e)) from e
        return list(response.data[0].embedding)


class VoyageEmbeddingService(BaseEmbeddingService):
    """Embedding service using Voyage AI."""

    _provider_name = "Voyage AI"
    _env_var_name = "VOYAGE_API_KEY"

    def _init_client(self):
        """Initialize the Voyage AI client."""
        api_key = os.getenv("VOYAGE_API_KEY")

        if not api_key:
            logger.warning(
                "VOYAGE_API_KEY not found. Embeddings will fail. "
                "Get your API key at https://dash.voyageai.com/"
            )
            return

        try:
            import voyageai
            self._client = voyageai.Client(
                api_key=api_key,
                max_retries=0,
                timeout=self.config.request_timeout,
            )
            logger.info(f"Voyage AI client initialized with model {self.config.model}")
        except ImportError:
            logger.error("voyageai package not installed. Run: pip install voyageai")
            raise

    def _embed(self, text: str) -> list[float]:
        response = self._client.embed(texts=[text], model=self.config.model, input_type="query")
        return list(response.embeddings[0])


class CohereEmbeddingService(BaseEmbeddingService):
    """Embedding service using Cohere's embed-v3 models."""

    _provider_name = "Cohere"
    _env_var_name = "COHERE_API_KEY"

    def _init_client(self):
        """Initialize the Cohere client."""
        api_key = os.getenv("COHERE_API_KEY")

        if not api_key:
            logger.warning(
                "COHERE_API_KEY not found. Embeddings will fail. "
                "Set the environment variable or use a different provider."
            )
            return

        try:
            import cohere
            self._client = cohere.Client(api_key, timeout=self.config.request_timeout)
            logger.info(f"Cohere client initialized with model {self.config.model}")
        except ImportError:
            logger.error("Cohere package not installed. Run: pip install cohere")
            raise

    def _embed(self, text: str) -> list[float]:
        response = self._client.embed(
            texts=[text],
            model=self.config.model,
            input_type="search_query",
        )
        return list(response.embeddings[0])


def get_embedding_service(provider: Optional[str] = None) -> BaseEmbeddingService:
    """
    Factory function to get the configured embedding service.

    Args:
        provider: "azure_openai" (default), "voyage" or "cohere";
            falls back to EMBEDDING_PROVIDER

    Returns:
        Configured embedding service
    """
    prov = provider or os.getenv("EMBEDDING_PROVIDER", "azure_openai")

    if prov == "voyage":
        return VoyageEmbeddingService(EmbeddingConfig(
            provider="voyage",
            model="voyage-multilingual-2",
            dimensions=1024,
        ))

    if prov == "cohere":
        return CohereEmbeddingService(EmbeddingConfig(
            provider="cohere",
            model="embed-multilingual-v3.0",
            dimensions=1024,
        ))

    return AzureOpenAIEmbeddingService(EmbeddingConfig(
        provider="azure_openai",
        model="text-embedding-3-large",
        dimensions=3072,
    ))
