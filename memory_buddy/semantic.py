from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import MemoryBuddyConfig

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_GOOGLE_MODEL = "text-embedding-004"
DEFAULT_FASTEMBED_MODEL = "BAAI/bge-small-en-v1.5"
GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1"


class EmbeddingError(RuntimeError):
    pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    denominator = norm_a * norm_b
    if denominator == 0:
        return 0.0
    return dot / denominator


class EmbeddingService:
    """Turns text into vectors. Subclasses implement ``embed_batch``."""

    name = "none"
    available = True

    def embed(self, text: str) -> list[float]:
        vectors = self.embed_batch([text])
        if not vectors:
            raise EmbeddingError(f"{self.name} returned no embedding")
        return vectors[0]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        raise NotImplementedError

    def close(self) -> None:
        pass


class DisabledEmbeddings(EmbeddingService):
    name = "none"
    available = False

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        raise EmbeddingError("semantic search is disabled")


class OpenAIEmbeddings(EmbeddingService):
    name = "openai"

    def __init__(self, api_key: str, model: str | None = None, timeout_s: float = 10.0) -> None:
        from openai import OpenAI

        self.model = model or DEFAULT_OPENAI_MODEL
        self.client = OpenAI(api_key=api_key, timeout=timeout_s, max_retries=0)

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        resp = self.client.embeddings.create(model=self.model, input=list(texts))
        ordered = sorted(resp.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]

    def close(self) -> None:
        self.client.close()


class GoogleEmbeddings(EmbeddingService):
    """Google Generative Language embeddings (no batch endpoint is used)."""

    name = "google"

    def __init__(self, api_key: str, model: str | None = None, timeout_s: float = 10.0) -> None:
        import httpx

        self.api_key = api_key
        self.model = model or DEFAULT_GOOGLE_MODEL
        self.client = httpx.Client(timeout=timeout_s)

    def _embed_one(self, text: str) -> list[float]:
        resp = self.client.post(
            f"{GOOGLE_API_BASE}/models/{self.model}:embedContent",
            params={"key": self.api_key},
            json={"content": {"parts": [{"text": text}]}},
        )
        if resp.status_code >= 400:
            raise EmbeddingError(f"google embeddings error {resp.status_code}: {resp.text[:200]}")
        payload = resp.json()
        values = (payload.get("embedding") or {}).get("values")
        if not isinstance(values, list):
            raise EmbeddingError("google embeddings response missing values")
        return [float(v) for v in values]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._embed_one(text) for text in texts]

    def close(self) -> None:
        self.client.close()


class FastEmbedEmbeddings(EmbeddingService):
    """Local embeddings via fastembed; works offline once the model is cached."""

    name = "fastembed"

    def __init__(self, model: str | None = None) -> None:
        try:
            from fastembed import TextEmbedding
        except Exception as exc:  # pragma: no cover
            raise RuntimeError("fastembed is required for local embeddings") from exc
        self.model = model or DEFAULT_FASTEMBED_MODEL
        self._embedder = TextEmbedding(model_name=self.model)

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [[float(v) for v in vec] for vec in self._embedder.embed(list(texts))]


def create_embedding_service(cfg: MemoryBuddyConfig) -> EmbeddingService:
    provider = (cfg.semantic_search_provider or "none").lower()
    if not cfg.semantic_search_enabled or provider == "none":
        return DisabledEmbeddings()
    api_key = cfg.semantic_search_api_key
    try:
        if provider == "openai":
            if not api_key:
                logger.warning("semantic search: missing openai api key, using keywords only")
                return DisabledEmbeddings()
            return OpenAIEmbeddings(
                api_key, model=cfg.semantic_search_model, timeout_s=cfg.embedding_timeout_s
            )
        if provider == "google":
            if not api_key:
                logger.warning("semantic search: missing google api key, using keywords only")
                return DisabledEmbeddings()
            return GoogleEmbeddings(
                api_key, model=cfg.semantic_search_model, timeout_s=cfg.embedding_timeout_s
            )
        if provider == "fastembed":
            return FastEmbedEmbeddings(model=cfg.semantic_search_model)
    except Exception as exc:
        logger.warning("semantic search: %s client init failed", provider, exc_info=exc)
        return DisabledEmbeddings()
    logger.warning("semantic search: unknown provider %r, using keywords only", provider)
    return DisabledEmbeddings()
