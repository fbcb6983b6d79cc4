"""OpenAI embedding provider for record chunks and retrieval queries."""

from __future__ import annotations

from openai import AsyncOpenAI

from unified_memory.exceptions import ProviderError
from unified_memory.observability.logger import get_logger

logger = get_logger("embeddings")


class OpenAIEmbedder:
    """Embeds chunk batches at ingestion and single queries at retrieval.

    Vectors are requested at the configured ``dimensions`` so every stored
    chunk is comparable with every query. A response of any other width is a
    provider error rather than a silently unsearchable chunk.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        dimensions: int = 1536,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model
        self._batch_size = batch_size
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            vectors.extend(await self._create(texts[i : i + self._batch_size]))
        logger.info("chunks_embedded", count=len(texts), model=self._model)
        return vectors

    async def embed(self, text: str) -> list[float]:
        return (await self._create([text]))[0]

    async def _create(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(
                input=batch, model=self._model, dimensions=self._dimensions
            )
        except Exception as e:
            raise ProviderError(
                f"Failed to embed {len(batch)} texts with {self._model}: {e}"
            ) from e
        vectors = [item.embedding for item in response.data]
        if len(vectors) != len(batch):
            raise ProviderError(f"Expected {len(batch)} embeddings, got {len(vectors)}")
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise ProviderError(
                    f"{self._model} returned {len(vector)}-d vectors, expected {self._dimensions}"
                )
        return vectors
