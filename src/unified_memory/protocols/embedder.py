"""Protocol for embedding providers."""

from __future__ import annotations

from typing import Protocol


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> list[float]: ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]: ...

    @property
    def dimensions(self) -> int: ...

    @property
    def model(self) -> str: ...
