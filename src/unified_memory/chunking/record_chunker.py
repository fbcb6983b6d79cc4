"""Record chunker: fixed-size, semantic (paragraph) and relational strategies."""

from __future__ import annotations

import re

from unified_memory.config.constants import TITLE_CHUNK_PROPERTIES
from unified_memory.config.options import ChunkingConfig
from unified_memory.models.domain import ChunkMethod, NormalizedRecord, RetrievableUnit

_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def chunk_id_for(record_id: str, index: int) -> str:
    return f"{record_id}:chunk:{index}"


def extract_text(record: NormalizedRecord) -> str:
    """Title and body joined by a blank line."""
    return "\n\n".join(part for part in (record.title, record.body) if part)


def _paragraph_spans(text: str) -> list[tuple[int, int]]:
    """(start, end) offsets of each non-blank paragraph in ``text``."""
    spans = []
    start = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        spans.append((start, match.start()))
        start = match.end()
    spans.append((start, len(text)))
    return [(s, e) for s, e in spans if text[s:e].strip()]


class RecordChunker:
    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self._config = config or ChunkingConfig()

    @property
    def config(self) -> ChunkingConfig:
        return self._config

    def chunk(self, record: NormalizedRecord) -> list[RetrievableUnit]:
        strategy = self._config.strategy
        if strategy is ChunkMethod.FIXED_SIZE:
            return self._chunk_fixed_size(record, extract_text(record))
        if strategy is ChunkMethod.SEMANTIC:
            return self._chunk_semantic(record)
        return self._chunk_relational(record)

    def chunk_many(self, records: list[NormalizedRecord]) -> list[RetrievableUnit]:
        units: list[RetrievableUnit] = []
        for record in records:
            units.extend(self.chunk(record))
        return units

    def _chunk_fixed_size(
        self,
        record: NormalizedRecord,
        text: str,
        method: ChunkMethod = ChunkMethod.FIXED_SIZE,
    ) -> list[RetrievableUnit]:
        if not text.strip():
            return []

        max_size = self._config.max_chunk_size
        overlap = self._config.overlap
        units: list[RetrievableUnit] = []
        start = 0

        while start < len(text):
            end = min(start + max_size, len(text))
            units.append(
                self._make_unit(
                    record,
                    len(units),
                    text[start:end],
                    method,
                    self._display_metadata(record, start, end),
                )
            )
            start += max_size - overlap
            # Remainder shorter than the overlap means the window just emitted
            # already reached the end of the text.
            if len(text) - start < overlap:
                break

        return units

    def _chunk_semantic(self, record: NormalizedRecord) -> list[RetrievableUnit]:
        text = extract_text(record)
        units: list[RetrievableUnit] = []
        buffer = ""
        span = (0, 0)

        for start, end in _paragraph_spans(text):
            paragraph = text[start:end]
            if buffer and len(buffer) + len(paragraph) > self._config.max_chunk_size:
                units.append(
                    self._make_unit(
                        record,
                        len(units),
                        buffer.strip(),
                        ChunkMethod.SEMANTIC,
                        self._display_metadata(record, *span),
                    )
                )
                buffer = ""
            if buffer:
                buffer = f"{buffer}\n\n{paragraph}"
                span = (span[0], end)
            else:
                buffer = paragraph
                span = (start, end)

        if buffer.strip():
            units.append(
                self._make_unit(
                    record,
                    len(units),
                    buffer.strip(),
                    ChunkMethod.SEMANTIC,
                    self._display_metadata(record, *span),
                )
            )
        return units

    def _chunk_relational(self, record: NormalizedRecord) -> list[RetrievableUnit]:
        units: list[RetrievableUnit] = []

        if record.title:
            units.append(
                self._make_unit(
                    record,
                    0,
                    self._build_title_block(record),
                    ChunkMethod.RELATIONAL,
                    {
                        "chunk_type": "title",
                        "platform": record.source_system,
                        "object_type": record.record_kind,
                        "created_at": record.created_at.isoformat(),
                    },
                )
            )

        if record.body:
            offset = len(units)
            for body_unit in self._chunk_fixed_size(record, record.body, ChunkMethod.RELATIONAL):
                index = offset + body_unit.index
                units.append(
                    RetrievableUnit(
                        chunk_id=chunk_id_for(record.id, index),
                        record_id=record.id,
                        index=index,
                        content=body_unit.content,
                        method=ChunkMethod.RELATIONAL,
                        metadata={**body_unit.metadata, "chunk_type": "body"},
                    )
                )
        return units

    @staticmethod
    def _build_title_block(record: NormalizedRecord) -> str:
        lines = [
            f"Title: {record.title}",
            f"Platform: {record.source_system}",
            f"Type: {record.record_kind}",
        ]
        for prop in TITLE_CHUNK_PROPERTIES:
            value = record.properties.get(prop)
            if value:
                lines.append(f"{prop.capitalize()}: {value}")
        labels = record.properties.get("labels")
        if labels:
            lines.append(f"Labels: {', '.join(str(label) for label in labels)}")
        return "\n".join(lines)

    def _display_metadata(self, record: NormalizedRecord, start: int, end: int) -> dict:
        if not self._config.preserve_metadata:
            return {}
        return {
            "char_start": start,
            "char_end": end,
            "platform": record.source_system,
            "object_type": record.record_kind,
            "title": record.title,
            "created_at": record.created_at.isoformat(),
        }

    @staticmethod
    def _make_unit(
        record: NormalizedRecord,
        index: int,
        content: str,
        method: ChunkMethod,
        metadata: dict,
    ) -> RetrievableUnit:
        return RetrievableUnit(
            chunk_id=chunk_id_for(record.id, index),
            record_id=record.id,
            index=index,
            content=content,
            method=method,
            metadata=metadata,
        )


def chunk(record: NormalizedRecord, config: ChunkingConfig | None = None) -> list[RetrievableUnit]:
    """Chunk a single record with the given options."""
    return RecordChunker(config).chunk(record)
