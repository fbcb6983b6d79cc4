"""Recency scoring, boosting and calendar bucketing of records."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from unified_memory.config.constants import MS_PER_DAY
from unified_memory.config.options import TemporalConfig
from unified_memory.exceptions import ValidationError
from unified_memory.models.domain import NormalizedRecord, ScoredChunk


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TemporalProcessor:
    def __init__(
        self,
        config: TemporalConfig | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config or TemporalConfig()
        self._now = now or _utc_now

    @property
    def config(self) -> TemporalConfig:
        return self._config

    def age_ms(self, record: NormalizedRecord) -> float:
        delta = as_utc(self._now()) - as_utc(record.created_at)
        return delta / timedelta(milliseconds=1)

    def recency_score(self, record: NormalizedRecord) -> float:
        """1.0 for a record created now, falling linearly to 0.0 at max_age_days."""
        age = self.age_ms(record)
        if age < 0:
            return 0.0
        score = 1 - age / (self._config.max_age_days * MS_PER_DAY)
        return min(1.0, max(0.0, score))

    def recency_scores(self, records: list[NormalizedRecord]) -> list[dict]:
        return [
            {
                "record_id": r.id,
                "score": self.recency_score(r),
                "age_days": round(self.age_ms(r) / MS_PER_DAY, 1),
            }
            for r in records
        ]

    def sort_by_recency(self, records: list[NormalizedRecord]) -> list[NormalizedRecord]:
        return sorted(records, key=lambda r: as_utc(r.created_at), reverse=True)

    def apply_recency_boost(
        self,
        results: list[ScoredChunk],
        records: dict[str, NormalizedRecord],
    ) -> list[ScoredChunk]:
        """Add ``recency_score * recency_boost`` to each score and re-sort descending.

        Chunks whose record is unknown keep their score. The sort is stable.
        """
        boosted: list[ScoredChunk] = []
        for result in results:
            record = records.get(result.record_id)
            if record is None:
                boosted.append(result)
                continue
            bonus = self.recency_score(record) * self._config.recency_boost
            boosted.append(replace(result, similarity=result.similarity + bonus))
        return sorted(boosted, key=lambda r: r.similarity, reverse=True)

    def filter_by_time_window(
        self,
        records: list[NormalizedRecord],
        after: datetime | None = None,
        before: datetime | None = None,
    ) -> list[NormalizedRecord]:
        kept = []
        for record in records:
            created = as_utc(record.created_at)
            if after is not None and created < as_utc(after):
                continue
            if before is not None and created > as_utc(before):
                continue
            kept.append(record)
        return kept

    def group_by_time_period(
        self, records: list[NormalizedRecord], period: str = "day"
    ) -> dict[str, list[NormalizedRecord]]:
        """Bucket records by UTC calendar day, week (keyed by its Sunday) or month."""
        if period not in ("day", "week", "month"):
            raise ValidationError(f"Unknown time period: {period!r}")
        groups: dict[str, list[NormalizedRecord]] = {}
        for record in records:
            groups.setdefault(period_key(record.created_at, period), []).append(record)
        return groups


def period_key(value: datetime, period: str) -> str:
    day = as_utc(value).date()
    if period == "month":
        return f"{day.year:04d}-{day.month:02d}"
    if period == "week":
        # weekday(): Monday=0 .. Sunday=6
        day -= timedelta(days=(day.weekday() + 1) % 7)
    return day.isoformat()
