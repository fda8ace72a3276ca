"""Exponential-decay freshness report over indexed files.

A file indexed after its last modification is fully fresh. Otherwise
freshness decays as ``exp(-lambda * hours)`` where *hours* is how long
the file has been modified past its index time. With the default
lambda of 0.001 that is roughly 0.976 after a day and 0.487 after
thirty days.

Read-only: nothing here writes to storage.
"""

from __future__ import annotations

import asyncio
import logging
import math
import os
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from indexwarden.config import Settings
from indexwarden.constants import FreshnessStatus
from indexwarden.repositories.protocols import KnowledgeStorage

logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, UTC)

_ACTIONS: dict[FreshnessStatus, str] = {
    FreshnessStatus.FRESH: "No action needed: file is up to date.",
    FreshnessStatus.STALE: (
        "Schedule re-indexing: file has changed since it was indexed "
        "and may carry outdated knowledge."
    ),
    FreshnessStatus.CRITICAL: (
        "Urgent: re-index immediately. Knowledge is critically stale "
        "and likely unreliable."
    ),
}
_ACTION_ERROR = (
    "Investigate error: unable to check file status. "
    "Check file permissions and path validity."
)
_ACTION_DELETED = (
    "Consider removing from index: file no longer exists on disk."
)
_ACTION_UNINDEXED = (
    "High priority: index this file as it has never been indexed."
)


class FreshnessResult(BaseModel):
    path: str
    last_modified: datetime
    last_indexed: datetime
    freshness_score: float
    status: FreshnessStatus
    recommended_action: str


class FreshnessReport(BaseModel):
    total_files: int = 0
    fresh_count: int = 0
    stale_count: int = 0
    critical_count: int = 0
    average_freshness: float = 1.0
    stale_files: list[FreshnessResult] = Field(
        default_factory=lambda: list[FreshnessResult]()
    )


def compute_freshness(
    last_modified: datetime,
    last_indexed: datetime,
    decay_lambda: float = 0.001,
) -> float:
    """Score in [0, 1]; 1.0 when the index is at least as new as the file."""
    if decay_lambda == 0:
        return 1.0
    if last_indexed >= last_modified:
        return 1.0
    hours = (last_modified - last_indexed).total_seconds() / 3600
    return max(0.0, min(1.0, math.exp(-decay_lambda * hours)))


def classify_freshness(
    score: float, *, stale_threshold: float, critical_threshold: float
) -> FreshnessStatus:
    if score >= stale_threshold:
        return FreshnessStatus.FRESH
    if score >= critical_threshold:
        return FreshnessStatus.STALE
    return FreshnessStatus.CRITICAL


class FreshnessDetector:
    """Scores indexed files against their on-disk modification times."""

    def __init__(
        self,
        storage: KnowledgeStorage,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self._storage = storage
        self._lambda = settings.freshness_decay_lambda
        self._stale = settings.freshness_stale_threshold
        self._critical = settings.freshness_critical_threshold

    async def check_file(self, path: str) -> FreshnessResult:
        now = datetime.now(UTC)
        mtime = await asyncio.to_thread(file_mtime, path)
        record = await self._storage.get_file_by_path(path)
        indexed_at = (
            as_utc(record.last_indexed)
            if record is not None and record.last_indexed is not None
            else None
        )

        if mtime is None and indexed_at is None:
            return self._critical_result(path, now, now, _ACTION_ERROR)
        if indexed_at is None:
            return self._critical_result(
                path, mtime or now, _EPOCH, _ACTION_UNINDEXED
            )
        if mtime is None:
            return self._critical_result(
                path, _EPOCH, indexed_at, _ACTION_DELETED
            )

        score = compute_freshness(mtime, indexed_at, self._lambda)
        status = classify_freshness(
            score,
            stale_threshold=self._stale,
            critical_threshold=self._critical,
        )
        if status is not FreshnessStatus.FRESH:
            logger.debug("%s is %s (score %.3f)", path, status, score)
        return FreshnessResult(
            path=path,
            last_modified=mtime,
            last_indexed=indexed_at,
            freshness_score=score,
            status=status,
            recommended_action=_ACTIONS[status],
        )

    async def generate_report(
        self, limit: int | None = None
    ) -> FreshnessReport:
        """Score every indexed file; *limit* caps the stale list only."""
        files = await self._storage.list_files()
        if not files:
            return FreshnessReport()

        results = [await self.check_file(f.path) for f in files]
        counts = {s: 0 for s in FreshnessStatus}
        for r in results:
            counts[r.status] += 1

        stale = sorted(
            (r for r in results if r.status is not FreshnessStatus.FRESH),
            key=lambda r: r.freshness_score,
        )
        if limit is not None and limit > 0:
            stale = stale[:limit]

        report = FreshnessReport(
            total_files=len(results),
            fresh_count=counts[FreshnessStatus.FRESH],
            stale_count=counts[FreshnessStatus.STALE],
            critical_count=counts[FreshnessStatus.CRITICAL],
            average_freshness=(
                sum(r.freshness_score for r in results) / len(results)
            ),
            stale_files=stale,
        )
        logger.info(
            "Freshness: %d files, %d stale, %d critical",
            report.total_files,
            report.stale_count,
            report.critical_count,
        )
        return report

    def _critical_result(
        self,
        path: str,
        last_modified: datetime,
        last_indexed: datetime,
        action: str,
    ) -> FreshnessResult:
        return FreshnessResult(
            path=path,
            last_modified=last_modified,
            last_indexed=last_indexed,
            freshness_score=0.0,
            status=FreshnessStatus.CRITICAL,
            recommended_action=action,
        )


def file_mtime(path: str) -> datetime | None:
    try:
        return datetime.fromtimestamp(os.stat(path).st_mtime, UTC)
    except OSError:
        return None


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are UTC.
    return value if value.tzinfo else value.replace(tzinfo=UTC)
