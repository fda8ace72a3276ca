"""Consistency verdict pipeline.

Resolves a changeset, runs the six checks in a fixed order and folds
their statuses into one Verdict. Storage that cannot be opened or was
never bootstrapped yields ``unchecked`` without running any check.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from indexwarden.changes.git_changes import resolve_changeset
from indexwarden.changes.schemas import ChangeSet, ResolvedChanges
from indexwarden.checks.consistency import (
    check_broken_imports,
    check_call_graph_integrity,
    check_coverage_regression,
    check_orphaned_claims,
    check_stale_context,
    check_wisdom_coverage,
)
from indexwarden.checks.schemas import CheckResult, Verdict
from indexwarden.config import Settings
from indexwarden.constants import (
    BOOTSTRAP_HINT,
    CONTEXT_PACK_PROBE_LIMIT,
    WISDOM_COVERAGE_MIN_FUNCTIONS,
    WISDOM_COVERAGE_THRESHOLD,
    CheckStatus,
    VerdictStatus,
)
from indexwarden.errors import (
    ErrorClass,
    IndexWardenError,
    StorageUnavailableError,
    classify_error,
    describe_error,
)
from indexwarden.repositories.protocols import KnowledgeStorage

logger = logging.getLogger(__name__)

ChangesetProvider = Callable[[Path, str], Awaitable[ChangeSet]]


async def run_checks(
    storage: KnowledgeStorage,
    workspace_root: Path,
    changes: ResolvedChanges,
    *,
    wisdom_min_functions: int = WISDOM_COVERAGE_MIN_FUNCTIONS,
    wisdom_threshold: float = WISDOM_COVERAGE_THRESHOLD,
    probe_limit: int = CONTEXT_PACK_PROBE_LIMIT,
) -> list[CheckResult]:
    """All six checks, in report order. Read-only."""
    changed = changes.changed_existing
    return [
        await check_stale_context(storage, workspace_root, changed),
        await check_broken_imports(storage, workspace_root, changes.deleted),
        await check_orphaned_claims(storage, workspace_root, changed),
        await check_coverage_regression(
            storage, workspace_root, changed, probe_limit=probe_limit
        ),
        await check_call_graph_integrity(storage, workspace_root, changed),
        await check_wisdom_coverage(
            storage,
            workspace_root,
            min_functions=wisdom_min_functions,
            threshold=wisdom_threshold,
        ),
    ]


def aggregate_status(checks: list[CheckResult]) -> VerdictStatus:
    statuses = {c.status for c in checks}
    if CheckStatus.FAIL in statuses:
        return VerdictStatus.FAIL
    if CheckStatus.WARN in statuses:
        return VerdictStatus.WARN
    return VerdictStatus.PASS


def summarize(checks: list[CheckResult]) -> str:
    counts = {s: 0 for s in CheckStatus}
    for c in checks:
        counts[c.status] += 1
    return (
        f"checks={len(checks)} pass={counts[CheckStatus.PASS]} "
        f"warn={counts[CheckStatus.WARN]} fail={counts[CheckStatus.FAIL]}"
    )


def build_verdict(diff: str, checks: list[CheckResult]) -> Verdict:
    return Verdict(
        status=aggregate_status(checks),
        diff=diff,
        checks=checks,
        summary=summarize(checks),
    )


def unchecked_verdict(diff: str, reason: str = BOOTSTRAP_HINT) -> Verdict:
    return Verdict(
        status=VerdictStatus.UNCHECKED,
        diff=diff,
        checks=[],
        summary=reason,
    )


async def run_consistency_check(
    storage: KnowledgeStorage,
    workspace_root: Path,
    diff: str,
    *,
    settings: Settings | None = None,
    changeset_provider: ChangesetProvider = resolve_changeset,
) -> Verdict:
    """Resolve *diff* against *workspace_root* and run every check.

    Storage failures and an un-bootstrapped index both produce an
    ``unchecked`` verdict. A changeset provider failure degrades to an
    empty changeset.
    """
    try:
        if not await storage.is_bootstrapped():
            logger.info("Index not bootstrapped; verdict is unchecked")
            return unchecked_verdict(diff)
    except StorageUnavailableError as e:
        logger.warning("Storage unavailable: %s", describe_error(e))
        return unchecked_verdict(diff, f"{BOOTSTRAP_HINT} ({e})")

    changeset = await _load_changeset(changeset_provider, workspace_root, diff)
    changes = changeset.resolve(workspace_root)
    logger.info(
        "Checking %d changed and %d deleted files (diff=%s)",
        len(changes.changed_existing),
        len(changes.deleted),
        diff,
    )

    try:
        if settings is None:
            checks = await run_checks(storage, workspace_root, changes)
        else:
            checks = await run_checks(
                storage,
                workspace_root,
                changes,
                wisdom_min_functions=settings.wisdom_min_functions,
                wisdom_threshold=settings.wisdom_threshold,
                probe_limit=settings.context_pack_probe_limit,
            )
    except StorageUnavailableError as e:
        logger.warning("Storage failed mid-check: %s", describe_error(e))
        return unchecked_verdict(diff, f"{BOOTSTRAP_HINT} ({e})")

    verdict = build_verdict(diff, checks)
    logger.info("Verdict %s: %s", verdict.status, verdict.summary)
    return verdict


def exit_code(verdict: Verdict) -> int:
    if verdict.status == VerdictStatus.FAIL:
        return 1
    if verdict.status == VerdictStatus.UNCHECKED:
        return 2
    return 0


async def _load_changeset(
    provider: ChangesetProvider, workspace_root: Path, diff: str
) -> ChangeSet:
    try:
        return await provider(workspace_root, diff)
    except (IndexWardenError, OSError) as e:
        if classify_error(e) is ErrorClass.FATAL:
            raise
        logger.warning(
            "Changeset unavailable for %s, treating as empty: %s",
            diff,
            describe_error(e),
        )
        return ChangeSet()
