"""Tests for verdict aggregation and the check pipeline."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from indexwarden.changes.schemas import ChangeSet, RenamedPath
from indexwarden.checks import (
    CheckResult,
    build_verdict,
    exit_code,
    run_consistency_check,
    unchecked_verdict,
)
from indexwarden.checks.pipeline import aggregate_status, summarize
from indexwarden.config import Settings
from indexwarden.constants import (
    BOOTSTRAP_HINT,
    REPORT_KIND,
    CheckName,
    CheckStatus,
    EdgeType,
    EntityType,
    VerdictStatus,
)
from indexwarden.errors import ChangesetError, StorageUnavailableError
from indexwarden.models import ContextPackRecord, GraphEdgeRecord
from indexwarden.repositories.fakes import FakeKnowledgeStorage


def _provider(changeset: ChangeSet):
    calls: list[tuple[Path, str]] = []

    async def provide(root: Path, diff: str) -> ChangeSet:
        calls.append((root, diff))
        return changeset

    provide.calls = calls  # type: ignore[attr-defined]
    return provide


def _result(status: CheckStatus, name: str = "x") -> CheckResult:
    return CheckResult(name=name, status=status, message="m")


# ── aggregation ──────────────────────────────────────────────


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([], VerdictStatus.PASS),
        ([CheckStatus.PASS, CheckStatus.PASS], VerdictStatus.PASS),
        ([CheckStatus.PASS, CheckStatus.WARN], VerdictStatus.WARN),
        ([CheckStatus.WARN, CheckStatus.FAIL], VerdictStatus.FAIL),
        ([CheckStatus.FAIL, CheckStatus.PASS], VerdictStatus.FAIL),
    ],
)
def test_aggregate_status(
    statuses: list[CheckStatus], expected: VerdictStatus
) -> None:
    assert aggregate_status([_result(s) for s in statuses]) == expected


def test_summary_counts() -> None:
    checks = [
        _result(CheckStatus.PASS),
        _result(CheckStatus.PASS),
        _result(CheckStatus.WARN),
        _result(CheckStatus.FAIL),
    ]
    assert summarize(checks) == "checks=4 pass=2 warn=1 fail=1"


def test_build_verdict() -> None:
    verdict = build_verdict("HEAD~1", [_result(CheckStatus.WARN)])
    assert verdict.kind == REPORT_KIND
    assert verdict.status == VerdictStatus.WARN
    assert verdict.diff == "HEAD~1"
    assert verdict.summary == "checks=1 pass=0 warn=1 fail=0"


def test_unchecked_verdict_has_no_checks() -> None:
    verdict = unchecked_verdict("working-tree")
    assert verdict.status == VerdictStatus.UNCHECKED
    assert verdict.checks == []
    assert verdict.summary == BOOTSTRAP_HINT


@pytest.mark.parametrize(
    ("status", "code"),
    [
        (VerdictStatus.PASS, 0),
        (VerdictStatus.WARN, 0),
        (VerdictStatus.FAIL, 1),
        (VerdictStatus.UNCHECKED, 2),
    ],
)
def test_exit_code(status: VerdictStatus, code: int) -> None:
    verdict = build_verdict("d", []).model_copy(update={"status": status})
    assert exit_code(verdict) == code


# ── run_consistency_check ────────────────────────────────────


async def test_not_bootstrapped_is_unchecked_without_queries(
    workspace: Path,
) -> None:
    storage = FakeKnowledgeStorage(bootstrapped=False)
    provider = _provider(ChangeSet(modified=["a.ts"]))

    verdict = await run_consistency_check(
        storage, workspace, "working-tree", changeset_provider=provider
    )

    assert verdict.status == VerdictStatus.UNCHECKED
    assert verdict.checks == []
    assert storage.query_count == 1
    assert provider.calls == []


async def test_unavailable_storage_is_unchecked(workspace: Path) -> None:
    storage = FakeKnowledgeStorage()
    storage.unavailable = True

    verdict = await run_consistency_check(
        storage,
        workspace,
        "working-tree",
        changeset_provider=_provider(ChangeSet()),
    )

    assert verdict.status == VerdictStatus.UNCHECKED
    assert verdict.summary.startswith(BOOTSTRAP_HINT)
    assert exit_code(verdict) == 2


async def test_storage_failure_mid_check_is_unchecked(
    workspace: Path,
) -> None:
    class FlakyStorage(FakeKnowledgeStorage):
        async def get_file_by_path(self, path: str):  # type: ignore[override]
            raise StorageUnavailableError("disk I/O error")

    verdict = await run_consistency_check(
        FlakyStorage(),
        workspace,
        "working-tree",
        changeset_provider=_provider(ChangeSet(modified=["a.ts"])),
    )

    assert verdict.status == VerdictStatus.UNCHECKED
    assert "disk I/O error" in verdict.summary


async def test_empty_changeset_passes_every_check(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    verdict = await run_consistency_check(
        storage,
        workspace,
        "working-tree",
        changeset_provider=_provider(ChangeSet()),
    )

    assert verdict.status == VerdictStatus.PASS
    assert [c.name for c in verdict.checks] == list(CheckName)
    assert verdict.summary == "checks=6 pass=6 warn=0 fail=0"


async def test_changeset_failure_degrades_to_empty(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    async def broken(root: Path, diff: str) -> ChangeSet:
        raise ChangesetError("bad revision")

    verdict = await run_consistency_check(
        storage, workspace, "nope", changeset_provider=broken
    )

    assert verdict.status == VerdictStatus.PASS
    assert verdict.diff == "nope"


async def test_provider_receives_workspace_and_diff(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    provider = _provider(ChangeSet())
    await run_consistency_check(
        storage, workspace, "main...HEAD", changeset_provider=provider
    )
    assert provider.calls == [(workspace, "main...HEAD")]


async def test_scenario_verdict(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    """Stale, broken import and uncovered file in one diff."""
    a = workspace / "a.ts"
    a.write_text("export const a = 1;\n", encoding="utf-8")
    storage.add_file(str(a), last_indexed=None)

    b_rec = storage.add_file(str(workspace / "b.ts"), datetime.now(UTC))
    c_rec = storage.add_file(str(workspace / "c.ts"), datetime.now(UTC))
    storage.add(
        GraphEdgeRecord(
            from_id=c_rec.id,
            from_type=EntityType.FILE,
            to_id=b_rec.id,
            to_type=EntityType.FILE,
            edge_type=EdgeType.IMPORTS,
            source_file=str(workspace / "c.ts"),
        )
    )
    changeset = ChangeSet(modified=["a.ts"], deleted=["b.ts"])

    verdict = await run_consistency_check(
        storage, workspace, "HEAD~1", changeset_provider=_provider(changeset)
    )

    by_name = {c.name: c for c in verdict.checks}
    assert verdict.status == VerdictStatus.FAIL
    assert by_name[CheckName.STALE_CONTEXT].status == CheckStatus.FAIL
    assert by_name[CheckName.STALE_CONTEXT].files == ["a.ts"]
    assert by_name[CheckName.BROKEN_IMPORTS].files == ["c.ts"]
    assert by_name[CheckName.COVERAGE_REGRESSION].metrics == {
        "coverage_percent": 0
    }
    assert exit_code(verdict) == 1


async def test_rename_counts_as_delete_and_add(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    new = workspace / "new.ts"
    new.write_text("x\n", encoding="utf-8")
    storage.add_file(str(new), datetime.now(UTC))
    storage.add(ContextPackRecord(related_files=[str(new)]))

    changeset = ChangeSet(renamed=[RenamedPath(old="old.ts", new="new.ts")])
    verdict = await run_consistency_check(
        storage, workspace, "d", changeset_provider=_provider(changeset)
    )

    by_name = {c.name: c for c in verdict.checks}
    assert by_name[CheckName.BROKEN_IMPORTS].message == (
        "No import edges point at deleted files."
    )
    assert by_name[CheckName.COVERAGE_REGRESSION].status == CheckStatus.PASS


async def test_settings_thresholds_are_applied(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    settings = Settings(wisdom_min_functions=0, wisdom_threshold=0.5)

    verdict = await run_consistency_check(
        storage,
        workspace,
        "d",
        settings=settings,
        changeset_provider=_provider(ChangeSet()),
    )

    wisdom = verdict.checks[-1]
    # Zero functions against a zero minimum: 0/0 is below 50%.
    assert wisdom.name == CheckName.WISDOM_COVERAGE
    assert wisdom.status == CheckStatus.FAIL


async def test_repeated_runs_are_identical(
    storage: FakeKnowledgeStorage, workspace: Path
) -> None:
    a = workspace / "a.ts"
    a.write_text("x\n", encoding="utf-8")
    os.utime(a, (1_700_000_000, 1_700_000_000))
    storage.add_file(str(a), last_indexed=None)
    provider = _provider(ChangeSet(modified=["a.ts"], deleted=["gone.ts"]))

    first = await run_consistency_check(
        storage, workspace, "d", changeset_provider=provider
    )
    second = await run_consistency_check(
        storage, workspace, "d", changeset_provider=provider
    )

    assert first.status == second.status
    assert first.summary == second.summary
    assert [c.model_dump() for c in first.checks] == [
        c.model_dump() for c in second.checks
    ]
