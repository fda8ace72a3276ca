"""The six consistency checks.

Each check is a pure read over storage (plus file stats for
``stale_context``) and returns one CheckResult. Paths passed in are
absolute and de-duplicated; affected files are reported relative to
the workspace when they live inside it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from indexwarden.checks.impact import ImpactSet, one_hop_impacts
from indexwarden.checks.schemas import CheckResult
from indexwarden.constants import (
    WISDOM_COVERAGE_MIN_FUNCTIONS,
    WISDOM_COVERAGE_THRESHOLD,
    WISDOM_MISSING_FILES_LIMIT,
    CheckName,
    CheckStatus,
    EdgeType,
    EntityType,
)
from indexwarden.freshness import as_utc, file_mtime
from indexwarden.repositories.protocols import KnowledgeStorage

logger = logging.getLogger(__name__)

WisdomState = Literal["present", "missing", "parse_error"]


async def check_stale_context(
    storage: KnowledgeStorage,
    workspace_root: Path,
    changed_existing: list[str],
) -> CheckResult:
    name = CheckName.STALE_CONTEXT
    if not changed_existing:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No added or modified files in diff.",
        )

    stale: list[str] = []
    for file_path in changed_existing:
        record = await storage.get_file_by_path(file_path)
        if record is None or record.last_indexed is None:
            stale.append(file_path)
            continue

        mtime = await asyncio.to_thread(file_mtime, file_path)
        if mtime is None:
            continue
        if mtime > as_utc(record.last_indexed):
            stale.append(file_path)

    if not stale:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Context index is fresh for changed files.",
        )

    return CheckResult(
        name=name,
        status=CheckStatus.FAIL,
        message=f"{len(stale)} changed files are stale or unindexed.",
        files=display_paths(workspace_root, stale),
        fix="Reindex changed files (indexwarden index --force) before CI.",
        metrics={"stale_files": len(stale)},
    )


async def check_broken_imports(
    storage: KnowledgeStorage,
    workspace_root: Path,
    deleted_files: list[str],
) -> CheckResult:
    name = CheckName.BROKEN_IMPORTS
    if not deleted_files:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No deleted or renamed files in diff.",
        )

    deleted_ids: dict[str, str] = {}
    for deleted_path in deleted_files:
        record = await storage.get_file_by_path(deleted_path)
        if record is not None:
            deleted_ids[record.id] = deleted_path

    impacts = ImpactSet()
    for file_id in deleted_ids:
        impacts.merge(
            await one_hop_impacts(
                storage,
                file_id,
                EdgeType.IMPORTS,
                set(deleted_ids),
                outgoing=False,
            )
        )

    importers: dict[str, None] = {}
    for edge in impacts.incoming.values():
        if edge.source_file:
            importers[edge.source_file] = None

    if not importers:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No import edges point at deleted files.",
        )

    return CheckResult(
        name=name,
        status=CheckStatus.FAIL,
        message=(
            f"{len(deleted_files)} deleted files are still imported "
            f"by {len(importers)} files."
        ),
        files=display_paths(workspace_root, list(importers)),
        fix="Update import paths for renamed/deleted files, then reindex.",
        metrics={"impacted_importers": len(importers)},
    )


async def check_orphaned_claims(
    storage: KnowledgeStorage,
    workspace_root: Path,
    changed_existing: list[str],
) -> CheckResult:
    name = CheckName.ORPHANED_CLAIMS
    if not changed_existing:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No changed files to evaluate claim freshness.",
        )

    changed = set(changed_existing)
    orphaned: dict[str, None] = {}

    for file_path in changed_existing:
        targets: list[tuple[str, str]] = []
        module = await storage.get_module_by_path(file_path)
        if module is not None:
            targets.append((module.id, EntityType.MODULE))
        for fn in await storage.get_functions_by_path(file_path):
            targets.append((fn.id, EntityType.FUNCTION))

        for entity_id, entity_type in targets:
            evidence = await storage.get_evidence_for_target(
                entity_id, entity_type
            )
            if any(
                resolve_evidence_path(workspace_root, e.file) in changed
                for e in evidence
            ):
                orphaned[file_path] = None
                break

    if not orphaned:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No claim evidence was invalidated by changed files.",
        )

    return CheckResult(
        name=name,
        status=CheckStatus.WARN,
        message=(
            f"{len(orphaned)} files have claims whose evidence "
            "references changed files."
        ),
        files=display_paths(workspace_root, list(orphaned)),
        fix="Regenerate evidence by reindexing the changed files.",
    )


async def check_coverage_regression(
    storage: KnowledgeStorage,
    workspace_root: Path,
    changed_existing: list[str],
    *,
    probe_limit: int = 10,
) -> CheckResult:
    name = CheckName.COVERAGE_REGRESSION
    if not changed_existing:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No changed files to evaluate context-pack coverage.",
        )

    uncovered: list[str] = []
    for file_path in changed_existing:
        packs = await storage.get_context_packs(
            related_file=file_path,
            include_invalidated=True,
            limit=probe_limit,
        )
        if not packs:
            uncovered.append(file_path)

    total = len(changed_existing)
    percent = round_percent(total - len(uncovered), total)
    if not uncovered:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="All changed files have context-pack coverage.",
            metrics={"coverage_percent": percent},
        )

    return CheckResult(
        name=name,
        status=CheckStatus.FAIL,
        message=(
            f"{len(uncovered)}/{total} changed files lack context packs "
            f"({percent}% covered)."
        ),
        files=display_paths(workspace_root, uncovered),
        fix="Reindex changed files to restore context-pack coverage.",
        metrics={"coverage_percent": percent},
    )


async def check_call_graph_integrity(
    storage: KnowledgeStorage,
    workspace_root: Path,
    changed_existing: list[str],
) -> CheckResult:
    name = CheckName.CALL_GRAPH_INTEGRITY
    if not changed_existing:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No changed files to evaluate call-graph impact.",
        )

    changed_ids: dict[str, None] = {}
    for file_path in changed_existing:
        for fn in await storage.get_functions_by_path(file_path):
            changed_ids[fn.id] = None

    if not changed_ids:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No indexed functions found in changed files.",
        )

    impacts = ImpactSet()
    for function_id in changed_ids:
        impacts.merge(
            await one_hop_impacts(
                storage, function_id, EdgeType.CALLS, set(changed_ids)
            )
        )

    if not impacts:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No cross-file call graph impacts detected.",
        )

    impacted_paths: dict[str, None] = {}
    for function_id in [*impacts.incoming, *impacts.outgoing]:
        fn = await storage.get_function(function_id)
        if fn is not None and fn.file_path:
            impacted_paths[fn.file_path] = None

    callers = len(impacts.incoming)
    callees = len(impacts.outgoing)
    return CheckResult(
        name=name,
        status=CheckStatus.WARN,
        message=(
            f"{len(changed_ids)} changed functions touch {callers} "
            f"callers and {callees} callees outside the diff."
        ),
        files=display_paths(workspace_root, list(impacted_paths)),
        fix="Review impacted callers/callees and refresh index before merging.",
        metrics={"callers": callers, "callees": callees},
    )


async def check_wisdom_coverage(
    storage: KnowledgeStorage,
    workspace_root: Path,
    *,
    min_functions: int = WISDOM_COVERAGE_MIN_FUNCTIONS,
    threshold: float = WISDOM_COVERAGE_THRESHOLD,
) -> CheckResult:
    name = CheckName.WISDOM_COVERAGE
    records = await storage.get_universal_knowledge_by_kind(
        EntityType.FUNCTION
    )
    if len(records) < min_functions:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message=(
                "Wisdom coverage check skipped "
                f"(<{min_functions} indexed functions)."
            ),
        )

    enriched = 0
    parse_errors = 0
    missing_files: list[str] = []
    for record in records:
        state = wisdom_state(record.knowledge)
        if state == "present":
            enriched += 1
            continue
        if state == "parse_error":
            parse_errors += 1
        if len(missing_files) < WISDOM_MISSING_FILES_LIMIT:
            missing_files.append(record.file)

    total = len(records)
    coverage = enriched / total if total else 0.0
    percent = round_percent(enriched, total)
    required = round_percent(threshold, 1)
    suffix = f" ({parse_errors} parse errors)" if parse_errors else ""
    metrics: dict[str, float] = {
        "coverage_percent": percent,
        "parse_errors": parse_errors,
    }

    if coverage >= threshold:
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message=f"Wisdom coverage {percent}% ({enriched}/{total}){suffix}.",
            metrics=metrics,
        )

    return CheckResult(
        name=name,
        status=CheckStatus.FAIL,
        message=(
            f"Wisdom coverage {percent}% ({enriched}/{total}) is below "
            f"required {required}%{suffix}."
        ),
        files=display_paths(
            workspace_root,
            [resolve_evidence_path(workspace_root, f) for f in missing_files],
        ),
        fix=(
            "Regenerate understanding with semantic extraction and verify "
            "ownership.knowledge.gotchas/tips are populated."
        ),
        metrics=metrics,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def wisdom_state(knowledge_json: str) -> WisdomState:
    """Whether ownership.knowledge has any gotchas or tips."""
    try:
        parsed: Any = json.loads(knowledge_json)
    except (json.JSONDecodeError, TypeError):
        return "parse_error"
    ownership = parsed.get("ownership") if isinstance(parsed, dict) else None
    knowledge = (
        ownership.get("knowledge") if isinstance(ownership, dict) else None
    )
    if not isinstance(knowledge, dict):
        return "missing"
    for key in ("gotchas", "tips"):
        value = knowledge.get(key)
        if isinstance(value, list) and value:
            return "present"
    return "missing"


def round_percent(part: float, whole: float) -> int:
    """Half-up percentage (Python's round() is half-even)."""
    if whole <= 0:
        return 0
    return int(part / whole * 100 + 0.5)


def resolve_evidence_path(workspace_root: Path, path: str) -> str:
    if os.path.isabs(path):
        return os.path.normpath(path)
    return str((workspace_root / path).resolve())


def display_paths(workspace_root: Path, paths: list[str]) -> list[str]:
    """Workspace-relative where possible, absolute otherwise."""
    root = workspace_root.resolve()
    shown: list[str] = []
    for p in paths:
        candidate = Path(p)
        if candidate.is_absolute() and candidate.is_relative_to(root):
            shown.append(candidate.relative_to(root).as_posix())
        else:
            shown.append(p)
    return shown
