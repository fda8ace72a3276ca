"""Shared constants: single source of truth for cross-module values.

StrEnum members are str-compatible, so JSON payloads and SQL columns
work unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class CheckStatus(StrEnum):
    """Outcome of a single consistency check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class VerdictStatus(StrEnum):
    """Overall status of a check run.

    UNCHECKED is only produced when storage was never bootstrapped.
    """

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"
    UNCHECKED = "unchecked"


class EdgeType(StrEnum):
    """Edge types in the persisted knowledge graph."""

    IMPORTS = "imports"
    CALLS = "calls"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"


class EntityType(StrEnum):
    """Entity kinds that evidence and edges can point at."""

    FILE = "file"
    FUNCTION = "function"
    MODULE = "module"


class CheckName(StrEnum):
    """Names of the six consistency checks, in report order."""

    STALE_CONTEXT = "stale_context"
    BROKEN_IMPORTS = "broken_imports"
    ORPHANED_CLAIMS = "orphaned_claims"
    COVERAGE_REGRESSION = "coverage_regression"
    CALL_GRAPH_INTEGRITY = "call_graph_integrity"
    WISDOM_COVERAGE = "wisdom_coverage"


class FreshnessStatus(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    CRITICAL = "critical"


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"
    JUNIT = "junit"


# ── SCIP index format ────────────────────────────────────

SCIP_PARSER_NAME = "scip-typescript"
SCIP_PACKAGE = "@sourcegraph/scip-typescript"

# SymbolInformation.Kind codes treated as callable
SCIP_FUNCTION_KINDS: frozenset[int] = frozenset(
    {9, 17, 18, 26, 45, 66, 68, 69, 70, 71, 72, 74, 76, 80}
)
SCIP_ROLE_DEFINITION = 1
SCIP_ROLE_IMPORT = 2

DEFAULT_SCIP_EXTENSIONS: tuple[str, ...] = (
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
)

# ── Budgets ──────────────────────────────────────────────

DEFAULT_CACHE_TTL_SECONDS = 30.0
DEFAULT_INDEXER_TIMEOUT_SECONDS = 90.0
MAX_SUBPROCESS_OUTPUT_BYTES = 16 * 1024 * 1024
GIT_TIMEOUT_SECONDS = 30.0

# ── Checks ───────────────────────────────────────────────

REPORT_KIND = "IndexWardenCheck.v1"
WORKING_TREE_DIFF = "working-tree"
WISDOM_COVERAGE_MIN_FUNCTIONS = 50
WISDOM_COVERAGE_THRESHOLD = 0.2
WISDOM_MISSING_FILES_LIMIT = 10
CONTEXT_PACK_PROBE_LIMIT = 10
BOOTSTRAP_HINT = "Run indexwarden bootstrap first."
BOOTSTRAP_METADATA_KEY = "bootstrapped_at"
