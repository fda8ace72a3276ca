"""Consistency checks over the persisted index."""

from indexwarden.checks.pipeline import (
    build_verdict,
    exit_code,
    run_checks,
    run_consistency_check,
    unchecked_verdict,
)
from indexwarden.checks.schemas import CheckResult, Verdict

__all__ = [
    "CheckResult",
    "Verdict",
    "build_verdict",
    "exit_code",
    "run_checks",
    "run_consistency_check",
    "unchecked_verdict",
]
