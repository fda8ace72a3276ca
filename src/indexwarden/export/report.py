"""Verdict renderers and report output."""

from __future__ import annotations

import html
import json
import logging
import sys
from pathlib import Path
from typing import Any

from indexwarden.checks.schemas import CheckResult, Verdict
from indexwarden.constants import BOOTSTRAP_HINT, CheckStatus, VerdictStatus

logger = logging.getLogger(__name__)

JUNIT_CLASSNAME = "indexwarden.check"
BOOTSTRAP_CASE = "bootstrap_required"


def render_text(verdict: Verdict) -> str:
    lines = [
        "IndexWarden Check",
        "=================",
        f"Status: {verdict.status.upper()}",
        f"Diff: {verdict.diff}",
        f"Summary: {verdict.summary}",
        "",
    ]
    if verdict.status == VerdictStatus.UNCHECKED:
        lines.append(BOOTSTRAP_HINT)
        return "\n".join(lines)

    for check in verdict.checks:
        lines.append(
            f"[{check.status.upper()}] {check.name} - {check.message}"
        )
        if check.files:
            lines.append(f"  files: {', '.join(check.files)}")
        if check.fix:
            lines.append(f"  fix: {check.fix}")
    return "\n".join(lines)


def render_json(verdict: Verdict) -> str:
    payload: dict[str, Any] = {
        "kind": verdict.kind,
        "status": str(verdict.status),
        "diff": verdict.diff,
        "checks": [_check_to_dict(c) for c in verdict.checks],
        "summary": verdict.summary,
        "generatedAt": verdict.generated_at.isoformat(),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def render_junit(verdict: Verdict) -> str:
    """JUnit XML: one testcase per check.

    Failures carry a ``<failure>``; warnings a ``<system-out>``. An
    unchecked verdict renders as a single failing bootstrap case.
    """
    if verdict.status == VerdictStatus.UNCHECKED:
        checks = [
            CheckResult(
                name=BOOTSTRAP_CASE,
                status=CheckStatus.FAIL,
                message=verdict.summary,
            )
        ]
    else:
        checks = verdict.checks

    total = len(checks)
    failures = sum(1 for c in checks if c.status == CheckStatus.FAIL)
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<testsuites tests="{total}" failures="{failures}">',
        f'  <testsuite name="{JUNIT_CLASSNAME}" tests="{total}" '
        f'failures="{failures}">',
    ]
    for check in checks:
        lines.extend(_junit_case(check))
    lines.extend(["  </testsuite>", "</testsuites>"])
    return "\n".join(lines)


def write_report(content: str, out: Path | None = None) -> None:
    """Write to *out* (parents created) or stdout. Always newline-terminated."""
    text = content if content.endswith("\n") else f"{content}\n"
    if out is None:
        sys.stdout.write(text)
        return
    target = out.resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    logger.info("Report written to %s", target)


def _check_to_dict(check: CheckResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": check.name,
        "status": str(check.status),
        "message": check.message,
    }
    if check.files:
        data["files"] = check.files
    if check.fix:
        data["fix"] = check.fix
    if check.metrics:
        data["metrics"] = check.metrics
    return data


def _junit_case(check: CheckResult) -> list[str]:
    name = html.escape(check.name)
    opening = f'    <testcase classname="{JUNIT_CLASSNAME}" name="{name}"'
    files = f" files={', '.join(check.files)}" if check.files else ""

    if check.status == CheckStatus.FAIL:
        message = html.escape(check.message)
        body = html.escape(f"{check.message}{files}")
        return [
            f"{opening}>",
            f'      <failure message="{message}">{body}</failure>',
            "    </testcase>",
        ]
    if check.status == CheckStatus.WARN:
        body = html.escape(f"WARN: {check.message}{files}")
        return [
            f"{opening}>",
            f"      <system-out>{body}</system-out>",
            "    </testcase>",
        ]
    return [f"{opening}/>"]
