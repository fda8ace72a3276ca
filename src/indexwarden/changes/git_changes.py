"""Resolve a diff reference into a ChangeSet using git.

Failures degrade to an empty changeset: a workspace that is not under
version control (or a git that times out) simply has no changes, and
the changed-file checks pass trivially.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from indexwarden.changes.schemas import ChangeSet, RenamedPath
from indexwarden.constants import GIT_TIMEOUT_SECONDS, WORKING_TREE_DIFF

logger = logging.getLogger(__name__)


async def resolve_changeset(
    workspace_root: Path,
    diff: str = WORKING_TREE_DIFF,
    *,
    timeout: float = GIT_TIMEOUT_SECONDS,
) -> ChangeSet:
    """Changes for *diff*: ``working-tree``, ``a..b``, or a single ref."""
    root = workspace_root.resolve()
    if not await is_git_repo(root, timeout=timeout):
        return ChangeSet()

    if diff == WORKING_TREE_DIFF:
        out = await _git(root, "status", "--porcelain", timeout=timeout)
        return parse_porcelain(out) if out is not None else ChangeSet()

    out = await _git(
        root, "diff", "--name-status", "-M", diff, timeout=timeout
    )
    return parse_name_status(out) if out is not None else ChangeSet()


async def is_git_repo(
    repo_dir: Path, *, timeout: float = GIT_TIMEOUT_SECONDS
) -> bool:
    out = await _git(
        repo_dir, "rev-parse", "--is-inside-work-tree", timeout=timeout
    )
    return out is not None and out.strip() == "true"


async def _git(
    repo_dir: Path, *args: str, timeout: float
) -> str | None:
    """Run git in *repo_dir*; None on any failure."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            "-C",
            str(repo_dir),
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        logger.warning("git unavailable: %s", exc)
        return None
    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(), timeout=timeout
        )
    except TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning("git %s timed out after %ss", args[0], timeout)
        return None
    if proc.returncode != 0:
        logger.debug(
            "git %s failed (%s): %s",
            " ".join(args),
            proc.returncode,
            stderr.decode(errors="replace").strip(),
        )
        return None
    return stdout.decode("utf-8", errors="replace")


def parse_name_status(output: str) -> ChangeSet:
    """Parse ``git diff --name-status`` output."""
    changes = ChangeSet()
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t") if "\t" in line else line.split()
        status = parts[0]
        path_a = parts[1] if len(parts) > 1 else None
        path_b = parts[2] if len(parts) > 2 else None

        if status.startswith("A") and path_a:
            changes.added.append(path_a)
        elif status.startswith("D") and path_a:
            changes.deleted.append(path_a)
        elif status.startswith("R"):
            if path_a and path_b:
                changes.renamed.append(RenamedPath(old=path_a, new=path_b))
            elif path_a:
                changes.deleted.append(path_a)
        elif status.startswith("C"):
            if path_b:
                changes.added.append(path_b)
        elif path_a:
            changes.modified.append(path_a)
    return changes


def parse_porcelain(output: str) -> ChangeSet:
    """Parse ``git status --porcelain`` (v1) output."""
    changes = ChangeSet()
    for line in output.splitlines():
        if len(line) < 4:
            continue
        code = line[:2]
        rest = line[3:]

        if "R" in code and " -> " in rest:
            old, new = rest.split(" -> ", 1)
            changes.renamed.append(
                RenamedPath(old=_unquote(old), new=_unquote(new))
            )
            continue

        path = _unquote(rest)
        if code == "??" or "A" in code:
            changes.added.append(path)
        elif "D" in code:
            changes.deleted.append(path)
        else:
            changes.modified.append(path)
    return changes


def _unquote(path: str) -> str:
    path = path.strip()
    if len(path) >= 2 and path[0] == path[-1] == '"':
        return path[1:-1].replace("\\\"", "\"").replace("\\\\", "\\")
    return path
