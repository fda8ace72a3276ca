"""Tests for changeset parsing and git resolution."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from indexwarden.changes.git_changes import (
    is_git_repo,
    parse_name_status,
    parse_porcelain,
    resolve_changeset,
)
from indexwarden.changes.schemas import ChangeSet, RenamedPath

needs_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git not installed"
)


# ── parse_name_status ────────────────────────────────────────


def test_name_status_statuses() -> None:
    output = (
        "A\tsrc/new.ts\n"
        "M\tsrc/changed.ts\n"
        "D\tsrc/gone.ts\n"
        "R087\tsrc/old.ts\tsrc/moved.ts\n"
        "C100\tsrc/base.ts\tsrc/copy.ts\n"
        "T\tsrc/typechange.ts\n"
    )
    changes = parse_name_status(output)

    assert changes.added == ["src/new.ts", "src/copy.ts"]
    assert changes.modified == ["src/changed.ts", "src/typechange.ts"]
    assert changes.deleted == ["src/gone.ts"]
    assert changes.renamed == [
        RenamedPath(old="src/old.ts", new="src/moved.ts")
    ]


def test_name_status_blank_lines_ignored() -> None:
    assert parse_name_status("\n\n").is_empty


def test_name_status_paths_with_spaces() -> None:
    changes = parse_name_status("M\tdocs/my notes.md\n")
    assert changes.modified == ["docs/my notes.md"]


# ── parse_porcelain ──────────────────────────────────────────


def test_porcelain_statuses() -> None:
    output = (
        " M src/changed.ts\n"
        "?? src/untracked.ts\n"
        "A  src/staged.ts\n"
        " D src/gone.ts\n"
        "R  src/old.ts -> src/new.ts\n"
        'M  "src/with space.ts"\n'
    )
    changes = parse_porcelain(output)

    assert changes.modified == ["src/changed.ts", "src/with space.ts"]
    assert changes.added == ["src/untracked.ts", "src/staged.ts"]
    assert changes.deleted == ["src/gone.ts"]
    assert changes.renamed == [RenamedPath(old="src/old.ts", new="src/new.ts")]


# ── ChangeSet.resolve ────────────────────────────────────────


def test_resolve_splits_renames_and_deduplicates(tmp_path: Path) -> None:
    changes = ChangeSet(
        added=["a.ts"],
        modified=["b.ts", "a.ts", "./b.ts"],
        deleted=["c.ts"],
        renamed=[RenamedPath(old="old.ts", new="new.ts")],
    )
    resolved = changes.resolve(tmp_path)
    root = tmp_path.resolve()

    assert resolved.changed_existing == [
        str(root / "a.ts"),
        str(root / "new.ts"),
        str(root / "b.ts"),
    ]
    assert resolved.deleted == [str(root / "c.ts"), str(root / "old.ts")]


def test_empty_changeset() -> None:
    assert ChangeSet().is_empty
    assert not ChangeSet(deleted=["x"]).is_empty


# ── resolve_changeset against git ────────────────────────────


async def test_non_git_directory_is_empty(tmp_path: Path) -> None:
    assert await is_git_repo(tmp_path) is False
    changes = await resolve_changeset(tmp_path, "working-tree")
    assert changes.is_empty


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
    )


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    _git(root, "init", "-q")
    _git(root, "config", "user.email", "ci@example.com")
    _git(root, "config", "user.name", "CI")
    (root / "keep.ts").write_text("export const a = 1;\n")
    (root / "drop.ts").write_text("export const b = 2;\n")
    _git(root, "add", ".")
    _git(root, "commit", "-q", "-m", "init")
    return root


@needs_git
async def test_working_tree_changes(repo: Path) -> None:
    (repo / "keep.ts").write_text("export const a = 3;\n")
    (repo / "drop.ts").unlink()
    (repo / "fresh.ts").write_text("export const c = 4;\n")

    changes = await resolve_changeset(repo, "working-tree")

    assert changes.modified == ["keep.ts"]
    assert changes.deleted == ["drop.ts"]
    assert changes.added == ["fresh.ts"]


@needs_git
async def test_ref_diff_changes(repo: Path) -> None:
    (repo / "keep.ts").write_text("export const a = 5;\n")
    _git(repo, "commit", "-q", "-am", "edit")

    changes = await resolve_changeset(repo, "HEAD~1..HEAD")

    assert changes.modified == ["keep.ts"]


@needs_git
async def test_unknown_ref_degrades_to_empty(repo: Path) -> None:
    changes = await resolve_changeset(repo, "no-such-ref..HEAD")
    assert changes.is_empty
