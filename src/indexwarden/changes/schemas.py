"""Changeset models: what version control says moved since a reference."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class RenamedPath(BaseModel):
    old: str
    new: str


class ChangeSet(BaseModel):
    """Workspace-relative paths touched by a diff."""

    added: list[str] = Field(default_factory=lambda: list[str]())
    modified: list[str] = Field(default_factory=lambda: list[str]())
    deleted: list[str] = Field(default_factory=lambda: list[str]())
    renamed: list[RenamedPath] = Field(
        default_factory=lambda: list[RenamedPath]()
    )

    @property
    def is_empty(self) -> bool:
        return not (
            self.added or self.modified or self.deleted or self.renamed
        )

    def resolve(self, workspace_root: Path) -> ResolvedChanges:
        """Absolute, de-duplicated path lists for the checks.

        A rename counts as a deletion of the old path plus an
        addition of the new one.
        """
        root = workspace_root.resolve()
        changed = [
            *self.added,
            *(r.new for r in self.renamed),
            *self.modified,
        ]
        deleted = [*self.deleted, *(r.old for r in self.renamed)]
        return ResolvedChanges(
            changed_existing=_uniq_resolved(root, changed),
            deleted=_uniq_resolved(root, deleted),
        )


class ResolvedChanges(BaseModel):
    changed_existing: list[str] = Field(default_factory=lambda: list[str]())
    deleted: list[str] = Field(default_factory=lambda: list[str]())


def _uniq_resolved(root: Path, paths: list[str]) -> list[str]:
    """Resolve against *root*, keep first-seen order."""
    return list(dict.fromkeys(str((root / p).resolve()) for p in paths))
