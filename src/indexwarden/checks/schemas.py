"""Pydantic models for check outcomes and the aggregate verdict."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from indexwarden.constants import REPORT_KIND, CheckStatus, VerdictStatus


class CheckResult(BaseModel):
    """Outcome of one consistency check. Never persisted."""

    name: str
    status: CheckStatus
    message: str
    files: list[str] = Field(default_factory=lambda: list[str]())
    fix: str | None = None
    metrics: dict[str, float] = Field(
        default_factory=lambda: dict[str, float]()
    )


class Verdict(BaseModel):
    kind: str = REPORT_KIND
    status: VerdictStatus
    diff: str
    checks: list[CheckResult] = Field(
        default_factory=lambda: list[CheckResult]()
    )
    summary: str
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC)
    )
