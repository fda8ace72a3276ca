"""Export module: verdict rendering in text, JSON and JUnit XML."""

from collections.abc import Callable

from indexwarden.checks.schemas import Verdict
from indexwarden.constants import OutputFormat
from indexwarden.export.report import (
    render_json,
    render_junit,
    render_text,
    write_report,
)

__all__ = [
    "render_json",
    "render_junit",
    "render_report",
    "render_text",
    "write_report",
]

_RENDERERS: dict[str, Callable[[Verdict], str]] = {
    OutputFormat.TEXT: render_text,
    OutputFormat.JSON: render_json,
    OutputFormat.JUNIT: render_junit,
}


def render_report(verdict: Verdict, fmt: str = "text") -> str:
    """Dispatch rendering by format string."""
    renderer = _RENDERERS.get(fmt)
    if renderer is None:
        valid = ", ".join(_RENDERERS)
        msg = f"Unsupported format: {fmt}. Use: {valid}"
        raise ValueError(msg)
    return renderer(verdict)
