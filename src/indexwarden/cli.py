"""CLI entry point: ``indexwarden check``, ``parse`` and ``freshness``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from indexwarden import __version__
from indexwarden.checks.pipeline import (
    exit_code,
    run_consistency_check,
    unchecked_verdict,
)
from indexwarden.checks.schemas import Verdict
from indexwarden.config import Settings, create_app_engine
from indexwarden.constants import (
    BOOTSTRAP_HINT,
    WORKING_TREE_DIFF,
    OutputFormat,
)
from indexwarden.errors import (
    IndexWardenError,
    classify_error,
    describe_error,
)
from indexwarden.export import render_report, write_report
from indexwarden.freshness import FreshnessDetector
from indexwarden.indexing.resolver import build_resolver
from indexwarden.logging_config import set_level, setup_logging
from indexwarden.repositories.knowledge_repo import SqlKnowledgeStorage

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"indexwarden {__version__}")
        return

    if args.command is None:
        parser.print_help()
        return

    settings = _load_settings(args)
    setup_logging(settings.log_level)
    if args.verbose:
        set_level("DEBUG")

    if args.command == "check":
        sys.exit(_run_check(args, settings))
    elif args.command == "parse":
        sys.exit(_run_parse(args, settings))
    elif args.command == "freshness":
        sys.exit(_run_freshness(args, settings))


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="indexwarden",
        description=(
            "Freshness and consistency checks for a derived code index."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    # Shared by every sub-command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--workspace",
        "-w",
        default=None,
        help="Workspace root (default: from settings)",
    )
    common.add_argument(
        "--db",
        default=None,
        help="SQLite database path override (default: from settings)",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command")

    check = sub.add_parser(
        "check",
        parents=[common],
        help="Run consistency checks against a diff",
    )
    check.add_argument(
        "--diff",
        default=WORKING_TREE_DIFF,
        help=(
            "'working-tree', a range like 'main..HEAD', or a single ref "
            "(default: working-tree)"
        ),
    )
    check.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Report format (default: text)",
    )
    check.add_argument(
        "--json",
        action="store_true",
        help="Shorthand for --format json",
    )
    check.add_argument(
        "--out",
        "-o",
        default=None,
        help="Write the report to a file instead of stdout",
    )

    parse = sub.add_parser(
        "parse",
        parents=[common],
        help="Parse one file and print the extracted entities",
    )
    parse.add_argument("file", type=str, help="Source file to parse")
    parse.add_argument(
        "--scip",
        action="store_true",
        help="Enable the SCIP backend for this run",
    )

    freshness = sub.add_parser(
        "freshness",
        parents=[common],
        help="Report freshness of indexed files",
    )
    freshness.add_argument(
        "--limit",
        "-n",
        type=int,
        default=None,
        help="Maximum stale files to list",
    )

    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.workspace:
        overrides["workspace_root"] = Path(args.workspace)
    if args.db:
        overrides["database_url"] = f"sqlite:///{Path(args.db).resolve()}"
    if getattr(args, "scip", False):
        overrides["scip_enabled"] = True
    return Settings(**overrides)  # type: ignore[arg-type]


def _run_check(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the check command; returns the process exit code."""
    fmt = OutputFormat.JSON if args.json else OutputFormat(args.format)
    verdict = asyncio.run(_check(settings, args.diff))
    out = Path(args.out) if args.out else None
    write_report(render_report(verdict, fmt), out)
    if out is not None:
        print(f"Output written to {out.resolve()}", file=sys.stderr)
    return exit_code(verdict)


async def _check(settings: Settings, diff: str) -> Verdict:
    workspace = settings.resolved_workspace
    db_path = _sqlite_path(settings.database_url, workspace)
    if db_path is not None and not db_path.exists():
        logger.warning("Database not found: %s", db_path)
        return unchecked_verdict(
            diff, f"{BOOTSTRAP_HINT} (no index at {db_path})"
        )

    try:
        engine = create_app_engine(
            _absolute_url(settings.database_url, workspace)
        )
    except SQLAlchemyError as e:
        logger.warning("Cannot open storage: %s", describe_error(e))
        return unchecked_verdict(diff, f"{BOOTSTRAP_HINT} ({e})")
    try:
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        async with session_factory() as session:
            return await run_consistency_check(
                SqlKnowledgeStorage(session),
                workspace,
                diff,
                settings=settings,
            )
    finally:
        await engine.dispose()


def _run_parse(args: argparse.Namespace, settings: Settings) -> int:
    path = Path(args.file)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"Error: {describe_error(e)}", file=sys.stderr)
        return 1

    async def _parse() -> str:
        resolver = build_resolver(settings)
        result = await resolver.resolve(path.resolve(), content)
        return result.model_dump_json(indent=2)

    print(asyncio.run(_parse()))
    return 0


def _run_freshness(args: argparse.Namespace, settings: Settings) -> int:
    workspace = settings.resolved_workspace
    db_path = _sqlite_path(settings.database_url, workspace)
    if db_path is not None and not db_path.exists():
        print(f"Error: database not found: {db_path}", file=sys.stderr)
        return 2

    async def _report() -> str:
        engine = create_app_engine(
            _absolute_url(settings.database_url, workspace)
        )
        try:
            session_factory = async_sessionmaker(
                engine, expire_on_commit=False
            )
            async with session_factory() as session:
                detector = FreshnessDetector(
                    SqlKnowledgeStorage(session), settings
                )
                report = await detector.generate_report(limit=args.limit)
                return report.model_dump_json(indent=2)
        finally:
            await engine.dispose()

    try:
        print(asyncio.run(_report()))
    except IndexWardenError as e:
        logger.error(
            "Freshness report failed (%s): %s",
            classify_error(e).value,
            describe_error(e),
        )
        return 2
    return 0


def _sqlite_path(url: str, workspace: Path) -> Path | None:
    """Database file for a file-backed SQLite URL, else None."""
    for prefix in ("sqlite+aiosqlite:///", "sqlite:///"):
        if url.startswith(prefix):
            raw = url[len(prefix):]
            if not raw or raw == ":memory:":
                return None
            path = Path(raw)
            return path if path.is_absolute() else workspace / path
    return None


def _absolute_url(url: str, workspace: Path) -> str:
    path = _sqlite_path(url, workspace)
    if path is None:
        return url
    return f"sqlite:///{path}"


if __name__ == "__main__":
    main()
