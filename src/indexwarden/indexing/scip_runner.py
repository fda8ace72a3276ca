"""Run the external scip-typescript indexer as a bounded subprocess."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from indexwarden.constants import MAX_SUBPROCESS_OUTPUT_BYTES, SCIP_PACKAGE
from indexwarden.errors import IndexerError, IndexerTimeoutError

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 64 * 1024


async def run_process(
    argv: list[str],
    *,
    cwd: Path | None = None,
    timeout: float,
    max_output_bytes: int = MAX_SUBPROCESS_OUTPUT_BYTES,
) -> bytes:
    """Run *argv* to completion and return its stdout.

    Raises IndexerTimeoutError (process killed) past *timeout*, and
    IndexerError on a non-zero exit or a missing executable. Output is
    read in chunks while the process runs; the process is killed as
    soon as either stream passes *max_output_bytes*. No partial output
    is returned.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        msg = f"Cannot start {argv[0]}: {exc}"
        raise IndexerError(msg) from exc

    stdout = bytearray()
    stderr = bytearray()
    tasks = [
        asyncio.ensure_future(
            _read_capped(proc.stdout, stdout, max_output_bytes, argv[0])
        ),
        asyncio.ensure_future(
            _read_capped(proc.stderr, stderr, max_output_bytes, argv[0])
        ),
        asyncio.ensure_future(proc.wait()),
    ]
    try:
        await asyncio.wait_for(asyncio.gather(*tasks), timeout=timeout)
    except TimeoutError:
        await _kill(proc, tasks)
        msg = f"{argv[0]} timed out after {timeout:g}s"
        raise IndexerTimeoutError(msg) from None
    except IndexerError:
        await _kill(proc, tasks)
        raise

    if proc.returncode != 0:
        err_text = stderr.decode("utf-8", errors="replace").strip()
        msg = f"{argv[0]} exited with code {proc.returncode}"
        if err_text:
            msg = f"{msg}: {err_text.splitlines()[-1]}"
        raise IndexerError(
            msg, returncode=proc.returncode, stderr=err_text
        )
    return bytes(stdout)


async def _read_capped(
    stream: asyncio.StreamReader | None,
    buffer: bytearray,
    limit: int,
    program: str,
) -> None:
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK_BYTES):
        buffer.extend(chunk)
        if len(buffer) > limit:
            msg = f"{program} output exceeded {limit} bytes"
            raise IndexerError(msg)


async def _kill(
    proc: asyncio.subprocess.Process, tasks: list[asyncio.Future[Any]]
) -> None:
    for task in tasks:
        task.cancel()
    if proc.returncode is None:
        proc.kill()
    await proc.wait()
    await asyncio.gather(*tasks, return_exceptions=True)


def local_scip_binary(workspace_root: Path) -> Path | None:
    """Workspace-installed scip-typescript, if any."""
    name = "scip-typescript.cmd" if sys.platform == "win32" else "scip-typescript"
    candidate = workspace_root / "node_modules" / ".bin" / name
    return candidate if candidate.exists() else None


def scip_index_argv(workspace_root: Path, output_path: Path) -> list[str]:
    args = [
        "index",
        "--cwd",
        str(workspace_root),
        "--output",
        str(output_path),
        "--no-progress-bar",
    ]
    local = local_scip_binary(workspace_root)
    if local is not None:
        return [str(local), *args]
    return ["npx", "--yes", SCIP_PACKAGE, *args]


async def run_scip_index(
    workspace_root: Path,
    output_path: Path,
    timeout: float,
    max_output_bytes: int = MAX_SUBPROCESS_OUTPUT_BYTES,
) -> None:
    """Index *workspace_root* into the binary artifact at *output_path*."""
    argv = scip_index_argv(workspace_root, output_path)
    logger.debug("Running SCIP indexer: %s", " ".join(argv))
    await run_process(
        argv,
        cwd=workspace_root,
        timeout=timeout,
        max_output_bytes=max_output_bytes,
    )
    if not output_path.is_file():
        msg = f"Indexer finished but wrote no artifact at {output_path}"
        raise IndexerError(msg)
