"""Tests for the bounded subprocess runner and indexer argv."""

from __future__ import annotations

import sys
import time
from pathlib import Path

import pytest

from indexwarden.errors import IndexerError, IndexerTimeoutError
from indexwarden.indexing import scip_runner
from indexwarden.indexing.scip_runner import (
    local_scip_binary,
    run_process,
    run_scip_index,
    scip_index_argv,
)


async def test_run_process_returns_stdout() -> None:
    out = await run_process(
        [sys.executable, "-c", "print('indexed')"], timeout=10
    )
    assert out.strip() == b"indexed"


async def test_run_process_nonzero_exit_raises_with_stderr() -> None:
    script = "import sys; sys.stderr.write('bad tsconfig\\n'); sys.exit(3)"
    with pytest.raises(IndexerError) as exc_info:
        await run_process([sys.executable, "-c", script], timeout=10)
    assert exc_info.value.returncode == 3
    assert "bad tsconfig" in str(exc_info.value)
    assert exc_info.value.stderr == "bad tsconfig"


async def test_run_process_timeout_kills() -> None:
    with pytest.raises(IndexerTimeoutError, match="timed out"):
        await run_process(
            [sys.executable, "-c", "import time; time.sleep(30)"],
            timeout=0.2,
        )


async def test_run_process_missing_executable() -> None:
    with pytest.raises(IndexerError, match="Cannot start"):
        await run_process(["indexwarden-no-such-binary"], timeout=5)


async def test_run_process_output_cap() -> None:
    with pytest.raises(IndexerError, match="exceeded"):
        await run_process(
            [sys.executable, "-c", "print('x' * 200)"],
            timeout=10,
            max_output_bytes=16,
        )


async def test_run_process_output_cap_kills_running_process() -> None:
    script = (
        "import sys, time; "
        "sys.stdout.write('x' * (1024 * 1024)); sys.stdout.flush(); "
        "time.sleep(5)"
    )
    started = time.monotonic()
    with pytest.raises(IndexerError, match="exceeded 1024 bytes"):
        await run_process(
            [sys.executable, "-c", script],
            timeout=10,
            max_output_bytes=1024,
        )
    assert time.monotonic() - started < 3


def test_argv_uses_npx_without_local_binary(tmp_path: Path) -> None:
    out = tmp_path / "index.scip"
    argv = scip_index_argv(tmp_path, out)
    assert argv[:3] == ["npx", "--yes", "@sourcegraph/scip-typescript"]
    assert argv[3:] == [
        "index",
        "--cwd",
        str(tmp_path),
        "--output",
        str(out),
        "--no-progress-bar",
    ]


def test_argv_prefers_workspace_binary(tmp_path: Path) -> None:
    name = "scip-typescript.cmd" if sys.platform == "win32" else "scip-typescript"
    binary = tmp_path / "node_modules" / ".bin" / name
    binary.parent.mkdir(parents=True)
    binary.write_text("#!/bin/sh\n")

    assert local_scip_binary(tmp_path) == binary
    argv = scip_index_argv(tmp_path, tmp_path / "index.scip")
    assert argv[0] == str(binary)
    assert argv[1] == "index"


async def test_run_scip_index_requires_artifact(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def ok(argv: list[str], **kwargs: object) -> bytes:
        return b""

    monkeypatch.setattr(scip_runner, "run_process", ok)
    with pytest.raises(IndexerError, match="wrote no artifact"):
        await run_scip_index(tmp_path, tmp_path / "index.scip", 5.0)


async def test_run_scip_index_succeeds_when_artifact_written(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    out = tmp_path / "index.scip"

    async def writes(argv: list[str], **kwargs: object) -> bytes:
        out.write_bytes(b"\x00")
        return b""

    monkeypatch.setattr(scip_runner, "run_process", writes)
    await run_scip_index(tmp_path, out, 5.0)
    assert out.exists()
