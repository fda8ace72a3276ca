"""Decode a binary SCIP index into documents.

Two strategies, tried in order; the first that returns a result wins:

1. In-process: protobuf bindings generated from ``scip.proto``
   (module name configurable, ``scip_pb2`` by default). Returns None
   when the generated module is not importable.
2. Subprocess: a short-lived ``node`` process (via ``npx``) that
   deserializes with the scip-typescript bundle and prints JSON.

Keeping the generated bindings optional means the hot path works in
environments that only have Node available.
"""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
import shutil
from collections.abc import Awaitable, Callable, Sequence
from functools import partial
from pathlib import Path
from typing import Any

from google.protobuf import json_format
from google.protobuf.message import DecodeError as ProtobufDecodeError
from pydantic import TypeAdapter, ValidationError

from indexwarden.constants import MAX_SUBPROCESS_OUTPUT_BYTES, SCIP_PACKAGE
from indexwarden.errors import DecodeError
from indexwarden.indexing.schemas import ScipDocument
from indexwarden.indexing.scip_runner import run_process

logger = logging.getLogger(__name__)

# (artifact path, timeout seconds) → documents
ScipDecoder = Callable[[Path, float], Awaitable[list[ScipDocument]]]
# Same, but None means "strategy unavailable here, try the next one"
DecodeStrategy = Callable[[Path, float], Awaitable[list[ScipDocument] | None]]

_DOCUMENTS = TypeAdapter(list[ScipDocument])

_NODE_DECODE_SCRIPT = "".join([
    "const fs = require('node:fs');",
    "const { scip } = require('@sourcegraph/scip-typescript/dist/src/scip.js');",
    "const bytes = fs.readFileSync(process.argv[1]);",
    "const parsed = scip.Index.deserializeBinary(new Uint8Array(bytes));",
    "const docs = parsed.toObject().documents || [];",
    "process.stdout.write(JSON.stringify(docs));",
])


def _validate_documents(raw: Any) -> list[ScipDocument]:
    if not isinstance(raw, list):
        return []
    try:
        return _DOCUMENTS.validate_python(raw)
    except ValidationError as exc:
        msg = f"Malformed SCIP documents: {exc.error_count()} errors"
        raise DecodeError(msg) from exc


async def decode_in_process(
    output_path: Path,
    timeout: float,
    *,
    proto_module: str = "scip_pb2",
) -> list[ScipDocument] | None:
    """Decode with generated protobuf bindings, if importable."""
    try:
        module = importlib.import_module(proto_module)
    except ImportError:
        logger.debug("SCIP bindings %r not importable", proto_module)
        return None
    index_cls = getattr(module, "Index", None)
    if index_cls is None:
        logger.debug("SCIP bindings %r have no Index message", proto_module)
        return None

    data = await asyncio.to_thread(output_path.read_bytes)
    index = index_cls()
    try:
        index.ParseFromString(data)
    except ProtobufDecodeError as exc:
        msg = f"Corrupt SCIP artifact at {output_path}: {exc}"
        raise DecodeError(msg) from exc

    payload = json_format.MessageToDict(
        index,
        preserving_proto_field_name=True,
        use_integers_for_enums=True,
    )
    return _validate_documents(payload.get("documents", []))


async def decode_via_subprocess(
    output_path: Path,
    timeout: float,
    *,
    max_output_bytes: int = MAX_SUBPROCESS_OUTPUT_BYTES,
) -> list[ScipDocument] | None:
    """Decode by spawning node with the scip-typescript bundle."""
    if shutil.which("npx") is None:
        logger.debug("npx not on PATH; subprocess decode unavailable")
        return None
    argv = [
        "npx",
        "--yes",
        "-p",
        SCIP_PACKAGE,
        "-p",
        "google-protobuf",
        "node",
        "-e",
        _NODE_DECODE_SCRIPT,
        str(output_path),
    ]
    stdout = await run_process(
        argv, timeout=timeout, max_output_bytes=max_output_bytes
    )
    try:
        raw = json.loads(stdout)
    except json.JSONDecodeError as exc:
        msg = f"SCIP decode subprocess emitted invalid JSON: {exc}"
        raise DecodeError(msg) from exc
    return _validate_documents(raw)


class StrategyDecoder:
    """Try each decode strategy in order; first non-None result wins."""

    def __init__(self, strategies: Sequence[DecodeStrategy]) -> None:
        if not strategies:
            raise ValueError("StrategyDecoder needs at least one strategy")
        self._strategies = list(strategies)

    async def __call__(
        self, output_path: Path, timeout: float
    ) -> list[ScipDocument]:
        for strategy in self._strategies:
            documents = await strategy(output_path, timeout)
            if documents is not None:
                return documents
            logger.debug(
                "Decode strategy %s unavailable, trying next",
                _strategy_name(strategy),
            )
        msg = "No SCIP decode strategy available"
        raise DecodeError(msg)


def _strategy_name(strategy: DecodeStrategy) -> str:
    func = strategy.func if isinstance(strategy, partial) else strategy
    return getattr(func, "__name__", repr(func))


def default_decoder(
    proto_module: str = "scip_pb2",
    max_output_bytes: int = MAX_SUBPROCESS_OUTPUT_BYTES,
) -> StrategyDecoder:
    return StrategyDecoder([
        partial(decode_in_process, proto_module=proto_module),
        partial(decode_via_subprocess, max_output_bytes=max_output_bytes),
    ])
