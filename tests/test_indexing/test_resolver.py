"""Tests for BackendResolver fall-through."""

from __future__ import annotations

from pathlib import Path

from indexwarden.config import Settings
from indexwarden.indexing.parsers import TreeSitterParser
from indexwarden.indexing.resolver import BackendResolver, build_resolver
from indexwarden.indexing.schemas import ParsedEntity, ParseResult
from indexwarden.indexing.scip_backend import ScipTypescriptBackend


class StubBackend:
    def __init__(self, name: str, result: ParseResult | None) -> None:
        self.name = name
        self.result = result
        self.calls = 0

    async def parse_file(
        self, file_path: Path | str, content: str | None = None
    ) -> ParseResult | None:
        self.calls += 1
        return self.result


class StubFallback:
    name = "stub-fallback"

    def __init__(self) -> None:
        self.calls = 0

    def parse(self, file_path: Path | str, content: str) -> ParseResult:
        self.calls += 1
        return ParseResult(parser="stub-fallback")


def _scip_result() -> ParseResult:
    return ParseResult(
        parser="scip-typescript",
        functions=[
            ParsedEntity(name="main", signature="main()", start_line=1, end_line=1)
        ],
    )


async def test_backend_result_wins_and_skips_fallback() -> None:
    fallback = StubFallback()
    resolver = BackendResolver([StubBackend("scip", _scip_result())], fallback)

    result = await resolver.resolve("/ws/a.ts", "")

    assert result.parser == "scip-typescript"
    assert fallback.calls == 0


async def test_none_falls_through_to_fallback() -> None:
    fallback = StubFallback()
    resolver = BackendResolver([StubBackend("scip", None)], fallback)

    result = await resolver.resolve("/ws/a.ts", "")

    assert result.parser == "stub-fallback"
    assert fallback.calls == 1


async def test_backends_are_tried_in_order() -> None:
    first = StubBackend("first", None)
    second = StubBackend("second", _scip_result())
    third = StubBackend("third", ParseResult(parser="third"))
    resolver = BackendResolver([first, second, third], StubFallback())

    result = await resolver.resolve("/ws/a.ts", "")

    assert result.parser == "scip-typescript"
    assert (first.calls, second.calls, third.calls) == (1, 1, 0)


async def test_no_backends_uses_fallback() -> None:
    result = await BackendResolver([], StubFallback()).resolve("x.ts", "")
    assert result.parser == "stub-fallback"


async def test_default_wiring_with_disabled_scip(tmp_path: Path) -> None:
    settings = Settings(workspace_root=tmp_path)
    resolver = build_resolver(settings)

    assert [b.name for b in resolver.backends] == ["scip-typescript"]
    result = await resolver.resolve(
        tmp_path / "a.py", "def main():\n    return 1\n"
    )
    assert result.parser.endswith(":python")
    assert [f.name for f in result.functions] == ["main"]


def test_build_resolver_accepts_backend_override(tmp_path: Path) -> None:
    backend = ScipTypescriptBackend(tmp_path, enabled=True)
    resolver = build_resolver(Settings(workspace_root=tmp_path), backend)
    assert resolver.backends == [backend]
    assert isinstance(resolver._fallback, TreeSitterParser)  # noqa: SLF001
