"""Convert one decoded SCIP document into a ParseResult."""

from __future__ import annotations

import re

from indexwarden.constants import (
    SCIP_FUNCTION_KINDS,
    SCIP_PARSER_NAME,
    SCIP_ROLE_DEFINITION,
    SCIP_ROLE_IMPORT,
)
from indexwarden.indexing.schemas import (
    ParsedEntity,
    ParsedModule,
    ParseResult,
    ScipDocument,
    ScipSymbolInformation,
)

# "<scheme> <manager> <package> <version> <descriptors>"; locals have no package
_PACKAGE_RE = re.compile(r"^(?!local\s)\S+\s+\S+\s+(\S+)\s+\S+\s+")
# Method/function descriptor: ".../name()."
_DESCRIPTOR_RE = re.compile(r"/([^/`]+)\(\)\.")


def extract_parse_result(document: ScipDocument) -> ParseResult:
    """Build entities, exports and dependencies from a SCIP document.

    Occurrences with the import role contribute a dependency name;
    definitions of callable kinds become entities, deduplicated on
    (name, start_line, end_line).
    """
    symbol_by_id: dict[str, ScipSymbolInformation] = {}
    for info in document.symbols:
        symbol = (info.symbol or "").strip()
        if symbol:
            symbol_by_id[symbol] = info

    dependencies: dict[str, None] = {}
    functions: list[ParsedEntity] = []
    seen: set[tuple[str, int, int]] = set()

    for occurrence in document.occurrences:
        symbol = (occurrence.symbol or "").strip()
        if not symbol:
            continue
        roles = occurrence.symbol_roles

        if roles & SCIP_ROLE_IMPORT == SCIP_ROLE_IMPORT:
            dependency = dependency_from_symbol(symbol)
            if dependency:
                dependencies[dependency] = None

        if roles & SCIP_ROLE_DEFINITION != SCIP_ROLE_DEFINITION:
            continue
        info = symbol_by_id.get(symbol)
        if info is None or (info.kind or 0) not in SCIP_FUNCTION_KINDS:
            continue

        start_line, end_line = normalize_range(occurrence.range)
        name = function_name(info, symbol)
        key = (name, start_line, end_line)
        if not name or key in seen:
            continue
        seen.add(key)

        signature_doc = (
            info.signature_documentation.text
            if info.signature_documentation
            else None
        )
        signature = (
            signature_doc
            if signature_doc is not None
            else info.display_name
            if info.display_name is not None
            else f"{name}()"
        ).strip()
        purpose = _first_line(
            info.documentation[0] if info.documentation else ""
        )

        functions.append(
            ParsedEntity(
                name=name,
                signature=signature,
                start_line=start_line,
                end_line=end_line,
                purpose=purpose,
            )
        )

    exports = list(dict.fromkeys(fn.name for fn in functions))
    return ParseResult(
        parser=SCIP_PARSER_NAME,
        functions=functions,
        module=ParsedModule(
            exports=exports,
            dependencies=list(dependencies),
        ),
    )


def normalize_range(range_: list[int]) -> tuple[int, int]:
    """Map a 0-based SCIP range to 1-based inclusive (start, end) lines.

    Four elements are ``[start_line, start_char, end_line, end_char]``;
    three elements mean a single-line range.
    """
    start = max(0, range_[0]) if range_ else 0
    end = start
    if len(range_) >= 4:
        end = max(start, range_[2])
    return start + 1, end + 1


def function_name(info: ScipSymbolInformation, symbol: str) -> str:
    display = (info.display_name or "").strip()
    if display:
        return display
    match = _DESCRIPTOR_RE.search(symbol)
    return match.group(1) if match else ""


def dependency_from_symbol(symbol: str) -> str | None:
    """Package segment of a global SCIP symbol, if present."""
    match = _PACKAGE_RE.match(symbol)
    if match is None or match.group(1) == ".":
        return None
    return match.group(1)


def _first_line(value: str) -> str:
    return value.split("\n", 1)[0].strip()
