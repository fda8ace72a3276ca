"""Tests for SCIP document → ParseResult extraction."""

from __future__ import annotations

from indexwarden.indexing.schemas import (
    ScipDocument,
    ScipOccurrence,
    ScipSignatureDocumentation,
    ScipSymbolInformation,
)
from indexwarden.indexing.scip_extract import (
    dependency_from_symbol,
    extract_parse_result,
    function_name,
    normalize_range,
)

_GREET = "scip-typescript npm app 1.0.0 src/`greet.ts`/greet()."
_LODASH = "scip-typescript npm lodash 4.17.21 `lodash.d.ts`/chunk()."
_CONST = "scip-typescript npm app 1.0.0 src/`greet.ts`/LIMIT."


def _doc(
    symbols: list[ScipSymbolInformation],
    occurrences: list[ScipOccurrence],
) -> ScipDocument:
    return ScipDocument(
        relative_path="src/greet.ts",
        symbols=symbols,
        occurrences=occurrences,
    )


# ── normalize_range ──────────────────────────────────────────


def test_four_element_range_is_one_based_inclusive() -> None:
    assert normalize_range([3, 0, 3, 10]) == (4, 4)


def test_multi_line_range() -> None:
    assert normalize_range([9, 2, 14, 1]) == (10, 15)


def test_three_element_range_is_single_line() -> None:
    assert normalize_range([7, 4, 12]) == (8, 8)


def test_end_never_precedes_start() -> None:
    assert normalize_range([5, 0, 2, 0]) == (6, 6)


def test_empty_range_defaults_to_line_one() -> None:
    assert normalize_range([]) == (1, 1)


# ── symbol helpers ───────────────────────────────────────────


def test_dependency_is_package_token() -> None:
    assert dependency_from_symbol(_LODASH) == "lodash"


def test_local_symbol_has_no_dependency() -> None:
    assert dependency_from_symbol("local 3") is None


def test_function_name_prefers_display_name() -> None:
    info = ScipSymbolInformation(symbol=_GREET, display_name="greet")
    assert function_name(info, _GREET) == "greet"


def test_function_name_falls_back_to_descriptor() -> None:
    info = ScipSymbolInformation(symbol=_GREET, display_name="  ")
    assert function_name(info, _GREET) == "greet"


def test_function_name_empty_without_descriptor() -> None:
    info = ScipSymbolInformation(symbol=_CONST)
    assert function_name(info, _CONST) == ""


# ── extract_parse_result ─────────────────────────────────────


def test_definition_of_callable_becomes_entity() -> None:
    doc = _doc(
        [
            ScipSymbolInformation(
                symbol=_GREET,
                kind=17,
                display_name="greet",
                documentation=["Say hello.\nMore detail."],
                signature_documentation=ScipSignatureDocumentation(
                    text="function greet(name: string): string"
                ),
            )
        ],
        [ScipOccurrence(symbol=_GREET, symbol_roles=1, range=[3, 0, 3, 10])],
    )
    result = extract_parse_result(doc)

    assert result.parser == "scip-typescript"
    assert len(result.functions) == 1
    fn = result.functions[0]
    assert fn.name == "greet"
    assert (fn.start_line, fn.end_line) == (4, 4)
    assert fn.signature == "function greet(name: string): string"
    assert fn.purpose == "Say hello."
    assert result.module.exports == ["greet"]


def test_signature_falls_back_to_display_name_then_call_form() -> None:
    other = "scip-typescript npm app 1.0.0 src/`greet.ts`/other()."
    doc = _doc(
        [
            ScipSymbolInformation(symbol=_GREET, kind=17, display_name="greet"),
            ScipSymbolInformation(symbol=other, kind=17),
        ],
        [
            ScipOccurrence(symbol=_GREET, symbol_roles=1, range=[0, 0, 0, 5]),
            ScipOccurrence(symbol=other, symbol_roles=1, range=[2, 0, 2, 5]),
        ],
    )
    functions = extract_parse_result(doc).functions
    assert [f.signature for f in functions] == ["greet", "other()"]


def test_non_callable_kind_is_skipped() -> None:
    doc = _doc(
        [ScipSymbolInformation(symbol=_CONST, kind=8, display_name="LIMIT")],
        [ScipOccurrence(symbol=_CONST, symbol_roles=1, range=[1, 0, 1, 5])],
    )
    assert extract_parse_result(doc).functions == []


def test_reference_without_definition_bit_is_skipped() -> None:
    doc = _doc(
        [ScipSymbolInformation(symbol=_GREET, kind=17, display_name="greet")],
        [ScipOccurrence(symbol=_GREET, symbol_roles=0, range=[1, 0, 1, 5])],
    )
    assert extract_parse_result(doc).functions == []


def test_import_and_definition_roles_both_apply() -> None:
    doc = _doc(
        [ScipSymbolInformation(symbol=_LODASH, kind=17, display_name="chunk")],
        [ScipOccurrence(symbol=_LODASH, symbol_roles=3, range=[0, 9, 14])],
    )
    result = extract_parse_result(doc)

    assert result.module.dependencies == ["lodash"]
    assert [f.name for f in result.functions] == ["chunk"]


def test_duplicate_definitions_are_collapsed() -> None:
    occurrence = ScipOccurrence(
        symbol=_GREET, symbol_roles=1, range=[3, 0, 3, 10]
    )
    doc = _doc(
        [ScipSymbolInformation(symbol=_GREET, kind=17, display_name="greet")],
        [occurrence, occurrence],
    )
    assert len(extract_parse_result(doc).functions) == 1


def test_dependencies_are_deduplicated_in_order() -> None:
    react = "scip-typescript npm react 18.2.0 `index.d.ts`/useState()."
    doc = _doc(
        [],
        [
            ScipOccurrence(symbol=react, symbol_roles=2),
            ScipOccurrence(symbol=_LODASH, symbol_roles=2),
            ScipOccurrence(symbol=react, symbol_roles=2),
        ],
    )
    assert extract_parse_result(doc).module.dependencies == [
        "react",
        "lodash",
    ]


def test_blank_symbols_are_ignored() -> None:
    doc = _doc(
        [ScipSymbolInformation(symbol="", kind=17, display_name="ghost")],
        [ScipOccurrence(symbol="  ", symbol_roles=3, range=[0, 0, 1])],
    )
    result = extract_parse_result(doc)
    assert result.functions == []
    assert result.module.dependencies == []
