"""General-purpose fallback parser built on tree-sitter.

``TreeSitterParser.parse`` never raises: when a grammar is missing or
the parse itself fails, a conservative line-based scan produces a
best-effort result instead, so callers always get a ParseResult.
"""

from __future__ import annotations

import importlib
import logging
import re
from pathlib import Path

import tree_sitter

from indexwarden.config import EXTENSION_MAP, GRAMMAR_MODULES
from indexwarden.indexing.schemas import ParsedEntity, ParsedModule, ParseResult

logger = logging.getLogger(__name__)

# Function-like node types, per language.
_FUNCTION_NODE_TYPES: dict[str, frozenset[str]] = {
    "python": frozenset({"function_definition"}),
    "javascript": frozenset({
        "function_declaration",
        "generator_function_declaration",
        "method_definition",
        "arrow_function",
        "function_expression",
    }),
    "java": frozenset({"method_declaration", "constructor_declaration"}),
    "go": frozenset({"function_declaration", "method_declaration"}),
    "rust": frozenset({"function_item"}),
    "c": frozenset({"function_definition"}),
    "cpp": frozenset({"function_definition"}),
}
_FUNCTION_NODE_TYPES["typescript"] = _FUNCTION_NODE_TYPES["javascript"] | {
    "method_signature",
    "function_signature",
}
_FUNCTION_NODE_TYPES["tsx"] = _FUNCTION_NODE_TYPES["typescript"]

# Import-related node types per language
_IMPORT_NODE_TYPES: dict[str, frozenset[str]] = {
    "python": frozenset({"import_statement", "import_from_statement"}),
    "javascript": frozenset({"import_statement", "call_expression"}),
    "typescript": frozenset({"import_statement", "call_expression"}),
    "tsx": frozenset({"import_statement", "call_expression"}),
    "java": frozenset({"import_declaration"}),
    "go": frozenset({"import_spec"}),
    "rust": frozenset({"use_declaration"}),
    "c": frozenset({"preproc_include"}),
    "cpp": frozenset({"preproc_include"}),
}

_STRING_PREFIX_RE = re.compile(r"^[rRbBuUfF]*(?:\"\"\"|'''|\"|')")
_ANONYMOUS_FUNCTIONS = frozenset({"arrow_function", "function_expression"})
_BODY_FIELDS = ("body", "block")


class TreeSitterParser:
    """Fallback parser: tree-sitter when available, line scan otherwise."""

    name = "tree-sitter"

    def parse(self, file_path: Path | str, content: str) -> ParseResult:
        language = EXTENSION_MAP.get(Path(file_path).suffix.lower())
        if language is None:
            return parse_lines("generic", content)

        parser = _get_parser(language)
        if parser is not None:
            try:
                return _parse_tree(parser, language, content)
            except Exception:  # noqa: BLE001
                # Parser crash on hostile input → line scan
                logger.debug(
                    "tree-sitter failed on %s; using line scan",
                    file_path,
                    exc_info=True,
                )
        return parse_lines(language, content)


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _parse_tree(
    parser: tree_sitter.Parser, language: str, content: str
) -> ParseResult:
    source = content.encode("utf-8", errors="replace")
    tree = parser.parse(source)
    function_types = _FUNCTION_NODE_TYPES.get(language, frozenset())
    import_types = _IMPORT_NODE_TYPES.get(language, frozenset())

    functions: list[ParsedEntity] = []
    dependencies: dict[str, None] = {}
    exports: dict[str, None] = {}

    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type in function_types:
            entity = _build_entity(node, source, language)
            if entity is not None:
                functions.append(entity)
                if _is_exported(node, language):
                    exports[entity.name] = None
        if node.type in import_types:
            for dep in _import_targets(node, language):
                dependencies[dep] = None
        stack.extend(reversed(node.children))

    return ParseResult(
        parser=f"tree-sitter:{language}",
        functions=functions,
        module=ParsedModule(
            exports=list(exports),
            dependencies=list(dependencies),
        ),
    )


def _node_text(node: tree_sitter.Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _entity_name(node: tree_sitter.Node) -> str | None:
    name_node = node.child_by_field_name("name")

    # C/C++: name sits at the bottom of the declarator chain
    if name_node is None and node.type == "function_definition":
        decl = node.child_by_field_name("declarator")
        while decl is not None:
            inner = decl.child_by_field_name("declarator")
            if inner is None:
                break
            decl = inner
        name_node = decl

    # const handler = () => {...}
    if name_node is None and node.type in _ANONYMOUS_FUNCTIONS:
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            name_node = parent.child_by_field_name("name")

    name = _node_text(name_node).strip()
    return name or None


def _build_entity(
    node: tree_sitter.Node, source: bytes, language: str
) -> ParsedEntity | None:
    name = _entity_name(node)
    if name is None:
        return None

    body = None
    for field in _BODY_FIELDS:
        body = node.child_by_field_name(field)
        if body is not None:
            break
    end_byte = body.start_byte if body is not None else node.end_byte
    header = source[node.start_byte:end_byte].decode(
        "utf-8", errors="replace"
    )
    signature = " ".join(header.split()).rstrip(":{ ").strip() or name

    return ParsedEntity(
        name=name,
        signature=signature,
        start_line=node.start_point[0] + 1,
        end_line=node.end_point[0] + 1,
        purpose=_purpose(node, body, language),
    )


def _purpose(
    node: tree_sitter.Node,
    body: tree_sitter.Node | None,
    language: str,
) -> str:
    """First line of the docstring or leading doc comment."""
    raw = ""
    if language == "python" and body is not None:
        for stmt in body.named_children:
            if stmt.type == "expression_statement":
                first = stmt.named_children[0] if stmt.named_children else None
                if first is not None and first.type == "string":
                    raw = _STRING_PREFIX_RE.sub("", _node_text(first))
                    raw = raw.rstrip("\"'")
            break  # Only check first statement
    else:
        prev = node.prev_named_sibling
        if prev is None and node.parent is not None:
            prev = node.parent.prev_named_sibling
        if prev is not None and prev.type in ("comment", "block_comment"):
            raw = _node_text(prev).strip("/*# \n")
    for line in raw.splitlines():
        cleaned = line.strip().lstrip("*").strip()
        if cleaned:
            return cleaned
    return ""


def _is_exported(node: tree_sitter.Node, language: str) -> bool:
    if language == "python":
        parent = node.parent
        if parent is not None and parent.type == "decorated_definition":
            parent = parent.parent
        name = _entity_name(node) or ""
        return (
            parent is not None
            and parent.type == "module"
            and not name.startswith("_")
        )
    if language in ("javascript", "typescript", "tsx"):
        current = node.parent
        while current is not None and current.type != "program":
            if current.type == "export_statement":
                return True
            current = current.parent
        return False
    return False


def _import_targets(node: tree_sitter.Node, language: str) -> list[str]:
    """Module names referenced by an import-like node."""
    text = _node_text(node).strip()
    if language == "python":
        m = re.match(r"from\s+([\w.]+)\s+import\s", text)
        if m:
            return [m.group(1)]
        m = re.match(r"import\s+(.+)", text)
        if m:
            return [
                mod.strip().split(" as ")[0]
                for mod in m.group(1).split(",")
                if mod.strip()
            ]
        return []
    if language in ("javascript", "typescript", "tsx"):
        if node.type == "call_expression":
            m = re.match(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""", text)
            return [m.group(1)] if m else []
        m = re.search(r"""from\s+['"]([^'"]+)['"]""", text) or re.search(
            r"""import\s+['"]([^'"]+)['"]""", text
        )
        return [m.group(1)] if m else []
    if language == "java":
        m = re.match(r"import\s+(?:static\s+)?([\w.]+)", text)
        return [m.group(1)] if m else []
    if language == "go":
        m = re.search(r'"([^"]+)"', text)
        return [m.group(1)] if m else []
    if language == "rust":
        m = re.match(r"use\s+([\w:]+)", text)
        return [m.group(1)] if m else []
    if language in ("c", "cpp"):
        m = re.match(r'#include\s+[<"]([^>"]+)[>"]', text)
        return [m.group(1)] if m else []
    return []


# ---------------------------------------------------------------------------
# Line-based fallback (no grammar available)
# ---------------------------------------------------------------------------

_IMPORT_LINE_RES = (
    re.compile(r"^\s*import\s+.+", re.IGNORECASE),
    re.compile(r"^\s*from\s+\S+\s+import\s+.+", re.IGNORECASE),
    re.compile(r"^\s*#include\s+[<\"].+[>\"]", re.IGNORECASE),
    re.compile(r"^\s*using\s+\S+", re.IGNORECASE),
    re.compile(r"^\s*require\s*\(.+\)", re.IGNORECASE),
)

_DEPENDENCY_RES = (
    re.compile(r"""\bfrom\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\bimport\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"^\s*from\s+([\w.]+)\s+import\b"),
    re.compile(r"^\s*import\s+([\w.]+)\s*;?\s*$"),
    re.compile(r"""^\s*#include\s+[<"]([^>"]+)[>"]"""),
    re.compile(r"^\s*using\s+([\w.]+)\s*;"),
)

_GENERIC_FUNCTION_RES = (
    re.compile(r"^\s*(?:export\s+)?(?:async\s+)?function\s+([A-Za-z_$][\w$]*)\s*\(", re.IGNORECASE),
    re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_][\w!?=]*)", re.IGNORECASE),
)

_FUNCTION_LINE_RES: dict[str, tuple[re.Pattern[str], ...]] = {
    "kotlin": (
        re.compile(r"^\s*(?:[\w@\s]+\s+)?fun\s+(?:[\w<>,.?]+\.)?([A-Za-z_]\w*)\s*\("),
    ),
    "swift": (
        re.compile(r"^\s*(?:@[\w.]+\s+)?(?:public|private|fileprivate|internal|open)?\s*(?:static\s+)?func\s+([A-Za-z_]\w*)\s*\("),
    ),
    "ruby": (re.compile(r"^\s*def\s+(?:self\.)?([A-Za-z_][\w!?=]*)"),),
    "php": (
        re.compile(r"^\s*(?:public|private|protected)?\s*(?:static\s+)?function\s+([A-Za-z_]\w*)\s*\(", re.IGNORECASE),
    ),
    "csharp": (
        re.compile(r"^\s*(?:\[[^\]]+\]\s*)*(?:(?:public|private|protected|internal|static|virtual|override|async|sealed|extern|partial|new|unsafe|readonly)\s+)+[\w<>,\[\]?]+\s+([A-Za-z_]\w*)\s*\("),
    ),
    "scala": (re.compile(r"^\s*def\s+([A-Za-z_]\w*)\b"),),
    "dart": (
        re.compile(r"^\s*(?:[A-Za-z_][\w<>,\[\]\s?]*\s+)?([A-Za-z_]\w*)\s*\([^;]*\)\s*(?:async\s*)?(?:=>|\{)"),
    ),
    "lua": (re.compile(r"^\s*(?:local\s+)?function\s+([A-Za-z_][\w.:]*)\s*\("),),
    "c": (
        re.compile(r"^\s*[A-Za-z_][\w\s*:&<>]*\s+\**([A-Za-z_]\w*)\s*\([^;]*\)\s*\{"),
    ),
    "python": (re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\("),),
    "go": (re.compile(r"^\s*func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)\s*\("),),
    "rust": (re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?fn\s+([A-Za-z_]\w*)"),),
}
_FUNCTION_LINE_RES["cpp"] = _FUNCTION_LINE_RES["c"]


def parse_lines(language: str, content: str) -> ParseResult:
    """Deterministic, grammar-free scan for definitions and imports."""
    patterns = _FUNCTION_LINE_RES.get(language, _GENERIC_FUNCTION_RES)
    functions: list[ParsedEntity] = []
    dependencies: dict[str, None] = {}

    for index, line in enumerate(content.splitlines()):
        if any(r.match(line) for r in _IMPORT_LINE_RES):
            for dep_re in _DEPENDENCY_RES:
                m = dep_re.search(line)
                if m:
                    dependencies[m.group(1)] = None
                    break
        for pattern in patterns:
            m = pattern.match(line)
            if m and m.group(1).strip():
                name = m.group(1).strip()
                functions.append(
                    ParsedEntity(
                        name=name,
                        signature=line.strip() or name,
                        start_line=index + 1,
                        end_line=index + 1,
                    )
                )
                break

    return ParseResult(
        parser=f"deterministic-fallback:{language}",
        functions=functions,
        module=ParsedModule(dependencies=list(dependencies)),
    )


# ---------------------------------------------------------------------------
# Parser cache
# ---------------------------------------------------------------------------

_parser_cache: dict[str, tree_sitter.Parser] = {}


def _get_parser(language: str) -> tree_sitter.Parser | None:
    """Get or create a cached tree-sitter parser."""
    if language in _parser_cache:
        return _parser_cache[language]

    spec = GRAMMAR_MODULES.get(language)
    if spec is None:
        return None
    module_name, factory = spec

    try:
        mod = importlib.import_module(module_name)
        capsule: object = getattr(mod, factory)()
        lang = tree_sitter.Language(capsule)
        parser = tree_sitter.Parser(lang)
        _parser_cache[language] = parser
        return parser
    except (ImportError, AttributeError):
        return None
