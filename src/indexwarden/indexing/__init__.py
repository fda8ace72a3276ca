"""Per-file parsing: SCIP-backed index cache with a tree-sitter fallback."""

from indexwarden.indexing.resolver import BackendResolver, build_resolver
from indexwarden.indexing.schemas import ParsedEntity, ParsedModule, ParseResult

__all__ = [
    "BackendResolver",
    "ParseResult",
    "ParsedEntity",
    "ParsedModule",
    "build_resolver",
]
