"""Environment-based configuration and language tables."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from indexwarden.constants import (
    CONTEXT_PACK_PROBE_LIMIT,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_INDEXER_TIMEOUT_SECONDS,
    DEFAULT_SCIP_EXTENSIONS,
    MAX_SUBPROCESS_OUTPUT_BYTES,
    WISDOM_COVERAGE_MIN_FUNCTIONS,
    WISDOM_COVERAGE_THRESHOLD,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and INDEXWARDEN_* environment variables."""

    # Workspace + storage
    workspace_root: Path = Path(".")
    database_url: str = "sqlite:///.indexwarden/index.db"

    # Logging
    log_level: str = "INFO"

    # SCIP backend (disabled unless opted in)
    scip_enabled: bool = False
    scip_cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    scip_timeout_seconds: float = DEFAULT_INDEXER_TIMEOUT_SECONDS
    scip_output_path: Path | None = None
    scip_max_output_bytes: int = MAX_SUBPROCESS_OUTPUT_BYTES
    scip_proto_module: str = "scip_pb2"
    scip_extensions: Annotated[list[str], NoDecode] = list(
        DEFAULT_SCIP_EXTENSIONS
    )

    # Checks
    wisdom_min_functions: int = WISDOM_COVERAGE_MIN_FUNCTIONS
    wisdom_threshold: float = WISDOM_COVERAGE_THRESHOLD
    context_pack_probe_limit: int = CONTEXT_PACK_PROBE_LIMIT

    # Freshness decay (per hour; half-life ~29 days)
    freshness_decay_lambda: float = 0.001
    freshness_stale_threshold: float = 0.7
    freshness_critical_threshold: float = 0.3

    @field_validator("scip_extensions", mode="before")
    @classmethod
    def _parse_extensions(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            v = [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return [
                (e if e.startswith(".") else f".{e}").lower()
                for e in v  # pyright: ignore[reportUnknownVariableType]
            ]
        return v

    @field_validator("wisdom_threshold")
    @classmethod
    def _validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("wisdom_threshold must be within [0, 1]")
        return v

    @model_validator(mode="after")
    def _validate_freshness(self) -> Settings:
        if self.freshness_critical_threshold > self.freshness_stale_threshold:
            raise ValueError(
                "freshness_critical_threshold must be less than or "
                "equal to freshness_stale_threshold"
            )
        if self.scip_cache_ttl_seconds < 0:
            logger.warning(
                "Negative SCIP cache TTL (%s); every call will refresh",
                self.scip_cache_ttl_seconds,
            )
        return self

    @property
    def resolved_workspace(self) -> Path:
        return self.workspace_root.resolve()

    @property
    def resolved_scip_output(self) -> Path:
        """Artifact path, defaulting under the workspace."""
        if self.scip_output_path is not None:
            return self.scip_output_path.resolve()
        return (
            self.resolved_workspace / ".indexwarden" / "scip" / "index.scip"
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "INDEXWARDEN_",
        "extra": "ignore",
    }


# File extension → language name mapping (fallback parser)
EXTENSION_MAP: dict[str, str] = {
    # Python
    ".py": "python",
    ".pyi": "python",
    # JavaScript
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    # TypeScript
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    # Java
    ".java": "java",
    # Go
    ".go": "go",
    # Rust
    ".rs": "rust",
    # C / C++
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    # Others handled by the line-based fallback only
    ".rb": "ruby",
    ".php": "php",
    ".kt": "kotlin",
    ".swift": "swift",
    ".cs": "csharp",
    ".scala": "scala",
    ".lua": "lua",
    ".dart": "dart",
}

# Language → (grammar module, language factory attribute)
GRAMMAR_MODULES: dict[str, tuple[str, str]] = {
    "python": ("tree_sitter_python", "language"),
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "java": ("tree_sitter_java", "language"),
    "go": ("tree_sitter_go", "language"),
    "rust": ("tree_sitter_rust", "language"),
    "c": ("tree_sitter_c", "language"),
    "cpp": ("tree_sitter_cpp", "language"),
}


def create_app_engine(
    url: str, *, echo: bool = False
) -> AsyncEngine:
    """Create a read-only async SQLite engine over the index database.

    Handles URL conversion (sqlite:/// → sqlite+aiosqlite:///) and
    sets ``query_only`` via a pool-connect event listener so it fires
    once per raw DBAPI connection. The pragma is per connection and
    never persisted to the file.
    """
    if url.startswith("sqlite:///"):
        db_url = "sqlite+aiosqlite:///" + url[len("sqlite:///"):]
    else:
        db_url = url
    engine = create_async_engine(db_url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_query_only(
        dbapi_conn: object,
        _connection_record: object,
    ) -> None:
        cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
        cursor.execute("PRAGMA query_only=ON")  # pyright: ignore[reportUnknownMemberType]
        cursor.close()  # pyright: ignore[reportUnknownMemberType]

    return engine
