"""Pydantic models for parse results and decoded SCIP documents."""

from pydantic import BaseModel, ConfigDict, Field


class ParsedEntity(BaseModel):
    """One function-like unit discovered in a file (1-based lines)."""

    model_config = ConfigDict(frozen=True)

    name: str
    signature: str
    start_line: int
    end_line: int
    purpose: str = ""


class ParsedModule(BaseModel):
    model_config = ConfigDict(frozen=True)

    exports: list[str] = Field(default_factory=lambda: list[str]())
    dependencies: list[str] = Field(default_factory=lambda: list[str]())


class ParseResult(BaseModel):
    """Per-file output of any backend; ``parser`` tags the origin."""

    model_config = ConfigDict(frozen=True)

    parser: str
    functions: list[ParsedEntity] = Field(
        default_factory=lambda: list[ParsedEntity]()
    )
    module: ParsedModule = Field(default_factory=ParsedModule)


# ---------------------------------------------------------------------------
# Decoded SCIP index (protobuf → dict with original field names)
# ---------------------------------------------------------------------------


class ScipSignatureDocumentation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str | None = None


class ScipSymbolInformation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str | None = None
    kind: int | None = None
    display_name: str | None = None
    documentation: list[str] = Field(default_factory=lambda: list[str]())
    signature_documentation: ScipSignatureDocumentation | None = None


class ScipOccurrence(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str | None = None
    symbol_roles: int = 0
    range: list[int] = Field(default_factory=lambda: list[int]())


class ScipDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    relative_path: str | None = None
    symbols: list[ScipSymbolInformation] = Field(
        default_factory=lambda: list[ScipSymbolInformation]()
    )
    occurrences: list[ScipOccurrence] = Field(
        default_factory=lambda: list[ScipOccurrence]()
    )
