"""Pydantic configuration models for jsemit.

This module provides:
- CacheSetting / BundleType: Enumerations shared with engines and loaders
- CompilerOptions: Emit-affecting subset of TypeScript compiler options
- ImportMap: Inline import map
- BundleOptions / TranspileOptions: Per-call options for bundle() and transpile()
- EmitSettings: Process-wide defaults read from JSEMIT_* environment variables
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL


class CacheSetting(str, Enum):
    """How a loader should use its cache for a request.

    Values match the strings engines send across the load boundary.
    """

    ONLY = "only"
    USE = "use"
    RELOAD = "reload"


class BundleType(str, Enum):
    """Shape of the emitted bundle."""

    MODULE = "module"
    CLASSIC = "classic"


class CompilerOptions(BaseModel):
    """Compiler options that affect emit.

    Known fields are typed and accept either snake_case or camelCase names.
    Unknown fields are kept as given and forwarded to the engine untouched;
    rejecting bad values for them is the engine's job.

    Only two cross-field rules are checked before dispatch (see
    :func:`jsemit.options.check_compiler_options`).

    Example:
        >>> options = CompilerOptions(sourceMap=True, jsx="react-jsx")
        >>> options.to_engine_dict()
        {'jsx': 'react-jsx', 'sourceMap': True}
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    check_js: bool | None = Field(default=None, description="Type check JavaScript files")
    emit_decorator_metadata: bool | None = Field(
        default=None,
        description="Emit reflection metadata for legacy decorators",
    )
    imports_not_used_as_values: str | None = Field(
        default=None,
        description="How type-only imports are emitted: remove, preserve or error",
    )
    inline_source_map: bool | None = Field(
        default=None,
        description="Embed the source map in the emitted code",
    )
    inline_sources: bool | None = Field(
        default=None,
        description="Embed original sources in the source map",
    )
    jsx: str | None = Field(default=None, description="JSX emit mode")
    jsx_factory: str | None = Field(default=None, description="Classic JSX factory function")
    jsx_fragment_factory: str | None = Field(
        default=None,
        description="Classic JSX fragment factory",
    )
    jsx_import_source: str | None = Field(
        default=None,
        description="Module specifier for the automatic JSX runtime",
    )
    source_map: bool | None = Field(default=None, description="Emit an external source map")

    def to_engine_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase mapping engines receive.

        Returns:
            Mapping of set options, camelCase keys, extras included.
        """
        return self.model_dump(by_alias=True, exclude_none=True)


class ImportMap(BaseModel):
    """An inline import map.

    Attributes:
        base_url: Base to resolve specifiers against, always treated as a
            directory. Defaults to the current working directory.
        imports: Top-level specifier remappings.
        scopes: Remappings that apply to importers under a given prefix.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    base_url: str | Path | URL | None = Field(
        default=None,
        union_mode="left_to_right",
        description="Directory the import map specifiers are relative to",
    )
    imports: dict[str, str] | None = Field(default=None, description="Specifier remappings")
    scopes: dict[str, dict[str, str]] | None = Field(
        default=None,
        description="Scoped specifier remappings",
    )


ImportMapSource = ImportMap | str | Path | URL


class _EmitOptions(BaseModel):
    """Options shared by bundle() and transpile()."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    import_map: ImportMap | str | Path | URL | None = Field(
        default=None,
        union_mode="left_to_right",
        description="Inline import map, or the URL or path of an import map file",
    )
    imports: dict[str, str] | None = Field(
        default=None,
        description="Inline import map imports; takes precedence over import_map",
    )
    scopes: dict[str, dict[str, str]] | None = Field(
        default=None,
        description="Inline import map scopes; takes precedence over import_map",
    )
    compiler_options: CompilerOptions | None = Field(
        default=None,
        description="Compiler options forwarded to the engine",
    )
    load: Any = Field(
        default=None,
        description="Loader overriding the default fetch loader",
    )
    allow_remote: bool | None = Field(
        default=None,
        description="Allow the default loader to fetch http(s) modules",
    )
    cache_root: Path | None = Field(
        default=None,
        description="Deno-style cache directory read by the default loader",
    )
    cache_setting: CacheSetting | None = Field(
        default=None,
        description="Cache setting for the default loader and import map fetch",
    )

    @field_validator("load")
    @classmethod
    def load_must_be_loader(cls, v: Any) -> Any:
        """Validate that load is a callable or has a load method."""
        if v is None or callable(v) or callable(getattr(v, "load", None)):
            return v
        msg = f"load must be callable or provide a load() method, got {type(v).__name__}"
        raise ValueError(msg)

    @property
    def has_inline_imports(self) -> bool:
        """Whether the inline imports/scopes pair was supplied."""
        return self.imports is not None or self.scopes is not None


class TranspileOptions(_EmitOptions):
    """Options for :func:`jsemit.transpile`.

    Example:
        >>> options = TranspileOptions(
        ...     import_map="./import_map.json",
        ...     compiler_options={"inlineSourceMap": True},
        ... )
    """


class BundleOptions(_EmitOptions):
    """Options for :func:`jsemit.bundle`.

    Attributes:
        type: Emit an ES module ("module") or an IIFE script ("classic").
        minify: Ask the engine to minify the bundle.
    """

    type: BundleType = Field(default=BundleType.MODULE, description="Bundle type")
    minify: bool = Field(default=False, description="Minify the emitted bundle")


class EmitSettings(BaseSettings):
    """Process-wide defaults for jsemit.

    Loaded from environment variables with the JSEMIT_ prefix. Per-call
    options take precedence over these values.

    Example:
        >>> # JSEMIT_ENGINE=my_engine.binding:Engine
        >>> settings = EmitSettings()
        >>> settings.engine
        'my_engine.binding:Engine'
    """

    model_config = SettingsConfigDict(
        env_prefix="JSEMIT_",
        env_file=".env",
        extra="ignore",
    )

    engine: str | None = Field(
        default=None,
        description="Import path of the compiler engine (module:attribute)",
    )
    cache_dir: Path | None = Field(
        default=None,
        description="Deno-style cache directory read by the default loader",
    )
    cache_setting: CacheSetting = Field(
        default=CacheSetting.USE,
        description="Default cache setting for the default loader",
    )
    allow_remote: bool = Field(
        default=True,
        description="Allow the default loader to fetch http(s) modules",
    )
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout in seconds for remote fetches",
    )
    log_level: str = Field(default="WARNING", description="CLI log level")
    log_json: bool = Field(default=False, description="Emit CLI logs as JSON")
