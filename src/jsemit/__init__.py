"""jsemit: module resolution and load bridging for JavaScript/TypeScript emit.

This package drives an external compiler engine with:
- Canonical URLs for paths, URL strings and URL objects
- Import maps, inline or loaded from a file through the module loader
- A pluggable async loader bridged to the engine's load callback
- Compiler option checks before anything is dispatched

Example:
    >>> from jsemit import bundle, transpile
    >>> result = await bundle("./mod.ts", {"import_map": "./import_map.json"})
    >>> print(result.code)
    >>> outputs = await transpile("./mod.ts")
    >>> list(outputs)
    ['file:///project/mod.ts']
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
__all__ = [
    # Entry points
    "bundle",
    "transpile",
    "BundleEmit",
    "EmitStage",
    # Configuration models
    "BundleOptions",
    "TranspileOptions",
    "CompilerOptions",
    "ImportMap",
    "CacheSetting",
    "BundleType",
    "EmitSettings",
    # Resolution and loading
    "location_to_url",
    "check_compiler_options",
    "build_import_map",
    "SerializedImportMap",
    "LoadBridge",
    "Loader",
    "FetchLoader",
    "create_cache",
    "ModuleResponse",
    "ExternalResponse",
    "BuiltInResponse",
    # Engine boundary
    "Engine",
    "load_engine",
    # Exceptions
    "EmitError",
    "ConfigError",
    "EngineNotFoundError",
    "LocationError",
    "ImportMapError",
    "LoadError",
    "EngineError",
]

# Lazy imports keep ``import jsemit`` cheap for the CLI


def __getattr__(name: str) -> object:
    """Lazy import of public API members."""
    if name in ("bundle", "transpile", "BundleEmit", "EmitStage"):
        from jsemit import emit as emit_module

        return getattr(emit_module, name)
    if name in (
        "BundleOptions",
        "TranspileOptions",
        "CompilerOptions",
        "ImportMap",
        "CacheSetting",
        "BundleType",
        "EmitSettings",
    ):
        from jsemit import config as config_module

        return getattr(config_module, name)
    if name == "location_to_url":
        from jsemit.location import location_to_url

        return location_to_url
    if name == "check_compiler_options":
        from jsemit.options import check_compiler_options

        return check_compiler_options
    if name in ("build_import_map", "SerializedImportMap"):
        from jsemit import import_map as import_map_module

        return getattr(import_map_module, name)
    if name in ("LoadBridge", "Loader", "FetchLoader", "create_cache"):
        from jsemit import loader as loader_module

        return getattr(loader_module, name)
    if name in ("ModuleResponse", "ExternalResponse", "BuiltInResponse"):
        from jsemit import responses as responses_module

        return getattr(responses_module, name)
    if name in ("Engine", "load_engine"):
        from jsemit import engine as engine_module

        return getattr(engine_module, name)
    if name in (
        "EmitError",
        "ConfigError",
        "EngineNotFoundError",
        "LocationError",
        "ImportMapError",
        "LoadError",
        "EngineError",
    ):
        from jsemit import errors as errors_module

        return getattr(errors_module, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
