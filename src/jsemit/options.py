"""Compiler option checks that run before anything is dispatched.

Only the cross-field rules live here. Every other option is forwarded to the
engine, which owns rejecting values it does not understand.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jsemit.config import CompilerOptions
from jsemit.errors import ConfigError


def coerce_compiler_options(
    options: CompilerOptions | Mapping[str, Any] | None,
) -> CompilerOptions | None:
    """Return ``options`` as a CompilerOptions model (or None)."""
    if options is None or isinstance(options, CompilerOptions):
        return options
    return CompilerOptions.model_validate(dict(options))


def check_compiler_options(options: CompilerOptions | Mapping[str, Any] | None) -> None:
    """Fail fast on invalid compiler option combinations.

    Args:
        options: Compiler options as a model or a mapping with snake_case or
            camelCase keys. ``None`` always passes.

    Raises:
        ConfigError: If ``sourceMap`` and ``inlineSourceMap`` are both set, or
            if ``inlineSources`` is set without either of them.

    Example:
        >>> check_compiler_options({"inlineSourceMap": True, "inlineSources": True})
        >>> check_compiler_options({"inlineSources": True})
        Traceback (most recent call last):
        ...
        jsemit.errors.ConfigError: inlineSources requires sourceMap or inlineSourceMap
    """
    compiler_options = coerce_compiler_options(options)
    if compiler_options is None:
        return

    source_map = bool(compiler_options.source_map)
    inline_source_map = bool(compiler_options.inline_source_map)

    if source_map and inline_source_map:
        raise ConfigError("sourceMap and inlineSourceMap are mutually exclusive")
    if compiler_options.inline_sources and not (source_map or inline_source_map):
        raise ConfigError("inlineSources requires sourceMap or inlineSourceMap")
