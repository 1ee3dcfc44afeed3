"""Bundle and transpile entry points.

Each call runs through the same stages:

1. validating: coerce options, check compiler options, locate the engine
2. resolving: canonicalize the root and resolve the import map
3. invoking: exactly one engine call, which loads modules through the bridge
4. done: shape the engine's raw result

Nothing is kept between calls. A failure in any stage aborts the call, and
no partial result is ever returned.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from jsemit.config import BundleOptions, TranspileOptions, _EmitOptions
from jsemit.engine import Engine, get_default_engine
from jsemit.errors import EmitError
from jsemit.import_map import SerializedImportMap, build_import_map, select_import_map_source
from jsemit.loader import LoadBridge, create_cache
from jsemit.location import Location, location_to_url
from jsemit.observability import emit_operation, get_logger
from jsemit.options import check_compiler_options

OptionsT = TypeVar("OptionsT", bound=_EmitOptions)


class EmitStage(str, Enum):
    """Stages of a bundle or transpile call."""

    VALIDATING = "validating"
    RESOLVING = "resolving"
    INVOKING = "invoking"
    DONE = "done"


class BundleEmit(BaseModel):
    """Result of :func:`bundle`.

    Attributes:
        code: The emitted bundle.
        map: The external source map, or None when none was produced.
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Emitted bundle code")
    map: str | None = Field(default=None, description="Source map, if any")


async def bundle(
    root: Location,
    options: BundleOptions | Mapping[str, Any] | None = None,
    *,
    engine: Engine | None = None,
) -> BundleEmit:
    """Bundle the module graph under ``root`` into a single emit.

    Args:
        root: Location of the entry module.
        options: BundleOptions, or a mapping of its fields.
        engine: Compiler engine. Defaults to the one configured through
            ``JSEMIT_ENGINE``.

    Returns:
        The bundle code and its source map, if any.

    Raises:
        ConfigError: If the compiler options are invalid or no engine is
            configured.
        LocationError: If the root location is invalid.
        ImportMapError: If a referenced import map cannot be resolved.
        pydantic.ValidationError: If ``options`` is a mapping that does not
            validate.

    Errors raised by the engine or the loader propagate unchanged.

    Example:
        >>> result = await bundle("./mod.ts", {"compiler_options": {"sourceMap": True}})
        >>> print(result.code)
    """
    opts = _coerce_options(BundleOptions, options)
    with emit_operation(
        "bundle",
        root=str(root),
        bundle_type=opts.type.value,
        has_import_map=opts.import_map is not None or opts.has_inline_imports,
    ):
        resolved_engine = _validate(opts, engine)
        root_url, load, import_map = await _resolve(root, opts)

        with _stage(EmitStage.INVOKING):
            raw = await resolved_engine.bundle(
                root_url,
                load,
                import_map,
                _engine_compiler_options(opts),
                bundle_type=opts.type,
                minify=opts.minify,
            )

        with _stage(EmitStage.DONE):
            return _bundle_result(raw)


async def transpile(
    root: Location,
    options: TranspileOptions | Mapping[str, Any] | None = None,
    *,
    engine: Engine | None = None,
) -> dict[str, str]:
    """Transpile every module in the graph under ``root``.

    Args:
        root: Location of the entry module.
        options: TranspileOptions, or a mapping of its fields.
        engine: Compiler engine. Defaults to the one configured through
            ``JSEMIT_ENGINE``.

    Returns:
        Mapping of canonical module URL to emitted source, exactly as the
        engine produced it.

    Raises:
        ConfigError: If the compiler options are invalid or no engine is
            configured.
        LocationError: If the root location is invalid.
        ImportMapError: If a referenced import map cannot be resolved.
    """
    opts = _coerce_options(TranspileOptions, options)
    with emit_operation(
        "transpile",
        root=str(root),
        has_import_map=opts.import_map is not None or opts.has_inline_imports,
    ):
        resolved_engine = _validate(opts, engine)
        root_url, load, import_map = await _resolve(root, opts)

        with _stage(EmitStage.INVOKING):
            raw = await resolved_engine.transpile(
                root_url,
                load,
                import_map,
                _engine_compiler_options(opts),
            )

        with _stage(EmitStage.DONE):
            return dict(raw)


@contextmanager
def _stage(stage: EmitStage) -> Iterator[None]:
    """Run a block as one emit stage.

    EmitErrors surfacing from the validating and resolving stages are tagged
    with the stage name. Errors from the engine call are left untouched.
    """
    get_logger().debug("emit_stage", stage=stage.value)
    try:
        yield
    except EmitError as exc:
        if stage in (EmitStage.VALIDATING, EmitStage.RESOLVING) and exc.stage is None:
            exc.stage = stage.value
        raise


def _coerce_options(
    model: type[OptionsT],
    options: OptionsT | Mapping[str, Any] | None,
) -> OptionsT:
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    if isinstance(options, Mapping):
        return model.model_validate(dict(options))
    msg = f"options must be {model.__name__} or a mapping, got {type(options).__name__}"
    raise TypeError(msg)


def _validate(opts: _EmitOptions, engine: Engine | None) -> Engine:
    with _stage(EmitStage.VALIDATING):
        check_compiler_options(opts.compiler_options)
        return engine if engine is not None else get_default_engine()


async def _resolve(
    root: Location,
    opts: _EmitOptions,
) -> tuple[str, LoadBridge, SerializedImportMap | None]:
    with _stage(EmitStage.RESOLVING):
        root_url = location_to_url(root)

        if opts.load is not None:
            load = LoadBridge(opts.load)
        else:
            load = LoadBridge(
                create_cache(
                    root=opts.cache_root,
                    cache_setting=opts.cache_setting,
                    allow_remote=opts.allow_remote,
                )
            )

        source = select_import_map_source(
            import_map=opts.import_map,
            imports=opts.imports,
            scopes=opts.scopes,
        )
        import_map = await build_import_map(source, load, cache_setting=opts.cache_setting)

    return str(root_url), load, import_map


def _engine_compiler_options(opts: _EmitOptions) -> dict[str, Any]:
    if opts.compiler_options is None:
        return {}
    return opts.compiler_options.to_engine_dict()


def _bundle_result(raw: Any) -> BundleEmit:
    """Shape a raw engine bundle result.

    Engines may return a mapping or an object, carrying the source map as
    ``map`` or ``maybe_map``. An empty map is reported as None.
    """
    if isinstance(raw, Mapping):
        code = raw["code"]
        source_map = raw.get("map") or raw.get("maybe_map")
    else:
        code = raw.code
        source_map = getattr(raw, "map", None) or getattr(raw, "maybe_map", None)
    return BundleEmit(code=code, map=source_map or None)
