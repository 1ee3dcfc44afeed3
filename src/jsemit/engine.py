"""Compiler engine boundary.

The engine parses, resolves the module graph and generates code. jsemit only
talks to it through the :class:`Engine` protocol: one call per ``bundle()`` or
``transpile()`` invocation, during which the engine calls back into the load
bridge for every module it needs.

Engines are supplied explicitly or located through the ``JSEMIT_ENGINE``
setting, a ``module:attribute`` import path. When the attribute is a class it
is instantiated without arguments.
"""

from __future__ import annotations

import importlib
import inspect
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from jsemit.config import BundleType, EmitSettings
from jsemit.errors import EngineNotFoundError
from jsemit.observability import get_logger

if TYPE_CHECKING:
    from jsemit.import_map import SerializedImportMap
    from jsemit.loader import LoadCallback


@runtime_checkable
class Engine(Protocol):
    """Protocol implemented by compiler engines.

    ``bundle`` returns a mapping (or object) with ``code`` and an optional
    ``map`` (``maybe_map`` is accepted too). ``transpile`` returns a mapping
    of module URL to emitted source for every module in the graph.
    """

    async def bundle(
        self,
        root: str,
        load: LoadCallback,
        import_map: SerializedImportMap | None,
        compiler_options: dict[str, Any],
        *,
        bundle_type: BundleType,
        minify: bool,
    ) -> Any: ...

    async def transpile(
        self,
        root: str,
        load: LoadCallback,
        import_map: SerializedImportMap | None,
        compiler_options: dict[str, Any],
    ) -> Mapping[str, str]: ...


def load_engine(path: str) -> Engine:
    """Import an engine from a ``module:attribute`` path.

    Args:
        path: Import path such as ``"my_engine.binding:Engine"``.

    Returns:
        The engine object (classes are instantiated without arguments).

    Raises:
        EngineNotFoundError: If the path is malformed, cannot be imported, or
            does not name an engine.
    """
    module_name, sep, attr_name = path.partition(":")
    if not sep or not module_name or not attr_name:
        raise EngineNotFoundError(
            f"Engine path must have the form 'module:attribute', got {path!r}",
            path=path,
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineNotFoundError(f"Cannot import engine module {module_name!r}", path=path) from exc

    target: Any = module
    for part in attr_name.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise EngineNotFoundError(
                f"Engine module {module_name!r} has no attribute {attr_name!r}",
                path=path,
            ) from exc

    engine = target() if inspect.isclass(target) else target
    if not isinstance(engine, Engine):
        raise EngineNotFoundError(
            f"{path!r} does not provide bundle() and transpile()",
            path=path,
        )

    get_logger().debug("engine_loaded", path=path, engine=type(engine).__name__)
    return engine


def get_default_engine(settings: EmitSettings | None = None) -> Engine:
    """Return the engine configured through ``JSEMIT_ENGINE``.

    Raises:
        EngineNotFoundError: If no engine is configured or it cannot be loaded.
    """
    cfg = settings or EmitSettings()
    if not cfg.engine:
        raise EngineNotFoundError(
            "No compiler engine configured; pass engine= or set JSEMIT_ENGINE"
        )
    return load_engine(cfg.engine)
