"""Structured logging and OpenTelemetry spans for jsemit.

This module provides:
- Structured logging setup via structlog
- OpenTelemetry span helpers for emit operations
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from jsemit.errors import EmitError

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger

# Tracer and logger name
TRACER_NAME = "jsemit"


def get_logger() -> BoundLogger:
    """Get the jsemit logger.

    structlog caches configuration lazily, so the logger is looked up on
    every call instead of being memoized at module level.

    Returns:
        structlog BoundLogger instance.

    Example:
        >>> logger = get_logger()
        >>> logger.info("emit_started", root="file:///mod.ts")
    """
    return structlog.get_logger(TRACER_NAME)


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for jsemit.

    Returns:
        OpenTelemetry Tracer instance.
    """
    return trace.get_tracer(TRACER_NAME)


def configure_logging(
    *,
    log_level: str = "INFO",
    json_format: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for jsemit.

    Events go through the standard library to stderr; stdout is left to the
    emitted code. Events logged while an emit operation runs carry its
    ``emit.*`` context, including the load requests an engine makes.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON lines. If False, output human-readable.
        add_timestamp: If True, add ISO timestamp to log entries.

    Example:
        >>> configure_logging(log_level="DEBUG", json_format=False)
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.insert(1, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # force: the CLI may be invoked more than once per process
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )


def error_attributes(exc: BaseException) -> dict[str, Any]:
    """Describe a failure for logs and span attributes.

    EmitErrors contribute the stage they were tagged with and the specifier
    they concern. Engine errors carry no stage.
    """
    attrs: dict[str, Any] = {"error": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, EmitError):
        attrs["stage"] = exc.stage
        specifier = getattr(exc, "specifier", None)
        if specifier is not None:
            attrs["specifier"] = specifier
    return attrs


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
    log_start: bool = True,
    log_end: bool = True,
) -> Iterator[Span]:
    """Create an OpenTelemetry span with structured logging.

    A failure is logged as ``<name>_failed`` once the exception has left the
    block, so any stage tag added on the way out is included. The stage and
    specifier are also set on the span as ``emit.stage`` and
    ``emit.specifier``.

    Args:
        name: Span name (e.g., "emit.bundle", "import_map").
        kind: Span kind (INTERNAL, CLIENT, SERVER, PRODUCER, CONSUMER).
        attributes: Optional span attributes.
        log_start: If True, log span start.
        log_end: If True, log span end.

    Yields:
        OpenTelemetry Span instance.

    Example:
        >>> with span("import_map", attributes={"emit.import_map": url}):
        ...     await load_import_map(url, bridge)
    """
    tracer = get_tracer()
    logger = get_logger()
    attrs = attributes or {}

    with tracer.start_as_current_span(
        name,
        kind=kind,
        attributes=attrs,
        record_exception=False,
        set_status_on_exception=False,
    ) as s:
        if log_start:
            logger.debug(f"{name}_started", **attrs)
        try:
            yield s
        except Exception as exc:
            failure = error_attributes(exc)
            s.record_exception(exc)
            s.set_status(Status(StatusCode.ERROR, failure["error"]))
            for key in ("stage", "specifier"):
                if failure.get(key) is not None:
                    s.set_attribute(f"emit.{key}", failure[key])
            logger.error(f"{name}_failed", **failure, **attrs)
            raise
        s.set_status(Status(StatusCode.OK))
        if log_end:
            logger.info(f"{name}_completed", **attrs)


@contextmanager
def emit_operation(
    operation: str,
    *,
    root: str | None = None,
    bundle_type: str | None = None,
    has_import_map: bool | None = None,
) -> Iterator[Span]:
    """Create a span for emit operations with standard attributes.

    The attributes are also bound to the structlog context for the duration
    of the operation, so events logged from the bridge or the default loader
    can be tied back to the call that caused them.

    Args:
        operation: Operation name ("bundle" or "transpile").
        root: Root location as given by the caller.
        bundle_type: Requested bundle type, for bundling.
        has_import_map: Whether an import map source was supplied.

    Yields:
        OpenTelemetry Span instance.
    """
    attrs: dict[str, Any] = {"emit.operation": operation}
    if root:
        attrs["emit.root"] = root
    if bundle_type:
        attrs["emit.bundle_type"] = bundle_type
    if has_import_map is not None:
        attrs["emit.has_import_map"] = has_import_map

    with structlog.contextvars.bound_contextvars(**attrs):
        with span(f"emit.{operation}", attributes=attrs) as s:
            yield s
