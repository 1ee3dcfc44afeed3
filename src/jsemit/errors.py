"""Custom exceptions for jsemit.

This module defines the exception hierarchy:
- EmitError (base)
- ConfigError
- EngineNotFoundError
- LocationError
- ImportMapError
- LoadError
- EngineError
"""

from __future__ import annotations


class EmitError(Exception):
    """Base exception for all jsemit operations.

    Every error raised by the resolution and load-bridging layer inherits from
    this class, so callers can tell failure classes apart by type instead of
    matching on messages.

    Attributes:
        message: Human-readable error description.
        details: Optional additional context about the error.
        stage: Emit stage that was running when the error surfaced
            (``"validating"``, ``"resolving"``), set by the orchestrator.

    Example:
        >>> try:
        ...     await bundle("./mod.ts")
        ... except EmitError as e:
        ...     print(f"{e.stage}: {e}")
    """

    def __init__(self, message: str, *, details: dict[str, str] | None = None) -> None:
        """Initialize EmitError.

        Args:
            message: Human-readable error description.
            details: Optional additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.stage: str | None = None

    def __str__(self) -> str:
        """Return string representation with details if present."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigError(EmitError):
    """A compiler option or call configuration is invalid.

    Raised before any I/O happens, for example when ``sourceMap`` and
    ``inlineSourceMap`` are both requested.

    Example:
        >>> try:
        ...     check_compiler_options({"sourceMap": True, "inlineSourceMap": True})
        ... except ConfigError as e:
        ...     print(e)
        sourceMap and inlineSourceMap are mutually exclusive
    """


class EngineNotFoundError(ConfigError):
    """No compiler engine could be located.

    Raised when neither an explicit engine nor the ``JSEMIT_ENGINE`` setting
    is available, or when the configured import path does not resolve to an
    object implementing the engine protocol.
    """

    def __init__(self, message: str = "No compiler engine configured", *, path: str | None = None) -> None:
        """Initialize EngineNotFoundError.

        Args:
            message: Human-readable error description.
            path: The ``module:attribute`` path that failed to load, if any.
        """
        details: dict[str, str] = {}
        if path:
            details["path"] = path
        super().__init__(message, details=details)
        self.path = path


class LocationError(EmitError):
    """A location is neither a usable URL nor a representable file path."""

    def __init__(self, location: object, message: str | None = None) -> None:
        """Initialize LocationError.

        Args:
            location: The offending location value.
            message: Optional custom error message.
        """
        msg = message or f"Invalid module location: {location!r}"
        super().__init__(msg, details={"location": str(location)})
        self.location = location


class ImportMapError(EmitError):
    """A referenced import map could not be loaded or parsed.

    Kept distinct from LoadError so that callers can tell a failure while
    resolving the import map from a failure while loading a module.

    Example:
        >>> try:
        ...     await bundle("./mod.ts", {"import_map": "./missing.json"})
        ... except ImportMapError as e:
        ...     print(e.specifier)
        file:///project/missing.json
    """

    def __init__(self, specifier: str, message: str | None = None) -> None:
        """Initialize ImportMapError.

        Args:
            specifier: Canonical URL of the import map.
            message: Optional custom error message.
        """
        msg = message or f"Unable to load import map: {specifier}"
        super().__init__(msg, details={"specifier": specifier})
        self.specifier = specifier


class LoadError(EmitError):
    """A module required by the engine could not be loaded.

    Raised by loaders (including the default fetch loader) and by engines
    when a load returns nothing for a required specifier. The bridge passes
    it through untouched.
    """

    def __init__(self, specifier: str, message: str | None = None) -> None:
        """Initialize LoadError.

        Args:
            specifier: The module specifier that failed to load.
            message: Optional custom error message.
        """
        msg = message or f"Module not found: {specifier}"
        super().__init__(msg, details={"specifier": specifier})
        self.specifier = specifier


class EngineError(EmitError):
    """Error raised by a compiler engine.

    Engines may raise this for parse failures, unresolved specifiers or
    unsupported syntax. jsemit never wraps or rewrites engine errors; this
    class only gives engine implementations a common type to raise.
    """
