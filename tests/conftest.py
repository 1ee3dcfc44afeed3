"""Shared pytest fixtures for jsemit tests.

Provides:
- structlog configuration for test capture
- an in-memory loader that records every load request
- a fake compiler engine that walks import statements through the load
  callback, the way a real engine drives the bridge
"""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Callable, Iterator
from typing import Any

import pytest
import structlog
from yarl import URL

from jsemit.config import BundleType
from jsemit.errors import LoadError
from jsemit.import_map import SerializedImportMap
from jsemit.responses import ModuleResponse

_STATIC_IMPORT = re.compile(
    r"""^\s*(?:import|export)\s+(?:[^'";]*?\s+from\s+)?['"]([^'"]+)['"]""",
    re.MULTILINE,
)
_DYNAMIC_IMPORT = re.compile(r"""import\(\s*['"]([^'"]+)['"]\s*\)""")


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to print to stdout so capsys can see events."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def clean_jsemit_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Remove JSEMIT_* variables so process settings start from defaults."""
    for name in (
        "JSEMIT_ENGINE",
        "JSEMIT_CACHE_DIR",
        "JSEMIT_CACHE_SETTING",
        "JSEMIT_ALLOW_REMOTE",
        "JSEMIT_HTTP_TIMEOUT",
        "JSEMIT_LOG_LEVEL",
        "JSEMIT_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


class InMemoryLoader:
    """Loader serving modules from a dict keyed by URL string.

    Attributes:
        files: Module sources by URL.
        redirects: Requested URL to final URL.
        calls: Every ``(specifier, is_dynamic, cache_setting)`` received.
    """

    def __init__(
        self,
        files: dict[str, str | bytes] | None = None,
        *,
        redirects: dict[str, str] | None = None,
    ) -> None:
        self.files = dict(files or {})
        self.redirects = dict(redirects or {})
        self.calls: list[tuple[str, bool, Any]] = []

    async def load(self, specifier: str, is_dynamic: bool, cache_setting: Any) -> Any:
        self.calls.append((specifier, is_dynamic, cache_setting))
        scheme = specifier.split(":", 1)[0]
        if scheme in ("npm", "node"):
            return {"kind": "external", "specifier": specifier}
        final = self.redirects.get(specifier, specifier)
        if final not in self.files:
            return None
        return {"kind": "module", "specifier": final, "content": self.files[final]}

    @property
    def requested(self) -> list[str]:
        return [specifier for specifier, _, _ in self.calls]


class FakeEngine:
    """Minimal engine: follows import statements and concatenates sources.

    Static imports are loaded with ``is_dynamic=False`` and dynamic
    ``import("...")`` calls with ``is_dynamic=True``. Specifiers are resolved
    through the import map first and relative to the importing module
    otherwise. A ``None`` load response raises LoadError, as real engines do.

    Attributes:
        calls: Arguments of every bundle()/transpile() call.
        received: Every module response the engine got back from the bridge.
        result_map: Source map returned from bundle(), as ``maybe_map``.
    """

    def __init__(self, *, result_map: str | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.received: list[Any] = []
        self.result_map = result_map

    async def bundle(
        self,
        root: str,
        load: Callable[..., Any],
        import_map: SerializedImportMap | None,
        compiler_options: dict[str, Any],
        *,
        bundle_type: BundleType,
        minify: bool,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "operation": "bundle",
                "root": root,
                "import_map": import_map,
                "compiler_options": compiler_options,
                "bundle_type": bundle_type,
                "minify": minify,
            }
        )
        modules = await self._walk(root, load, import_map)
        code = "\n".join(f"// {url}\n{source}" for url, source in modules.items())
        return {"code": code, "maybe_map": self.result_map}

    async def transpile(
        self,
        root: str,
        load: Callable[..., Any],
        import_map: SerializedImportMap | None,
        compiler_options: dict[str, Any],
    ) -> dict[str, str]:
        self.calls.append(
            {
                "operation": "transpile",
                "root": root,
                "import_map": import_map,
                "compiler_options": compiler_options,
            }
        )
        return await self._walk(root, load, import_map)

    async def _walk(
        self,
        root: str,
        load: Callable[..., Any],
        import_map: SerializedImportMap | None,
    ) -> dict[str, str]:
        modules: dict[str, str] = {}
        seen: set[str] = set()
        pending: list[tuple[str, bool]] = [(root, False)]
        while pending:
            specifier, is_dynamic = pending.pop(0)
            if specifier in seen:
                continue
            seen.add(specifier)

            response = await load(specifier, is_dynamic, "use")
            self.received.append(response)
            if response is None:
                raise LoadError(specifier)
            if not isinstance(response, ModuleResponse):
                continue

            assert isinstance(response.content, bytes)
            source = response.content.decode("utf-8")
            modules[response.specifier] = source
            for match in _STATIC_IMPORT.finditer(source):
                pending.append((_resolve(match.group(1), response.specifier, import_map), False))
            for match in _DYNAMIC_IMPORT.finditer(source):
                pending.append((_resolve(match.group(1), response.specifier, import_map), True))
        return modules


def _resolve(specifier: str, referrer: str, import_map: SerializedImportMap | None) -> str:
    if import_map is not None:
        document = json.loads(import_map.json_string)
        base = URL(import_map.base_url)
        for scope, mapping in (document.get("scopes") or {}).items():
            if referrer.startswith(str(base.join(URL(scope)))) and specifier in mapping:
                return str(base.join(URL(mapping[specifier])))
        imports = document.get("imports") or {}
        if specifier in imports:
            return str(base.join(URL(imports[specifier])))
    return str(URL(referrer).join(URL(specifier)))


@pytest.fixture
def make_loader() -> Callable[..., InMemoryLoader]:
    """Factory fixture creating in-memory loaders.

    Returns:
        Function taking a ``{url: source}`` dict (and optional redirects).
    """
    return InMemoryLoader


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Return a fresh fake compiler engine."""
    return FakeEngine()


@pytest.fixture
def make_engine() -> Callable[..., FakeEngine]:
    """Factory fixture creating fake engines with a given source map result."""
    return FakeEngine


@pytest.fixture
def rejecting_loader() -> Callable[..., Any]:
    """Return a loader that fails the test if it is ever called."""

    async def load(specifier: str, is_dynamic: bool, cache_setting: Any) -> Any:
        raise AssertionError(f"loader must not be called, got {specifier}")

    return load
