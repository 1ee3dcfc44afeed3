"""Module loading across the engine boundary.

This module provides:
- Loader: Protocol for pluggable module loaders
- LoadBridge: Adapts a loader to the callback shape engines invoke
- FetchLoader: Default loader for file, remote and external specifiers
- create_cache: Build the default loader from options and settings
"""

from __future__ import annotations

import asyncio
import hashlib
import inspect
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import ValidationError
from typing_extensions import assert_never
from yarl import URL

from jsemit.config import CacheSetting, EmitSettings
from jsemit.errors import LoadError
from jsemit.location import url_to_path
from jsemit.observability import get_logger
from jsemit.responses import (
    BuiltInResponse,
    ExternalResponse,
    ModuleResponse,
    parse_load_response,
)

# Schemes the default loader answers with an "external" response
EXTERNAL_SCHEMES = frozenset({"npm", "node", "bun"})

LoadResult = ModuleResponse | ExternalResponse | BuiltInResponse | None

LoadCallback = Callable[[str, bool, "CacheSetting | None"], Awaitable[LoadResult]]
"""Signature of the load callback engines receive."""


@runtime_checkable
class Loader(Protocol):
    """A pluggable module loader.

    ``load`` may be a coroutine function or a plain function. It returns a
    load response (a model or a mapping with a ``kind`` key) or None when the
    specifier does not exist. Loaders may be called again before earlier calls
    complete and must not rely on call ordering.
    """

    def load(
        self,
        specifier: str,
        is_dynamic: bool,
        cache_setting: CacheSetting | None,
    ) -> Any: ...


class LoadBridge:
    """Adapts a loader to the request/response shape engines call.

    The bridge owns content-shape normalization: text module content is
    encoded to UTF-8 bytes before it reaches the engine. Response kinds are
    passed through as returned. The bridge keeps no state between calls, so
    concurrent calls are safe without locking.

    Attributes:
        loader: The wrapped loader object or callable.

    Example:
        >>> async def load(specifier, is_dynamic, cache_setting):
        ...     return {"kind": "module", "specifier": specifier, "content": "export {};"}
        >>> bridge = LoadBridge(load)
        >>> response = await bridge("file:///mod.ts", False, CacheSetting.USE)
        >>> response.content
        b'export {};'
    """

    def __init__(self, loader: Loader | Callable[..., Any]) -> None:
        """Initialize LoadBridge.

        Args:
            loader: An object with a ``load`` method, or a callable taking
                ``(specifier, is_dynamic, cache_setting)``.

        Raises:
            TypeError: If ``loader`` is neither.
        """
        method = getattr(loader, "load", None)
        load = method if callable(method) else loader
        if not callable(load):
            msg = f"Expected a loader or a callable, got {type(loader).__name__}"
            raise TypeError(msg)
        self.loader = loader
        self._load = load

    async def __call__(
        self,
        specifier: str,
        is_dynamic: bool = False,
        cache_setting: CacheSetting | str | None = None,
    ) -> LoadResult:
        """Load one specifier through the wrapped loader.

        Args:
            specifier: Canonical URL string of the module.
            is_dynamic: Whether the module is requested by a dynamic import.
            cache_setting: Cache setting for this request, None for the
                loader's default.

        Returns:
            The normalized load response, or None if not found.

        Raises:
            LoadError: If the loader returned something that is not a load
                response. Exceptions raised by the loader propagate unchanged.
        """
        setting = CacheSetting(cache_setting) if cache_setting is not None else None

        result = self._load(specifier, is_dynamic, setting)
        if inspect.isawaitable(result):
            result = await result

        response = parse_load_response(result, specifier)
        match response:
            case None:
                kind = None
            case ModuleResponse():
                response = response.with_binary_content()
                kind = response.kind
            case ExternalResponse() | BuiltInResponse():
                kind = response.kind
            case _:
                assert_never(response)

        get_logger().debug(
            "load_request",
            specifier=specifier,
            is_dynamic=is_dynamic,
            cache_setting=setting.value if setting else None,
            kind=kind,
        )
        return response


class FetchLoader:
    """Default loader backed by the filesystem, the network and a Deno cache.

    - ``file:`` specifiers are read from disk.
    - ``npm:``, ``node:`` and ``bun:`` specifiers are reported as external.
    - ``http:``/``https:`` specifiers are read from an existing Deno-style
      cache directory when ``cache_root`` is set, and fetched with httpx
      otherwise (subject to the cache setting). The cache is never written.

    Attributes:
        cache_root: Deno cache directory (containing ``deps/``), or None.
        cache_setting: Default cache setting for requests that carry none.
        allow_remote: Whether http(s) specifiers may be loaded at all.
        timeout: Timeout in seconds for network fetches.
    """

    def __init__(
        self,
        *,
        cache_root: Path | None = None,
        cache_setting: CacheSetting = CacheSetting.USE,
        allow_remote: bool = True,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize FetchLoader.

        Args:
            cache_root: Deno cache directory to read remote modules from.
            cache_setting: Default cache setting.
            allow_remote: Allow loading http(s) specifiers.
            timeout: Timeout in seconds for network fetches.
            transport: Optional httpx transport, e.g. for tests.
        """
        self.cache_root = cache_root
        self.cache_setting = cache_setting
        self.allow_remote = allow_remote
        self.timeout = timeout
        self._transport = transport

    async def load(
        self,
        specifier: str,
        is_dynamic: bool = False,
        cache_setting: CacheSetting | None = None,
    ) -> LoadResult:
        """Load a specifier.

        Args:
            specifier: Canonical URL string.
            is_dynamic: Whether requested by a dynamic import (unused here).
            cache_setting: Request cache setting; overrides the default.

        Returns:
            A load response, or None if the module does not exist.

        Raises:
            LoadError: If a remote module is requested while remote loading
                is disabled, or the module cannot be read or fetched.
        """
        setting = cache_setting or self.cache_setting
        url = URL(specifier, encoded=True)

        if url.scheme == "file":
            return await self._load_file(specifier, url)
        if url.scheme in EXTERNAL_SCHEMES:
            return ExternalResponse(specifier=specifier)
        if url.scheme in ("http", "https"):
            return await self._load_remote(specifier, url, setting)
        return None

    async def _load_file(self, specifier: str, url: URL) -> LoadResult:
        path = Path(url_to_path(url))
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except OSError as exc:
            raise LoadError(specifier, f"Unable to read {specifier}: {exc}") from exc
        return ModuleResponse(specifier=specifier, content=content)

    async def _load_remote(self, specifier: str, url: URL, setting: CacheSetting) -> LoadResult:
        if not self.allow_remote:
            raise LoadError(
                specifier,
                f"A remote specifier was requested: {specifier}, but remote loading is disabled",
            )

        if setting is not CacheSetting.RELOAD and self.cache_root is not None:
            cached = await asyncio.to_thread(self._read_cached, specifier, url)
            if cached is not None:
                get_logger().debug("cache_hit", specifier=specifier)
                return cached
        if setting is CacheSetting.ONLY:
            return None

        async with httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=True,
            timeout=self.timeout,
        ) as client:
            try:
                response = await client.get(specifier)
            except httpx.HTTPError as exc:
                raise LoadError(specifier, f"Failed to fetch {specifier}: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.status_code >= 400:
            raise LoadError(
                specifier,
                f"Fetching {specifier} returned HTTP {response.status_code}",
            )

        get_logger().debug(
            "remote_fetched",
            specifier=specifier,
            final_url=str(response.url),
            status_code=response.status_code,
        )
        return ModuleResponse(
            specifier=str(response.url),
            headers=dict(response.headers),
            content=response.content,
        )

    def _read_cached(self, specifier: str, url: URL) -> ModuleResponse | None:
        """Read a remote module from the Deno cache layout, if present."""
        assert self.cache_root is not None  # Type narrowing for mypy
        path = self.cache_path(url)
        try:
            content = path.read_bytes()
        except OSError:
            return None

        headers: dict[str, str] | None = None
        final_url = specifier
        metadata_path = path.with_name(f"{path.name}.metadata.json")
        try:
            metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            metadata = {}
        if isinstance(metadata, dict):
            headers = metadata.get("headers")
            final_url = metadata.get("url", specifier)
        try:
            return ModuleResponse(specifier=final_url, headers=headers, content=content)
        except ValidationError:
            # Unusable metadata is treated as absent
            get_logger().debug("cache_metadata_ignored", specifier=specifier, path=str(path))
            return ModuleResponse(specifier=specifier, headers=None, content=content)

    def cache_path(self, url: URL) -> Path:
        """Path of a remote module inside the cache directory.

        Follows Deno's ``deps/<scheme>/<host>[_PORT<port>]/<sha256>`` layout,
        where the hash covers the path and query of the URL.
        """
        assert self.cache_root is not None  # Type narrowing for mypy
        host = url.raw_host or ""
        if url.port is not None and not url.is_default_port():
            host = f"{host}_PORT{url.port}"
        rest = url.raw_path
        if url.raw_query_string:
            rest = f"{rest}?{url.raw_query_string}"
        digest = hashlib.sha256(rest.encode("utf-8")).hexdigest()
        return self.cache_root / "deps" / url.scheme / host / digest


def create_cache(
    *,
    root: Path | None = None,
    cache_setting: CacheSetting | None = None,
    allow_remote: bool | None = None,
    settings: EmitSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchLoader:
    """Create the default loader.

    Explicit arguments win over settings; settings come from JSEMIT_*
    environment variables when not given.

    Args:
        root: Deno cache directory to read remote modules from.
        cache_setting: Default cache setting.
        allow_remote: Allow loading http(s) specifiers.
        settings: Process settings to fall back on.
        transport: Optional httpx transport.

    Returns:
        A new FetchLoader.

    Example:
        >>> loader = create_cache(allow_remote=False)
        >>> await loader.load("https://deno.land/std/mod.ts")
        Traceback (most recent call last):
        ...
        jsemit.errors.LoadError: A remote specifier was requested: ...
    """
    cfg = settings or EmitSettings()
    return FetchLoader(
        cache_root=root if root is not None else cfg.cache_dir,
        cache_setting=cache_setting or cfg.cache_setting,
        allow_remote=cfg.allow_remote if allow_remote is None else allow_remote,
        timeout=cfg.http_timeout,
        transport=transport,
    )
