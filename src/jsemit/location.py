"""Location canonicalization for jsemit.

The public API is liberal in what it accepts as a module or import map
location: a ``yarl.URL`` object, a URL string, or an absolute or relative file
path in POSIX or Win32 syntax. Engines only ever see well-formed absolute URLs.
This module turns the former into the latter.
"""

from __future__ import annotations

import ntpath
import os
import posixpath
import re
from pathlib import Path, PurePath, PurePosixPath, PureWindowsPath
from typing import Union

from yarl import URL

from jsemit.errors import LocationError

Location = Union[URL, str, "os.PathLike[str]"]
"""A URL object, a URL string, or an absolute or relative file path."""

# Schemes a canonical location may carry
SUPPORTED_SCHEMES = frozenset({"file", "http", "https"})

# "C:\foo", "C:/foo" and UNC "\\server\share" are absolute Win32 paths. A
# drive letter also parses as a one-letter URL scheme, so it is checked first.
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:")
_WINDOWS_ABSOLUTE = re.compile(r"^(?:[A-Za-z]:[\\/]|\\\\[^\\/]+[\\/][^\\/]+)")


def is_windows_absolute(location: str) -> bool:
    """Check whether a string is an absolute Win32 path on any host."""
    return _WINDOWS_ABSOLUTE.match(location) is not None


def location_to_url(location: Location, base: Location | None = None) -> URL:
    """Resolve a location to its canonical URL.

    Args:
        location: A ``yarl.URL``, a URL string, or an absolute or relative
            file path.
        base: Directory that relative paths are resolved against, given as a
            path or a ``file:`` URL. Defaults to the current working directory.

    Returns:
        A new absolute URL with a ``file``, ``http`` or ``https`` scheme.

    Raises:
        LocationError: If the location is empty, of an unsupported type, uses
            an unsupported scheme, or is a path that cannot be expressed as a
            ``file:`` URL.

    Example:
        >>> location_to_url("https://deno.land/std/mod.ts")
        URL('https://deno.land/std/mod.ts')
        >>> location_to_url("./mod.ts", base="/project")
        URL('file:///project/mod.ts')
        >>> location_to_url("C:\\\\project\\\\mod.ts")
        URL('file:///C:/project/mod.ts')
    """
    if isinstance(location, URL):
        if not location.scheme and location.path:
            # A scheme-less URL is a relative or absolute path
            return _path_to_url(location.path, base)
        # Never hand back the caller's instance.
        return _check_scheme(URL(str(location), encoded=True), location)

    if isinstance(location, os.PathLike):
        location = os.fspath(location)
    if not isinstance(location, str):
        raise LocationError(location, f"Unsupported location type: {type(location).__name__}")
    if not location or "\x00" in location:
        raise LocationError(location)

    if not _WINDOWS_DRIVE.match(location):
        try:
            url = URL(location)
        except ValueError:
            url = None
        if url is not None and url.scheme:
            return _check_scheme(url, location)

    return _path_to_url(location, base)


def directory_url(url: URL) -> URL:
    """Return ``url`` with a trailing slash so it names a directory.

    Query and fragment are dropped; they play no part in resolving
    specifiers against a directory.
    """
    if url.raw_path.endswith("/"):
        return url.with_query(None).with_fragment(None)
    return url.with_path(url.raw_path + "/", encoded=True)


def parent_directory_url(url: URL) -> URL:
    """Return the URL of the directory containing the resource at ``url``."""
    return url.join(URL("./"))


def url_to_path(url: URL) -> PurePath:
    """Convert a ``file:`` URL back to a filesystem path.

    Drive-letter and UNC URLs produce Win32 paths regardless of host, so that
    Windows locations round-trip on any platform.

    Raises:
        LocationError: If the URL is not a ``file:`` URL.
    """
    if url.scheme != "file":
        raise LocationError(url, f"Not a file URL: {url}")
    path = url.path
    host = url.host or ""
    if host and host != "localhost":
        return PureWindowsPath(f"//{host}{path}")
    if re.match(r"^/[A-Za-z]:", path):
        return PureWindowsPath(path[1:])
    if os.name == "nt":
        return PureWindowsPath(path)
    return PurePosixPath(path)


def _check_scheme(url: URL, original: object) -> URL:
    if url.scheme not in SUPPORTED_SCHEMES:
        raise LocationError(original, f"Unsupported URL scheme {url.scheme!r}: {original}")
    return url


def _base_directory(base: Location | None) -> PurePath:
    if base is None:
        return Path.cwd()
    if isinstance(base, URL) and not base.scheme:
        base = base.path
    if isinstance(base, URL) or (isinstance(base, str) and base.startswith("file:")):
        return url_to_path(URL(str(base), encoded=True))
    base_str = os.fspath(base)
    if is_windows_absolute(base_str):
        return PureWindowsPath(base_str)
    return Path(base_str).absolute()


def _path_to_url(location: str, base: Location | None) -> URL:
    if is_windows_absolute(location):
        path: PurePath = PureWindowsPath(ntpath.normpath(location))
    else:
        base_dir = _base_directory(base)
        module = ntpath if isinstance(base_dir, PureWindowsPath) else posixpath
        joined = module.normpath(module.join(str(base_dir), location))
        path = type(base_dir)(joined)

    try:
        uri = path.as_uri()
    except ValueError as exc:
        raise LocationError(location, f"Cannot express path as a file URL: {location}") from exc
    return URL(uri, encoded=True)
