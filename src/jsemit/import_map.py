"""Import map resolution.

Builds the single serialized import map an engine receives from whichever
source the caller supplied:

- an inline map (``imports``/``scopes`` on the options, or an ImportMap model)
- a reference to an import map file, by URL or path, fetched through the same
  load bridge used for modules

Only one source is ever used for an invocation. When the options carry the
inline ``imports``/``scopes`` pair, it wins and ``import_map`` is ignored.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from typing_extensions import assert_never
from yarl import URL

from jsemit.config import CacheSetting, ImportMap, ImportMapSource
from jsemit.errors import ImportMapError
from jsemit.loader import LoadBridge
from jsemit.location import Location, directory_url, location_to_url, parent_directory_url
from jsemit.observability import get_logger, span
from jsemit.responses import BuiltInResponse, ExternalResponse, ModuleResponse


class SerializedImportMap(BaseModel):
    """The import map payload handed to the engine.

    Attributes:
        base_url: URL specifiers are resolved against. Always ends with ``/``
            so the engine treats it as a directory.
        json_string: JSON-encoded ``{"imports": ..., "scopes": ...}``.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    base_url: str = Field(..., description="Directory URL, with trailing slash")
    json_string: str = Field(..., description="JSON-encoded imports and scopes")

    @field_validator("base_url")
    @classmethod
    def base_url_must_be_directory(cls, v: str) -> str:
        """Validate that base_url ends with a slash."""
        if not v.endswith("/"):
            msg = f"base_url must end with '/': {v}"
            raise ValueError(msg)
        return v


class ImportMapDocument(BaseModel):
    """Shape of an import map file."""

    model_config = ConfigDict(extra="ignore")

    imports: dict[str, str] | None = None
    scopes: dict[str, dict[str, str]] | None = None


def select_import_map_source(
    *,
    import_map: ImportMapSource | None = None,
    imports: dict[str, str] | None = None,
    scopes: dict[str, dict[str, str]] | None = None,
) -> ImportMapSource | None:
    """Pick the single import map source for an invocation.

    The inline ``imports``/``scopes`` pair takes precedence over
    ``import_map`` as a whole; the two are never merged.

    Returns:
        An ImportMap, a location of an import map file, or None.
    """
    if imports is None and scopes is None:
        return import_map
    if import_map is not None:
        get_logger().warning(
            "import_map_ignored",
            reason="inline imports/scopes take precedence",
            import_map=str(import_map),
        )
    return ImportMap(imports=imports, scopes=scopes)


async def build_import_map(
    source: ImportMapSource | None,
    load: LoadBridge,
    *,
    cache_setting: CacheSetting | None = None,
) -> SerializedImportMap | None:
    """Resolve an import map source into its serialized form.

    Args:
        source: Inline ImportMap, URL or path of an import map file, or None.
        load: Bridge used to fetch a referenced import map file.
        cache_setting: Cache setting for the import map fetch.

    Returns:
        The serialized import map, or None when no source is given.

    Raises:
        ImportMapError: If a referenced import map cannot be loaded or parsed.
        LocationError: If a location cannot be canonicalized.
    """
    if source is None:
        return None
    if isinstance(source, ImportMap):
        return serialize_inline_import_map(source)
    return await load_import_map(source, load, cache_setting=cache_setting)


def serialize_inline_import_map(import_map: ImportMap) -> SerializedImportMap:
    """Serialize an inline import map without any I/O.

    The base URL defaults to the current working directory and is always
    turned into a directory URL.
    """
    base = location_to_url(import_map.base_url) if import_map.base_url is not None else None
    base_url = directory_url(base if base is not None else location_to_url("."))
    return SerializedImportMap(
        base_url=str(base_url),
        json_string=_dump_imports(import_map.imports, import_map.scopes),
    )


async def load_import_map(
    location: Location,
    load: LoadBridge,
    *,
    cache_setting: CacheSetting | None = None,
) -> SerializedImportMap:
    """Fetch an import map file through the load bridge.

    Exactly one load request is issued, as a static (non-dynamic) load. The
    map's base URL is the directory of its final URL, not the working
    directory.

    Raises:
        ImportMapError: If the map is missing, is not a module response, is
            not UTF-8 JSON, or does not have the import map shape.
    """
    url = location_to_url(location)
    specifier = str(url)

    with span("import_map", attributes={"emit.import_map": specifier}, log_start=False):
        try:
            response = await load(specifier, False, cache_setting)
        except ImportMapError:
            raise
        except Exception as exc:
            raise ImportMapError(specifier, f"Failed to load import map {specifier}: {exc}") from exc

        match response:
            case None:
                raise ImportMapError(specifier, f"Import map not found: {specifier}")
            case ModuleResponse():
                document = _parse_document(specifier, response)
                final_url = URL(response.specifier, encoded=True)
            case ExternalResponse() | BuiltInResponse():
                raise ImportMapError(
                    specifier,
                    f"Unexpected response kind {response.kind!r} for import map {specifier}",
                )
            case _:
                assert_never(response)

    base_url = parent_directory_url(final_url)
    get_logger().debug("import_map_loaded", specifier=specifier, base_url=str(base_url))
    return SerializedImportMap(
        base_url=str(base_url),
        json_string=_dump_imports(document.imports, document.scopes),
    )


def _parse_document(specifier: str, response: ModuleResponse) -> ImportMapDocument:
    try:
        raw: Any = json.loads(response.text)
    except (UnicodeDecodeError, ValueError) as exc:
        raise ImportMapError(specifier, f"Import map is not valid JSON: {specifier}") from exc
    if not isinstance(raw, dict):
        raise ImportMapError(specifier, f"Import map must be a JSON object: {specifier}")
    try:
        return ImportMapDocument.model_validate(raw)
    except PydanticValidationError as exc:
        raise ImportMapError(
            specifier,
            f"Import map has an invalid imports or scopes section: {specifier}",
        ) from exc


def _dump_imports(
    imports: dict[str, str] | None,
    scopes: dict[str, dict[str, str]] | None,
) -> str:
    payload: dict[str, Any] = {}
    if imports is not None:
        payload["imports"] = imports
    if scopes is not None:
        payload["scopes"] = scopes
    return json.dumps(payload)
