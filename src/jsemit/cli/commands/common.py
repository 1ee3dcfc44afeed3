"""Options and helpers shared by ``jsemit bundle`` and ``jsemit transpile``."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from jsemit.cli.errors import EXIT_SYSTEM_ERROR, CLIError, format_pydantic_error
from jsemit.config import CacheSetting
from jsemit.errors import LocationError
from jsemit.location import location_to_url

F = TypeVar("F", bound=Callable[..., Any])


class ConfigFile(BaseModel):
    """The parts of a ``deno.json``-style config file jsemit reads."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    compiler_options: dict[str, Any] | None = Field(default=None, alias="compilerOptions")
    imports: dict[str, str] | None = None
    scopes: dict[str, dict[str, str]] | None = None
    import_map: str | None = Field(default=None, alias="importMap")


def emit_options(func: F) -> F:
    """Attach the options common to both emit commands."""
    options = [
        click.argument("root", type=str),
        click.option(
            "-c",
            "--config",
            "config_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="deno.json-style file with compilerOptions, imports, scopes or importMap",
        ),
        click.option(
            "--import-map",
            "import_map",
            type=str,
            default=None,
            help="URL or path of an import map file (overrides the config file)",
        ),
        click.option("--source-map", is_flag=True, default=False, help="Emit an external source map"),
        click.option(
            "--inline-source-map",
            is_flag=True,
            default=False,
            help="Embed the source map in the emitted code",
        ),
        click.option(
            "--inline-sources",
            is_flag=True,
            default=False,
            help="Embed original sources in the source map",
        ),
        click.option(
            "--no-remote",
            is_flag=True,
            default=False,
            help="Refuse to load http(s) modules",
        ),
        click.option(
            "--cache-root",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            help="Deno cache directory to read remote modules from [env: JSEMIT_CACHE_DIR]",
        ),
        click.option(
            "--cache-setting",
            type=click.Choice([s.value for s in CacheSetting]),
            default=None,
            help="Cache use for remote modules [env: JSEMIT_CACHE_SETTING]",
        ),
        click.option(
            "--engine",
            "engine_path",
            type=str,
            default=None,
            help="Compiler engine as module:attribute [env: JSEMIT_ENGINE]",
        ),
        click.option(
            "-o",
            "--output",
            "output_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Write output to this file instead of stdout",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def read_config_file(path: Path) -> ConfigFile:
    """Read and validate a config file.

    Raises:
        CLIError: If the file is unreadable (exit 2) or invalid (exit 1).
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CLIError(f"Cannot read config file {path}: {exc}", exit_code=EXIT_SYSTEM_ERROR) from exc
    try:
        return ConfigFile.model_validate(json.loads(text))
    except ValueError as exc:
        if isinstance(exc, PydanticValidationError):
            raise CLIError(f"Invalid config file {path}:\n{format_pydantic_error(exc)}") from exc
        raise CLIError(f"Config file {path} is not valid JSON: {exc}") from exc


def build_options(
    *,
    config_path: Path | None,
    import_map: str | None,
    source_map: bool,
    inline_source_map: bool,
    inline_sources: bool,
    no_remote: bool,
    cache_root: Path | None,
    cache_setting: str | None,
) -> dict[str, Any]:
    """Assemble emit options from the config file and command-line flags.

    Flags win over the config file. An ``importMap`` in the config file is
    resolved relative to the file's directory. ``--import-map`` replaces
    every import map source the config file names.
    """
    options: dict[str, Any] = {}
    compiler_options: dict[str, Any] = {}

    if config_path is not None:
        config = read_config_file(config_path)
        compiler_options.update(config.compiler_options or {})
        if config.imports is not None:
            options["imports"] = config.imports
        if config.scopes is not None:
            options["scopes"] = config.scopes
        if config.import_map:
            try:
                options["import_map"] = location_to_url(
                    config.import_map,
                    base=config_path.parent.absolute(),
                )
            except LocationError as exc:
                raise CLIError(f"Invalid importMap in {config_path}: {exc}") from exc

    if import_map:
        options.pop("imports", None)
        options.pop("scopes", None)
        options["import_map"] = import_map

    if source_map:
        compiler_options["sourceMap"] = True
    if inline_source_map:
        compiler_options["inlineSourceMap"] = True
    if inline_sources:
        compiler_options["inlineSources"] = True
    if compiler_options:
        options["compiler_options"] = compiler_options

    if no_remote:
        options["allow_remote"] = False
    if cache_root is not None:
        options["cache_root"] = cache_root
    if cache_setting is not None:
        options["cache_setting"] = cache_setting

    return options


def write_output(path: Path, text: str) -> None:
    """Write emitted text, creating parent directories.

    Raises:
        CLIError: If the file cannot be written (exit 2).
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"Cannot write to: {path}", exit_code=EXIT_SYSTEM_ERROR) from exc
