"""jsemit bundle command - Emit a single bundle for a module graph."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from jsemit.cli.commands.common import build_options, emit_options, write_output
from jsemit.cli.errors import CLIError, exit_with_error, to_cli_error
from jsemit.cli.output import success, warning

if TYPE_CHECKING:
    from jsemit.emit import BundleEmit


@click.command("bundle")
@emit_options
@click.option(
    "-t",
    "--type",
    "bundle_type",
    type=click.Choice(["module", "classic"]),
    default="module",
    help="Emit an ES module or a classic script [default: module]",
)
@click.option("--minify", is_flag=True, default=False, help="Minify the bundle")
def bundle_cmd(
    root: str,
    config_path: Path | None,
    import_map: str | None,
    source_map: bool,
    inline_source_map: bool,
    inline_sources: bool,
    no_remote: bool,
    cache_root: Path | None,
    cache_setting: str | None,
    engine_path: str | None,
    output_path: Path | None,
    bundle_type: str,
    minify: bool,
) -> None:
    """Bundle ROOT and everything it imports into one file.

    ROOT is a path or URL of the entry module. The bundle is written to
    stdout unless --output is given; an external source map is written next
    to the output file with a ".map" suffix.

    Examples:

        jsemit bundle ./mod.ts -o dist/mod.js

        jsemit bundle ./mod.ts --import-map import_map.json --type classic

        jsemit bundle https://deno.land/std/path/mod.ts --minify
    """
    try:
        options = build_options(
            config_path=config_path,
            import_map=import_map,
            source_map=source_map,
            inline_source_map=inline_source_map,
            inline_sources=inline_sources,
            no_remote=no_remote,
            cache_root=cache_root,
            cache_setting=cache_setting,
        )
        options["type"] = bundle_type
        options["minify"] = minify
        result = _bundle(root, options, engine_path)

        if output_path is None:
            click.echo(result.code, nl=False)
            if result.map:
                warning("Source map discarded; use --output to write it")
            return

        write_output(output_path, result.code)
        map_path = None
        if result.map:
            map_path = output_path.with_name(f"{output_path.name}.map")
            write_output(map_path, result.map)
    except CLIError as e:
        exit_with_error(e.message, e.exit_code)

    if map_path is not None:
        success(f"Bundled to {output_path} (source map: {map_path})")
    else:
        success(f"Bundled to {output_path}")


def _bundle(root: str, options: dict[str, Any], engine_path: str | None) -> BundleEmit:
    try:
        # Import here to keep CLI startup fast
        from jsemit.emit import bundle
        from jsemit.engine import load_engine

        engine = load_engine(engine_path) if engine_path else None
        return asyncio.run(bundle(root, options, engine=engine))
    except Exception as e:
        raise to_cli_error(e) from e
