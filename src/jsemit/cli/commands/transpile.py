"""jsemit transpile command - Emit every module of a graph separately."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from jsemit.cli.commands.common import build_options, emit_options, write_output
from jsemit.cli.errors import CLIError, exit_with_error, to_cli_error
from jsemit.cli.output import success


@click.command("transpile")
@emit_options
def transpile_cmd(
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
) -> None:
    """Transpile ROOT and every module it imports.

    Prints a JSON object mapping each module URL to its emitted source, or
    writes it to --output.

    Examples:

        jsemit transpile ./mod.ts

        jsemit transpile ./mod.ts --config deno.json -o build/modules.json
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
        result = _transpile(root, options, engine_path)

        text = json.dumps(result, indent=2)
        if output_path is None:
            click.echo(text)
            return

        write_output(output_path, text)
    except CLIError as e:
        exit_with_error(e.message, e.exit_code)

    success(f"Transpiled {len(result)} module(s) to {output_path}")


def _transpile(root: str, options: dict[str, Any], engine_path: str | None) -> dict[str, str]:
    try:
        # Import here to keep CLI startup fast
        from jsemit.emit import transpile
        from jsemit.engine import load_engine

        engine = load_engine(engine_path) if engine_path else None
        return asyncio.run(transpile(root, options, engine=engine))
    except Exception as e:
        raise to_cli_error(e) from e
