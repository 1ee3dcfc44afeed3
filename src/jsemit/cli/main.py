"""CLI entry point for jsemit.

The group loads its subcommands lazily so that ``jsemit --help`` does not
pay for importing httpx and the emit pipeline.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from jsemit import __version__
from jsemit.cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that imports commands only when they are looked up.

    Attributes:
        lazy_subcommands: Mapping of command names to ``module.attribute`` paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd
        if cmd_name not in self.lazy_subcommands:
            return None

        module_name, attr_name = self.lazy_subcommands[cmd_name].rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "bundle": "jsemit.cli.commands.bundle.bundle_cmd",
    "transpile": "jsemit.cli.commands.transpile.transpile_cmd",
}


def _configure_logging(verbose: bool) -> None:
    from jsemit.config import EmitSettings
    from jsemit.observability import configure_logging

    settings = EmitSettings()
    configure_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
        add_timestamp=settings.log_json,
    )


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="jsemit")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug events to stderr.")
def cli(verbose: bool) -> None:
    """jsemit - Bundle and transpile JavaScript and TypeScript.

    Resolves the module graph through import maps and a pluggable loader,
    and hands compilation to the engine named by `--engine` or `JSEMIT_ENGINE`.

    **Commands:**

    - `jsemit bundle ROOT` - Emit a single bundle
    - `jsemit transpile ROOT` - Emit every module separately

    **Environment:**

    - `JSEMIT_ENGINE`, `JSEMIT_CACHE_DIR`, `JSEMIT_CACHE_SETTING`,
      `JSEMIT_ALLOW_REMOTE`, `JSEMIT_LOG_LEVEL`, `JSEMIT_LOG_JSON`
    """
    _configure_logging(verbose)


if __name__ == "__main__":
    cli()
