"""Shared fixtures for CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

ENGINE_SOURCE = '''
from jsemit.errors import LoadError


class Engine:
    """Echoes the root module back, decorated with the request details."""

    async def bundle(self, root, load, import_map, compiler_options, *, bundle_type, minify):
        response = await load(root, False, None)
        if response is None:
            raise LoadError(root)
        code = response.content.decode("utf-8")
        if minify:
            code = " ".join(code.split())
        source_map = '{"version": 3}' if compiler_options.get("sourceMap") else None
        header = f"/* {bundle_type.value} import_map={import_map is not None} */"
        return {"code": f"{header}\\n{code}", "map": source_map}

    async def transpile(self, root, load, import_map, compiler_options):
        response = await load(root, False, None)
        if response is None:
            raise LoadError(root)
        return {response.specifier: response.content.decode("utf-8")}
'''


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def engine_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Write an importable echo engine and return its module:attribute path."""
    plugin_dir = tmp_path / "plugins"
    plugin_dir.mkdir()
    (plugin_dir / "jsemit_cli_echo_engine.py").write_text(ENGINE_SOURCE)
    monkeypatch.syspath_prepend(str(plugin_dir))
    return "jsemit_cli_echo_engine:Engine"


@pytest.fixture
def root_module(tmp_path: Path) -> Path:
    """Write an entry module and return its path."""
    path = tmp_path / "src" / "mod.ts"
    path.parent.mkdir()
    path.write_text("export const answer = 42;\n")
    return path
