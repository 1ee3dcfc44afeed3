"""Unit tests for configuration models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError
from yarl import URL

from jsemit.config import (
    BundleOptions,
    BundleType,
    CacheSetting,
    CompilerOptions,
    EmitSettings,
    ImportMap,
    TranspileOptions,
)


class TestCompilerOptions:
    """Tests for CompilerOptions model."""

    def test_accepts_camel_and_snake_case(self) -> None:
        """Test both naming styles populate the same fields."""
        camel = CompilerOptions(sourceMap=True, jsxImportSource="preact")
        snake = CompilerOptions(source_map=True, jsx_import_source="preact")

        assert camel == snake
        assert camel.source_map is True

    def test_to_engine_dict_uses_camel_case(self) -> None:
        """Test engines receive camelCase keys and no unset fields."""
        options = CompilerOptions(
            emit_decorator_metadata=True,
            imports_not_used_as_values="preserve",
        )

        assert options.to_engine_dict() == {
            "emitDecoratorMetadata": True,
            "importsNotUsedAsValues": "preserve",
        }

    def test_unknown_options_pass_through(self) -> None:
        """Test options jsemit does not know are forwarded untouched."""
        options = CompilerOptions.model_validate({"jsx": "react", "experimentalDecorators": True})

        assert options.to_engine_dict() == {"jsx": "react", "experimentalDecorators": True}

    def test_known_field_type_is_checked(self) -> None:
        """Test a wrongly-typed known option fails before reaching an engine."""
        with pytest.raises(ValidationError) as exc_info:
            CompilerOptions.model_validate({"jsx": 5})

        assert exc_info.value.errors()[0]["loc"] == ("jsx",)

    def test_frozen(self) -> None:
        """Test options are immutable."""
        options = CompilerOptions(jsx="react")
        with pytest.raises(ValidationError):
            options.jsx = "preserve"  # type: ignore[misc]


class TestImportMap:
    """Tests for ImportMap model."""

    def test_defaults(self) -> None:
        """Test an empty import map."""
        import_map = ImportMap()

        assert import_map.base_url is None
        assert import_map.imports is None
        assert import_map.scopes is None

    def test_accepts_url_base(self) -> None:
        """Test base_url may be a yarl URL."""
        import_map = ImportMap(baseUrl=URL("https://example.com/"), imports={"a": "./a.ts"})
        assert isinstance(import_map.base_url, URL)

    def test_rejects_unknown_fields(self) -> None:
        """Test typos in import map fields are caught."""
        with pytest.raises(ValidationError):
            ImportMap.model_validate({"import": {"a": "./a.ts"}})

    def test_rejects_non_string_targets(self) -> None:
        """Test import targets must be strings."""
        with pytest.raises(ValidationError):
            ImportMap(imports={"a": ["./a.ts"]})  # type: ignore[dict-item]


class TestEmitOptions:
    """Tests for BundleOptions and TranspileOptions."""

    def test_bundle_defaults(self) -> None:
        """Test BundleOptions defaults."""
        options = BundleOptions()

        assert options.type is BundleType.MODULE
        assert options.minify is False
        assert options.import_map is None
        assert options.load is None
        assert options.has_inline_imports is False

    def test_bundle_type_from_string(self) -> None:
        """Test the bundle type accepts its string values."""
        assert BundleOptions(type="classic").type is BundleType.CLASSIC

    def test_unsupported_bundle_type(self) -> None:
        """Test an unsupported bundle type is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            BundleOptions(type="iife")  # type: ignore[arg-type]

        assert "type" in str(exc_info.value)

    def test_transpile_has_no_bundle_fields(self) -> None:
        """Test bundle-only fields are rejected for transpile."""
        with pytest.raises(ValidationError):
            TranspileOptions.model_validate({"minify": True})

    def test_camel_case_aliases(self) -> None:
        """Test options accept their camelCase names."""
        options = TranspileOptions.model_validate(
            {
                "importMap": "./import_map.json",
                "compilerOptions": {"inlineSourceMap": True},
                "cacheSetting": "reload",
                "allowRemote": False,
            }
        )

        assert options.import_map == "./import_map.json"
        assert options.compiler_options == CompilerOptions(inline_source_map=True)
        assert options.cache_setting is CacheSetting.RELOAD
        assert options.allow_remote is False

    def test_import_map_shapes(self, tmp_path: Path) -> None:
        """Test import_map accepts an inline map, a URL, a path or a string."""
        inline = TranspileOptions(import_map={"imports": {"a": "./a.ts"}})
        url = TranspileOptions(import_map=URL("https://example.com/map.json"))
        path = TranspileOptions(import_map=tmp_path / "map.json")

        assert isinstance(inline.import_map, ImportMap)
        assert isinstance(url.import_map, URL)
        assert isinstance(path.import_map, Path)

    @pytest.mark.parametrize("location", ["./map.json", "/abs/map.json", "C:\\maps\\map.json"])
    def test_path_strings_stay_strings(self, location: str) -> None:
        """Test path strings are kept as given rather than parsed as URLs."""
        options = TranspileOptions(import_map=location)

        assert options.import_map == location
        assert type(options.import_map) is str

    def test_base_url_path_string_stays_string(self) -> None:
        """Test an inline map's base_url path string is kept as given."""
        assert ImportMap(base_url="/project").base_url == "/project"

    def test_inline_imports_flag(self) -> None:
        """Test has_inline_imports reflects the imports/scopes pair."""
        assert TranspileOptions(imports={}).has_inline_imports is True
        assert TranspileOptions(scopes={"/": {}}).has_inline_imports is True

    def test_load_accepts_callable_or_loader(self) -> None:
        """Test load accepts a function or an object with load()."""

        async def load(specifier: str, is_dynamic: bool, cache_setting: object) -> None:
            return None

        class Loader:
            async def load(self, specifier: str, is_dynamic: bool, cache_setting: object) -> None:
                return None

        assert TranspileOptions(load=load).load is load
        assert isinstance(TranspileOptions(load=Loader()).load, Loader)

    def test_load_rejects_non_loader(self) -> None:
        """Test load rejects values that cannot load anything."""
        with pytest.raises(ValidationError) as exc_info:
            TranspileOptions(load="not a loader")

        assert "load" in str(exc_info.value)

    def test_unknown_field(self) -> None:
        """Test unknown option names are rejected."""
        with pytest.raises(ValidationError):
            BundleOptions.model_validate({"sourcemap": True})


class TestEmitSettings:
    """Tests for EmitSettings."""

    def test_defaults(self) -> None:
        """Test settings defaults without environment variables."""
        settings = EmitSettings(_env_file=None)  # type: ignore[call-arg]

        assert settings.engine is None
        assert settings.cache_dir is None
        assert settings.cache_setting is CacheSetting.USE
        assert settings.allow_remote is True
        assert settings.http_timeout == pytest.approx(30.0)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test settings are read from JSEMIT_* variables."""
        monkeypatch.setenv("JSEMIT_ENGINE", "my_engine:Engine")
        monkeypatch.setenv("JSEMIT_CACHE_DIR", str(tmp_path))
        monkeypatch.setenv("JSEMIT_CACHE_SETTING", "only")
        monkeypatch.setenv("JSEMIT_ALLOW_REMOTE", "false")

        settings = EmitSettings(_env_file=None)  # type: ignore[call-arg]

        assert settings.engine == "my_engine:Engine"
        assert settings.cache_dir == tmp_path
        assert settings.cache_setting is CacheSetting.ONLY
        assert settings.allow_remote is False

    @pytest.mark.parametrize("timeout", [0, -1, 601])
    def test_http_timeout_bounds(self, timeout: float) -> None:
        """Test the HTTP timeout must be positive and at most 600 seconds."""
        with pytest.raises(ValidationError):
            EmitSettings(http_timeout=timeout, _env_file=None)  # type: ignore[call-arg]
