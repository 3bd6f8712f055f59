"""Unit tests for pavo.cli.options: flag declaration parsing, the
registry's duplicate handling, alias mapping and the default schema.
"""
from __future__ import annotations

import pytest

from pavo.cli.options import (
    CommandAlreadyRegisteredError,
    CommandNotRegisteredError,
    OptionRegistry,
    OptionSpec,
    ValueKind,
    kebab_case,
)


def _fresh_registry() -> OptionRegistry:
    registry = OptionRegistry()
    registry.add_global("-c, --config <file>", "[string] use specified config file")
    registry.add_global("--clearScreen", "[boolean] allow/disable clear screen")
    return registry


# ===========================================================================
# OptionSpec.parse
# ===========================================================================


class TestOptionSpecParse:
    def test_required_value_is_string(self) -> None:
        spec = OptionSpec.parse("-c, --config <file>", "use config")
        assert spec.name == "config"
        assert spec.alias == "c"
        assert spec.kind is ValueKind.STRING
        assert spec.metavar == "file"

    def test_optional_value(self) -> None:
        spec = OptionSpec.parse("--open [path]", "open browser")
        assert spec.kind is ValueKind.OPTIONAL_STRING
        assert spec.metavar == "path"
        assert spec.alias is None

    def test_no_placeholder_is_boolean(self) -> None:
        spec = OptionSpec.parse("--strictPort", "exit if port in use")
        assert spec.kind is ValueKind.BOOLEAN
        assert spec.metavar is None

    def test_explicit_number_kind(self) -> None:
        spec = OptionSpec.parse("--port <port>", "port", kind=ValueKind.NUMBER)
        assert spec.kind is ValueKind.NUMBER

    def test_kind_contradicting_placeholder_rejected(self) -> None:
        with pytest.raises(ValueError):
            OptionSpec.parse("--https", "tls", kind=ValueKind.NUMBER)

    def test_malformed_declaration_rejected(self) -> None:
        with pytest.raises(ValueError, match="Cannot parse"):
            OptionSpec.parse("config <file>", "no dashes")

    def test_envvar_recorded(self) -> None:
        spec = OptionSpec.parse("-l, --logLevel <level>", "level", envvar="PAVO_LOG_LEVEL")
        assert spec.envvar == "PAVO_LOG_LEVEL"

    def test_keys_include_alias(self) -> None:
        spec = OptionSpec.parse("-m, --mode <mode>", "mode")
        assert spec.keys == ("mode", "m")


class TestLongFlags:
    def test_camel_case_gets_kebab_spelling(self) -> None:
        spec = OptionSpec.parse("--outDir <dir>", "output directory")
        assert spec.long_flags == ("--outDir", "--out-dir")

    def test_lowercase_has_single_spelling(self) -> None:
        spec = OptionSpec.parse("--host <host>", "hostname")
        assert spec.long_flags == ("--host",)

    def test_kebab_case_helper(self) -> None:
        assert kebab_case("assetsInlineLimit") == "assets-inline-limit"
        assert kebab_case("ssrManifest") == "ssr-manifest"
        assert kebab_case("cors") == "cors"


# ===========================================================================
# OptionRegistry
# ===========================================================================


class TestOptionRegistry:
    def test_command_returns_chainable_schema(self) -> None:
        registry = _fresh_registry()
        schema = registry.command("build", "build").option("--sourcemap", "maps")
        assert [spec.name for spec in schema.options] == ["sourcemap"]

    def test_registering_command_twice_raises(self) -> None:
        registry = _fresh_registry()
        registry.command("build", "build")
        with pytest.raises(CommandAlreadyRegisteredError) as info:
            registry.command("build", "again")
        assert info.value.command_name == "build"

    def test_get_unknown_command_raises(self) -> None:
        with pytest.raises(CommandNotRegisteredError):
            _fresh_registry().get("deploy")

    def test_default_command_flag(self) -> None:
        registry = _fresh_registry()
        registry.command("serve", "dev", default=True)
        registry.command("build", "build")
        assert registry.default_command == "serve"

    def test_membership_and_len(self) -> None:
        registry = _fresh_registry()
        registry.command("build", "build")
        assert "build" in registry
        assert "serve" not in registry
        assert len(registry) == 1

    def test_repr_mentions_commands(self) -> None:
        registry = _fresh_registry()
        registry.command("build", "build")
        assert "build" in repr(registry)

    def test_globals_come_first(self) -> None:
        registry = _fresh_registry()
        registry.command("build", "build").option("--outDir <dir>", "out")
        names = [spec.name for spec in registry.effective_options("build")]
        assert names == ["config", "clearScreen", "outDir"]

    def test_same_flag_on_two_commands_is_allowed(self) -> None:
        registry = _fresh_registry()
        registry.command("serve", "dev").option("-m, --mode <mode>", "mode")
        registry.command("build", "build").option("-m, --mode <mode>", "mode")
        assert registry.aliases("serve")["m"] == "mode"
        assert registry.aliases("build")["m"] == "mode"

    def test_command_redeclaring_global_is_skipped(self) -> None:
        registry = _fresh_registry()
        registry.command("build", "build").option("--config <path>", "shadow")
        specs = [s for s in registry.effective_options("build") if s.name == "config"]
        assert len(specs) == 1
        assert specs[0].alias == "c"

    def test_aliases_map_to_canonical_names(self) -> None:
        registry = _fresh_registry()
        registry.command("build", "build").option("-m, --mode <mode>", "mode")
        assert registry.aliases("build") == {"c": "config", "m": "mode"}


# ===========================================================================
# default_registry
# ===========================================================================


class TestDefaultRegistry:
    def test_commands(self, registry: OptionRegistry) -> None:
        assert registry.list_commands() == ["serve", "build", "optimize", "preview"]
        assert registry.default_command == "serve"

    def test_global_flags(self, registry: OptionRegistry) -> None:
        names = {spec.name for spec in registry.global_options}
        assert names == {"config", "root", "base", "logLevel", "clearScreen", "debug", "filter"}

    def test_every_command_sees_globals(self, registry: OptionRegistry) -> None:
        for name in registry.list_commands():
            names = {spec.name for spec in registry.effective_options(name)}
            assert {"config", "root", "logLevel"} <= names

    def test_number_flags(self, registry: OptionRegistry) -> None:
        kinds = {s.name: s.kind for s in registry.effective_options("build")}
        assert kinds["assetsInlineLimit"] is ValueKind.NUMBER
        assert kinds["minify"] is ValueKind.OPTIONAL_STRING
        assert kinds["ssr"] is ValueKind.OPTIONAL_STRING

    def test_optimize_declares_only_force(self, registry: OptionRegistry) -> None:
        assert [s.name for s in registry.get("optimize").options] == ["force"]

    def test_preview_flags(self, registry: OptionRegistry) -> None:
        assert [s.name for s in registry.get("preview").options] == ["port", "open"]

    def test_debug_is_optional_string(self, registry: OptionRegistry) -> None:
        debug = next(s for s in registry.global_options if s.name == "debug")
        assert debug.kind is ValueKind.OPTIONAL_STRING
        assert debug.alias == "d"
