"""Unit tests for pavo.cli.dispatcher: handler wiring, lazy loading and
failure routing through the terminator.

Subsystem modules are replaced by fakes through the dispatcher's loader,
so these tests never bind a port or touch the file system.
"""
from __future__ import annotations

import asyncio
import importlib
import logging
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pavo.cli.dispatcher import HANDLERS, CommandHandler, Dispatcher, command_payload
from pavo.cli.invocation import DispatchState, ResolvedInvocation
from pavo.config import InlineConfig
from pavo.errors import BuildError, SubsystemError, UnknownCommand


class RecordingLoader:
    """Loader returning fakes for some modules and recording every name."""

    def __init__(self, fakes: dict[str, Any] | None = None) -> None:
        self.fakes = dict(fakes or {})
        self.loaded: list[str] = []

    def __call__(self, name: str) -> Any:
        self.loaded.append(name)
        if name in self.fakes:
            return self.fakes[name]
        return importlib.import_module(name)


def _fake_server() -> SimpleNamespace:
    return SimpleNamespace(listen=AsyncMock(), serve_forever=AsyncMock())


def _dispatch(dispatcher: Dispatcher, invocation: ResolvedInvocation) -> None:
    asyncio.run(dispatcher.dispatch(invocation))


# ===========================================================================
# command_payload
# ===========================================================================


class TestCommandPayload:
    def test_drops_none_values(self) -> None:
        invocation = ResolvedInvocation("build", specific={"minify": None, "outDir": "out"})
        assert command_payload(invocation) == {"outDir": "out"}

    def test_drops_global_keys(self) -> None:
        invocation = ResolvedInvocation("build", specific={"mode": "x", "sourcemap": True})
        assert command_payload(invocation) == {"sourcemap": True}

    def test_empty(self) -> None:
        assert command_payload(ResolvedInvocation("build")) == {}


# ===========================================================================
# Handler wiring
# ===========================================================================


class TestBuildHandler:
    def test_build_receives_inline_config(self) -> None:
        builder = SimpleNamespace(build=AsyncMock())
        loader = RecordingLoader({"pavo.builder": builder})
        invocation = ResolvedInvocation(
            "build",
            root="app",
            global_options={"mode": "staging", "logLevel": "warn", "base": "/x/"},
            specific={"outDir": "out", "minify": None},
        )
        _dispatch(Dispatcher(loader=loader), invocation)

        builder.build.assert_awaited_once()
        (inline,) = builder.build.await_args.args
        assert inline == InlineConfig(
            root="app", base="/x/", mode="staging", log_level="warn", build={"outDir": "out"}
        )

    def test_minify_none_is_not_forwarded(self) -> None:
        builder = SimpleNamespace(build=AsyncMock())
        loader = RecordingLoader({"pavo.builder": builder})
        _dispatch(Dispatcher(loader=loader), ResolvedInvocation("build", specific={"minify": None}))
        assert "minify" not in builder.build.await_args.args[0].build

    def test_loads_only_builder_and_config(self) -> None:
        loader = RecordingLoader({"pavo.builder": SimpleNamespace(build=AsyncMock())})
        _dispatch(Dispatcher(loader=loader), ResolvedInvocation("build"))
        assert loader.loaded == ["pavo.builder", "pavo.config"]


class TestOptimizeHandler:
    def test_force_and_command_flag(self) -> None:
        resolved = object()
        optimizer = SimpleNamespace(optimize_deps=AsyncMock())
        config_module = SimpleNamespace(
            InlineConfig=InlineConfig, resolve_config=AsyncMock(return_value=resolved)
        )
        loader = RecordingLoader(
            {"pavo.optimizer": optimizer, "pavo.config": config_module}
        )
        invocation = ResolvedInvocation(
            "optimize", root="app", global_options={"config": "c.yaml"}, specific={"force": True}
        )
        _dispatch(Dispatcher(loader=loader), invocation)

        optimizer.optimize_deps.assert_awaited_once_with(resolved, force=True, as_command=True)
        inline, command, mode = config_module.resolve_config.await_args.args
        assert (command, mode) == ("build", "development")
        assert inline.root == "app"
        assert inline.config_file == "c.yaml"

    def test_force_defaults_to_false(self) -> None:
        optimizer = SimpleNamespace(optimize_deps=AsyncMock())
        config_module = SimpleNamespace(
            InlineConfig=InlineConfig, resolve_config=AsyncMock(return_value="cfg")
        )
        loader = RecordingLoader(
            {"pavo.optimizer": optimizer, "pavo.config": config_module}
        )
        _dispatch(Dispatcher(loader=loader), ResolvedInvocation("optimize"))
        optimizer.optimize_deps.assert_awaited_once_with("cfg", force=False, as_command=True)


class TestServeHandler:
    def test_server_is_created_started_and_held(self) -> None:
        server = _fake_server()
        server_module = SimpleNamespace(create_server=AsyncMock(return_value=server))
        loader = RecordingLoader({"pavo.server": server_module})
        invocation = ResolvedInvocation(
            "serve",
            global_options={"mode": "test", "clearScreen": False},
            specific={"port": 4000, "host": True},
        )
        _dispatch(Dispatcher(loader=loader), invocation)

        (inline,) = server_module.create_server.await_args.args
        assert inline.server == {"port": 4000, "host": True}
        assert inline.mode == "test"
        assert inline.clear_screen is False
        server.listen.assert_awaited_once_with()
        server.serve_forever.assert_awaited_once_with()
        assert loader.loaded == ["pavo.server", "pavo.config"]


class TestPreviewHandler:
    def test_preview_gets_port_and_open(self) -> None:
        resolved = object()
        server = _fake_server()
        preview_module = SimpleNamespace(preview=AsyncMock(return_value=server))
        config_module = SimpleNamespace(
            InlineConfig=InlineConfig, resolve_config=AsyncMock(return_value=resolved)
        )
        loader = RecordingLoader(
            {"pavo.preview_server": preview_module, "pavo.config": config_module}
        )
        invocation = ResolvedInvocation("preview", specific={"port": 8080, "open": True})
        _dispatch(Dispatcher(loader=loader), invocation)

        preview_module.preview.assert_awaited_once_with(resolved, 8080)
        inline, command, _ = config_module.resolve_config.await_args.args
        assert command == "serve"
        assert inline.server == {"open": True}
        server.serve_forever.assert_awaited_once_with()
        assert "pavo.server" not in loader.loaded


# ===========================================================================
# Failures
# ===========================================================================


class TestFailure:
    def _failing_loader(self, exc: Exception) -> RecordingLoader:
        return RecordingLoader(
            {"pavo.builder": SimpleNamespace(build=AsyncMock(side_effect=exc))}
        )

    def test_terminator_called_once_with_context(self) -> None:
        cause = BuildError("boom")
        terminator = MagicMock()
        dispatcher = Dispatcher(loader=self._failing_loader(cause), terminator=terminator)
        invocation = ResolvedInvocation("build", global_options={"logLevel": "silent"})
        _dispatch(dispatcher, invocation)

        terminator.assert_called_once()
        error, level = terminator.call_args.args
        assert isinstance(error, SubsystemError)
        assert error.command == "build"
        assert error.context == "error during build"
        assert error.__cause__ is cause
        assert level == "silent"
        assert dispatcher.state is DispatchState.FAILED

    @pytest.mark.parametrize(
        "command, context",
        [
            ("serve", "error when starting dev server"),
            ("build", "error during build"),
            ("optimize", "error when optimizing deps"),
            ("preview", "error when starting preview server"),
        ],
    )
    def test_context_per_command(self, command: str, context: str) -> None:
        assert HANDLERS[command].context == context

    def test_loader_failure_is_reported(self) -> None:
        def loader(name: str) -> Any:
            raise ImportError(f"no module {name}")

        terminator = MagicMock()
        _dispatch(Dispatcher(loader=loader, terminator=terminator), ResolvedInvocation("serve"))
        error = terminator.call_args.args[0]
        assert error.context == "error when starting dev server"
        assert isinstance(error.__cause__, ImportError)

    def test_default_terminator_exits_with_status_one(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        dispatcher = Dispatcher(loader=self._failing_loader(BuildError("boom")))
        with pytest.raises(SystemExit) as info:
            _dispatch(dispatcher, ResolvedInvocation("build"))
        assert info.value.code == 1
        err = capsys.readouterr().err
        assert err.count("error during build:") == 1
        assert "BuildError: boom" in err

    def test_silent_level_suppresses_report(self, capsys: pytest.CaptureFixture[str]) -> None:
        dispatcher = Dispatcher(loader=self._failing_loader(BuildError("boom")))
        with pytest.raises(SystemExit):
            invocation = ResolvedInvocation("build", global_options={"logLevel": "silent"})
            _dispatch(dispatcher, invocation)
        assert capsys.readouterr().err == ""

    def test_unknown_command(self) -> None:
        loader = RecordingLoader()
        dispatcher = Dispatcher(loader=loader)
        with pytest.raises(UnknownCommand) as info:
            _dispatch(dispatcher, ResolvedInvocation("deploy"))
        assert info.value.command_name == "deploy"
        assert info.value.available == ["build", "optimize", "preview", "serve"]
        assert dispatcher.state is DispatchState.FAILED
        assert loader.loaded == []


# ===========================================================================
# Lifecycle
# ===========================================================================


class TestLifecycle:
    def _noop_handlers(self) -> dict[str, CommandHandler]:
        async def run(invocation: ResolvedInvocation, load: Any) -> None:
            return None

        return {"noop": CommandHandler("noop", "error in noop", run)}

    def test_initial_state(self) -> None:
        assert Dispatcher().state is DispatchState.IDLE

    def test_default_loader_is_import_module(self) -> None:
        assert Dispatcher().loader is importlib.import_module

    def test_success_state(self) -> None:
        dispatcher = Dispatcher(self._noop_handlers())
        _dispatch(dispatcher, ResolvedInvocation("noop"))
        assert dispatcher.state is DispatchState.SUCCEEDED

    def test_second_dispatch_rejected(self) -> None:
        dispatcher = Dispatcher(self._noop_handlers())
        _dispatch(dispatcher, ResolvedInvocation("noop"))
        with pytest.raises(RuntimeError, match="already used"):
            _dispatch(dispatcher, ResolvedInvocation("noop"))

    def test_state_is_dispatching_while_handler_runs(self) -> None:
        seen: list[DispatchState] = []

        async def run(invocation: ResolvedInvocation, load: Any) -> None:
            seen.append(dispatcher.state)

        dispatcher = Dispatcher({"probe": CommandHandler("probe", "probe failed", run)})
        _dispatch(dispatcher, ResolvedInvocation("probe"))
        assert seen == [DispatchState.DISPATCHING]

    def test_debug_option_enables_debug_logging(self) -> None:
        dispatcher = Dispatcher(self._noop_handlers())
        _dispatch(dispatcher, ResolvedInvocation("noop", global_options={"debug": True}))
        assert logging.getLogger("pavo").level == logging.DEBUG
