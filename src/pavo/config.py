"""Configuration resolution for pavo subsystems.

The CLI hands every subsystem an ``InlineConfig`` built from the command
line. ``resolve_config`` combines it with the project's YAML config file
and the defaults into a ``ResolvedConfig``.

Precedence, highest first:

1. inline values that are not ``None``
2. values from the config file
3. defaults

The ``server``, ``build`` and ``optimizeDeps`` sections are merged one
level deep, so ``--port`` on the command line overrides ``server.port``
from the file without discarding ``server.host``.

Example config file (``pavo.config.yaml``)::

    base: /app/
    server:
      port: 4000
    build:
      outDir: public
    optimizeDeps:
      include: [lodash-es]
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pavo.errors import ConfigError
from pavo.logger import DEFAULT_LOG_LEVEL, Logger, create_logger, normalize_log_level

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("pavo.config.yaml", "pavo.config.yml")

CACHE_DIR_NAME = ".pavo"

ConfigCommand = Literal["serve", "build"]

_SECTIONS = ("server", "build", "optimizeDeps")


@dataclass(frozen=True)
class InlineConfig:
    """Configuration passed in from the command line.

    ``None`` means "not given"; the resolver then looks at the config file
    and the defaults.
    """

    root: str | None = None
    base: str | None = None
    mode: str | None = None
    config_file: str | None = None
    log_level: str | None = None
    clear_screen: bool | None = None
    server: dict[str, Any] = field(default_factory=dict)
    build: dict[str, Any] = field(default_factory=dict)


@dataclass
class ResolvedConfig:
    """Fully resolved configuration for one command run."""

    root: Path
    base: str
    mode: str
    command: ConfigCommand
    config_file: Path | None
    log_level: str
    clear_screen: bool
    server: dict[str, Any]
    build: dict[str, Any]
    optimize_deps: dict[str, Any]
    logger: Logger

    @property
    def cache_dir(self) -> Path:
        return self.root / CACHE_DIR_NAME

    @property
    def is_production(self) -> bool:
        return self.mode == "production"


def find_config_file(root: Path, config_file: str | None = None) -> Path | None:
    """Return the config file to load, or ``None`` if the project has none.

    An explicit ``config_file`` that does not exist is an error; the
    implicit candidates are simply skipped.
    """
    if config_file:
        path = Path(config_file)
        if not path.is_absolute():
            path = root / path
        if not path.is_file():
            raise ConfigError("config file not found", str(path))
        return path
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML config file; the top level must be a mapping."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file: {exc}", str(path)) from exc
    except OSError as exc:
        raise ConfigError(f"cannot read config file: {exc}", str(path)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"config file must contain a mapping, got {type(data).__name__}", str(path)
        )
    for section in _SECTIONS:
        value = data.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(f"{section!r} must be a mapping", str(path))
    return data


def normalize_base(base: str | None) -> str:
    if not base:
        return "/"
    if not base.endswith("/"):
        base += "/"
    return base


def _merge_section(file_value: dict[str, Any] | None, inline: dict[str, Any]) -> dict[str, Any]:
    merged = dict(file_value or {})
    merged.update({k: v for k, v in inline.items() if v is not None})
    return merged


def _pick(inline_value: Any, file_config: dict[str, Any], key: str, default: Any) -> Any:
    if inline_value is not None:
        return inline_value
    value = file_config.get(key)
    return default if value is None else value


async def resolve_config(
    inline: InlineConfig,
    command: ConfigCommand,
    default_mode: str = "development",
) -> ResolvedConfig:
    """Resolve ``inline`` against the config file and defaults.

    Parameters
    ----------
    inline:
        Values from the command line.
    command:
        ``"serve"`` or ``"build"``; recorded on the result.
    default_mode:
        Mode used when neither the command line nor the file sets one.

    Raises
    ------
    ConfigError
        If an explicit config file is missing or any config file is
        malformed.
    """
    root = Path(inline.root or os.getcwd()).resolve()
    config_path = find_config_file(root, inline.config_file)
    file_config = load_config_file(config_path) if config_path else {}
    if config_path:
        logger.debug("loaded config from %s", config_path)

    log_level = normalize_log_level(
        _pick(inline.log_level, file_config, "logLevel", DEFAULT_LOG_LEVEL)
    )
    clear_screen = bool(_pick(inline.clear_screen, file_config, "clearScreen", True))

    config = ResolvedConfig(
        root=root,
        base=normalize_base(_pick(inline.base, file_config, "base", "/")),
        mode=_pick(inline.mode, file_config, "mode", default_mode),
        command=command,
        config_file=config_path,
        log_level=log_level,
        clear_screen=clear_screen,
        server=_merge_section(file_config.get("server"), inline.server),
        build=_merge_section(file_config.get("build"), inline.build),
        optimize_deps=dict(file_config.get("optimizeDeps") or {}),
        logger=create_logger(log_level, allow_clear_screen=clear_screen),
    )
    logger.debug(
        "resolved %s config: root=%s mode=%s base=%s", command, root, config.mode, config.base
    )
    return config
