"""Production build.

The builder copies the project's source files into the output directory
and optionally writes manifests describing what it emitted. Transpiling
and bundling are delegated to the configured minifier toolchain and are
not performed here.
"""
from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.markup import escape

from pavo.config import CACHE_DIR_NAME, InlineConfig, ResolvedConfig, resolve_config
from pavo.errors import BuildError

logger = logging.getLogger(__name__)

BUILD_DEFAULTS: dict[str, Any] = {
    "target": "modules",
    "outDir": "dist",
    "assetsDir": "assets",
    "assetsInlineLimit": 4096,
    "sourcemap": False,
    "minify": "terser",
    "manifest": False,
    "ssrManifest": False,
}

MINIFIERS = (True, False, "terser", "esbuild")

_SKIPPED_NAMES = {"node_modules", CACHE_DIR_NAME}


@dataclass
class BuildResult:
    """Summary of one build."""

    out_dir: Path
    files: list[Path] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)


def resolve_build_options(config: ResolvedConfig) -> dict[str, Any]:
    """Apply defaults to ``config.build`` and validate it."""
    options = {**BUILD_DEFAULTS, **config.build}
    if options["minify"] in ("true", "false"):
        options["minify"] = options["minify"] == "true"
    if options["minify"] not in MINIFIERS:
        raise BuildError(
            f"Invalid minify option {options['minify']!r}; "
            'expected a boolean, "terser" or "esbuild"'
        )
    try:
        options["assetsInlineLimit"] = int(options["assetsInlineLimit"])
    except (TypeError, ValueError):
        raise BuildError(
            f"assetsInlineLimit must be a number, got {options['assetsInlineLimit']!r}"
        ) from None
    return options


def _is_within(path: Path, parent: Path) -> bool:
    return path == parent or parent in path.parents


def _prepare_out_dir(config: ResolvedConfig, out_dir: Path, empty_out_dir: bool | None) -> None:
    inside_root = config.root in out_dir.parents
    if out_dir.exists():
        if empty_out_dir or (empty_out_dir is None and inside_root):
            logger.debug("emptying %s", out_dir)
            shutil.rmtree(out_dir)
        elif not inside_root:
            config.logger.warn(
                f"{escape(str(out_dir))} is not inside project root and will not be emptied.\n"
                "Use --emptyOutDir to override."
            )
    out_dir.mkdir(parents=True, exist_ok=True)


def _source_files(config: ResolvedConfig, out_dir: Path) -> list[Path]:
    files = []
    for path in sorted(config.root.rglob("*")):
        relative = path.relative_to(config.root)
        if any(part.startswith(".") or part in _SKIPPED_NAMES for part in relative.parts):
            continue
        if _is_within(path, out_dir) or path == config.config_file:
            continue
        if path.is_file():
            files.append(path)
    return files


async def build(inline: InlineConfig) -> BuildResult:
    """Run one production build.

    Raises
    ------
    BuildError
        For invalid options, a missing ``ssr`` entry, or an ``outDir``
        that is the project root or contains it.
    """
    config = await resolve_config(inline, "build", "production")
    options = resolve_build_options(config)
    out_dir = (config.root / options["outDir"]).resolve()
    if _is_within(config.root, out_dir):
        raise BuildError(f"outDir {out_dir} must not be the project root or one of its parents")

    ssr_entry = options.get("ssr")
    if isinstance(ssr_entry, str) and not (config.root / ssr_entry).is_file():
        raise BuildError(f"ssr entry {ssr_entry!r} does not exist in {config.root}")

    sources = _source_files(config, out_dir)
    _prepare_out_dir(config, out_dir, options.get("emptyOutDir"))

    result = BuildResult(out_dir=out_dir, options=options)
    for source in sources:
        destination = out_dir / source.relative_to(config.root)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        result.files.append(destination)

    if options["manifest"]:
        result.files.append(_write_manifest(out_dir, "manifest.json", result.files))
    if options["ssrManifest"]:
        result.files.append(_write_manifest(out_dir, "ssr-manifest.json", result.files))

    config.logger.info(
        f"[green]built[/green] {len(result.files)} file(s) to {escape(str(out_dir))} "
        f"[dim](mode: {escape(config.mode)}, target: {escape(str(options['target']))})[/dim]"
    )
    return result


def _write_manifest(out_dir: Path, name: str, files: list[Path]) -> Path:
    manifest = {
        file.relative_to(out_dir).as_posix(): {"size": file.stat().st_size}
        for file in files
        if file.name not in ("manifest.json", "ssr-manifest.json")
    }
    path = out_dir / name
    path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return path
