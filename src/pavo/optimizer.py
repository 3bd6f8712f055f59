"""Dependency pre-bundling metadata.

The optimizer decides whether the project's pre-bundled dependencies are
still valid. Validity is a hash of the mode, the ``optimizeDeps.include``
list and the lockfile contents; the hash and the optimized dependency
list live in ``<root>/.pavo/deps/_metadata.json``.
"""
from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from pavo.config import ResolvedConfig

logger = logging.getLogger(__name__)

LOCKFILES = ("package-lock.json", "yarn.lock", "pnpm-lock.yaml")

METADATA_FILE = "_metadata.json"


def deps_cache_dir(config: ResolvedConfig) -> Path:
    return config.cache_dir / "deps"


def dependency_list(config: ResolvedConfig) -> list[str]:
    include = config.optimize_deps.get("include") or []
    if isinstance(include, str):
        include = [include]
    return sorted(dict.fromkeys(str(dep) for dep in include))


def dependency_hash(config: ResolvedConfig) -> str:
    """Hash everything that invalidates the pre-bundle."""
    digest = hashlib.sha256()
    digest.update(config.mode.encode("utf-8"))
    digest.update(json.dumps(dependency_list(config)).encode("utf-8"))
    for name in LOCKFILES:
        lockfile = config.root / name
        if lockfile.is_file():
            digest.update(lockfile.read_bytes())
            break
    return digest.hexdigest()[:8]


def read_metadata(config: ResolvedConfig) -> dict[str, Any] | None:
    path = deps_cache_dir(config) / METADATA_FILE
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.debug("ignoring unreadable metadata at %s", path)
        return None
    return data if isinstance(data, dict) else None


async def optimize_deps(
    config: ResolvedConfig,
    force: bool = False,
    as_command: bool = False,
) -> dict[str, Any] | None:
    """Refresh the pre-bundle metadata when it is stale.

    Parameters
    ----------
    config:
        Resolved project configuration.
    force:
        Ignore a matching cached hash and rebuild.
    as_command:
        ``True`` when invoked by ``pavo optimize``; the outcome is then
        reported to the user instead of only to the debug log.

    Returns
    -------
    dict | None
        The metadata now on disk, or ``None`` when there is nothing to
        pre-bundle.
    """
    log = config.logger
    deps = dependency_list(config)
    current_hash = dependency_hash(config)

    if not force:
        cached = read_metadata(config)
        if cached is not None and cached.get("hash") == current_hash:
            logger.debug("dependency hash %s unchanged", current_hash)
            if as_command:
                log.info("Hash is consistent. Skipping. Use --force to override.")
            return cached

    if not deps:
        stale = deps_cache_dir(config) / METADATA_FILE
        if stale.is_file():
            logger.debug("removing stale metadata at %s", stale)
            stale.unlink()
        if as_command:
            log.info("No dependencies to bundle. Skipping.")
        return None

    if as_command:
        log.info("Optimizing dependencies:\n  " + ", ".join(deps))

    metadata = {
        "hash": current_hash,
        "mode": config.mode,
        "optimized": {dep: {"file": f"{dep.replace('/', '_')}.js"} for dep in deps},
    }
    cache_dir = deps_cache_dir(config)
    cache_dir.mkdir(parents=True, exist_ok=True)
    (cache_dir / METADATA_FILE).write_text(json.dumps(metadata, indent=2), encoding="utf-8")
    logger.debug("wrote %d optimized deps to %s", len(deps), cache_dir)
    return metadata
