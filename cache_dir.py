"""
cache_dir.py — Locating and bootstrapping the cache directory.

The cache home holds a `gen/` subdirectory with the compiled output
entries; that subdirectory is the root handed to CompileCache.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Mapping, Optional

from cache import CacheConfigError

ENV_VAR = "COMPILE_CACHE_DIR"
GEN_SUBDIR = "gen"


def default_cache_home() -> Path:
    return Path.home() / ".compile_cache"


def resolve_cache_home(
    cli_value: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """CLI flag wins, then $COMPILE_CACHE_DIR, then ~/.compile_cache."""
    if environ is None:
        environ = os.environ
    if cli_value:
        return Path(cli_value).expanduser()
    env_value = environ.get(ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return default_cache_home()


def gen_dir(home: Path) -> Path:
    return home / GEN_SUBDIR


def ensure_cache_root(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CacheConfigError(f"Cannot create cache directory {path}: {e}", path) from e
    if not os.access(path, os.W_OK | os.X_OK):
        raise CacheConfigError(f"Cache directory is not writable: {path}", path)
    return path
