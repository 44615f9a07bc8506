from pathlib import Path

import pytest

from cache import CacheConfigError, CompileCache
from cache_dir import (
    ENV_VAR,
    default_cache_home,
    ensure_cache_root,
    gen_dir,
    resolve_cache_home,
)


def test_cli_value_wins_over_environment(tmp_path: Path):
    env = {ENV_VAR: str(tmp_path / "from-env")}
    assert resolve_cache_home(tmp_path / "from-cli", environ=env) == tmp_path / "from-cli"


def test_environment_used_when_no_cli_value(tmp_path: Path):
    env = {ENV_VAR: str(tmp_path / "from-env")}
    assert resolve_cache_home(None, environ=env) == tmp_path / "from-env"


def test_default_home_when_nothing_configured():
    assert resolve_cache_home(None, environ={}) == default_cache_home()
    assert default_cache_home().name == ".compile_cache"


def test_resolve_reads_process_environment(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(ENV_VAR, str(tmp_path / "env-home"))
    assert resolve_cache_home() == tmp_path / "env-home"


def test_ensure_cache_root_creates_gen_dir(tmp_path: Path):
    root = ensure_cache_root(gen_dir(tmp_path / "home"))

    assert root == tmp_path / "home" / "gen"
    assert root.is_dir()
    CompileCache(root).store("Hello.ts", b"1+2", b"blah")


def test_ensure_cache_root_is_idempotent(tmp_path: Path):
    root = gen_dir(tmp_path)
    ensure_cache_root(root)
    ensure_cache_root(root)
    assert root.is_dir()


def test_ensure_cache_root_rejects_file_in_the_way(tmp_path: Path):
    blocker = tmp_path / "gen"
    blocker.write_text("occupied")

    with pytest.raises(CacheConfigError, match="Cannot create cache directory"):
        ensure_cache_root(blocker)
