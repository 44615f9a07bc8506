"""
cache.py — Content-addressed store for compiled output.

One file per entry under the cache root, named by the key derived from
(filename, source bytes), holding the raw compiled output. A missing
file is a miss; a file that exists but cannot be read is an error.
"""

from __future__ import annotations
import os
import tempfile
from pathlib import Path
from typing import Optional

from cache_key import derive_key, is_cache_key


class CacheError(Exception):
    pass


class CacheConfigError(CacheError):
    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


class CacheReadError(CacheError):
    def __init__(self, message: str, key: str, path: Path):
        super().__init__(message)
        self.key = key
        self.path = path


class CacheWriteError(CacheError):
    def __init__(self, message: str, key: str, path: Path):
        super().__init__(message)
        self.key = key
        self.path = path


class CompileCache:
    def __init__(self, cache_root: Path):
        self.cache_root = Path(cache_root)
        if not self.cache_root.is_dir():
            raise CacheConfigError(f"Cache root is not a directory: {self.cache_root}", self.cache_root)
        if not os.access(self.cache_root, os.W_OK | os.X_OK):
            raise CacheConfigError(f"Cache root is not writable: {self.cache_root}", self.cache_root)

    @staticmethod
    def derive_key(filename: str, source: bytes) -> str:
        return derive_key(filename, source)

    def path_for(self, filename: str, source: bytes) -> Path:
        return self.cache_root / derive_key(filename, source)

    def contains(self, filename: str, source: bytes) -> bool:
        return self.path_for(filename, source).is_file()

    def get(self, filename: str, source: bytes) -> Optional[bytes]:
        """
        Return the cached output, or None if nothing is cached.

        An empty bytes result is a hit with empty output. Raises
        CacheReadError when the entry exists but cannot be read.
        """
        key = derive_key(filename, source)
        path = self.cache_root / key
        try:
            if not path.exists():
                return None
            return path.read_bytes()
        except OSError as e:
            raise CacheReadError(
                f"Failed to read cache entry {key} for {filename}: {e}", key, path
            ) from e

    def lookup(self, filename: str, source: bytes) -> bytes:
        """Cached output, or b"" on a miss (indistinguishable from cached empty output)."""
        output = self.get(filename, source)
        return output if output is not None else b""

    def store(self, filename: str, source: bytes, output: bytes) -> Path:
        key = derive_key(filename, source)
        path = self.cache_root / key
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_root, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(output)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise CacheWriteError(
                f"Failed to write cache entry {key} for {filename}: {e}", key, path
            ) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
        return path

    def stats(self) -> dict:
        entries = 0
        total_bytes = 0
        for p in self.cache_root.iterdir():
            if not is_cache_key(p.name) or not p.is_file():
                continue
            entries += 1
            total_bytes += p.stat().st_size
        return {
            "cache_root": str(self.cache_root),
            "cached_entries": entries,
            "total_bytes": total_bytes,
        }
