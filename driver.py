"""
driver.py — Compile-with-cache driver.

Runs the lookup → compile → write-back protocol around a compiler that
the cache treats as a black box:

  1. Ask the cache for (filename, source)
  2. Hit: return the cached bytes, the compiler is never started
  3. Miss: compile, store the output under the same key, return it

Read failures always propagate; a broken cache must not look like a miss.
Write-back failures are fatal only with strict_writes.
"""

from __future__ import annotations
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence, Union

from cache import CompileCache, CacheWriteError

Compiler = Callable[[str, bytes], bytes]


class CompileError(Exception):
    pass


class CommandCompiler:
    """
    Wrap an external compiler command.

    The source is fed on stdin and the compiled output is read from stdout.
    Any `{filename}` argument is replaced with the logical filename, e.g.

        CommandCompiler("esbuild --loader=ts --sourcefile={filename}")
    """

    def __init__(self, command: Union[str, Sequence[str]], timeout: float = 300.0):
        if isinstance(command, str):
            command = shlex.split(command)
        if not command:
            raise ValueError("compiler command is empty")
        self.command = list(command)
        self.timeout = timeout

    def argv(self, filename: str) -> list[str]:
        return [arg.replace("{filename}", filename) for arg in self.command]

    def __call__(self, filename: str, source: bytes) -> bytes:
        cmd = self.argv(filename)
        try:
            result = subprocess.run(
                cmd,
                input=source,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise CompileError(f"Compiler not found: {cmd[0]}")
        except subprocess.TimeoutExpired:
            raise CompileError(f"Compiling {filename} timed out after {self.timeout:g}s")

        if result.returncode != 0:
            err = result.stderr.decode("utf-8", errors="replace").strip()
            raise CompileError(f"Compiling {filename} failed (exit {result.returncode}):\n{err}")
        return result.stdout


@dataclass
class CacheTracker:
    hits: int = 0
    misses: int = 0
    writes: int = 0
    write_failures: int = 0

    def report(self) -> str:
        return (
            f"Cache hits: {self.hits} | Misses: {self.misses} | "
            f"Writes: {self.writes} | Write failures: {self.write_failures}"
        )


@dataclass
class CompileResult:
    filename: str
    output: bytes
    cache_key: str
    from_cache: bool


class CachedCompiler:
    def __init__(
        self,
        cache: CompileCache,
        compiler: Compiler,
        *,
        strict_writes: bool = False,
        verbose: bool = False,
    ):
        self.cache = cache
        self.compiler = compiler
        self.strict_writes = strict_writes
        self.verbose = verbose
        self.tracker = CacheTracker()

    def _log(self, msg: str):
        if self.verbose:
            print(msg, file=sys.stderr, flush=True)

    def compile(self, filename: str, source: bytes) -> CompileResult:
        key = self.cache.derive_key(filename, source)

        cached = self.cache.get(filename, source)
        if cached is not None:
            self.tracker.hits += 1
            self._log(f"  HIT   {filename} ({key})")
            return CompileResult(filename=filename, output=cached, cache_key=key, from_cache=True)

        self.tracker.misses += 1
        self._log(f"  MISS  {filename} ({key})")
        output = self.compiler(filename, source)

        try:
            self.cache.store(filename, source, output)
            self.tracker.writes += 1
        except CacheWriteError as e:
            self.tracker.write_failures += 1
            if self.strict_writes:
                raise
            print(f"Warning: {e}; continuing without caching {filename}", file=sys.stderr, flush=True)

        return CompileResult(filename=filename, output=output, cache_key=key, from_cache=False)

    def compile_file(self, path: Path) -> CompileResult:
        return self.compile(str(path), Path(path).read_bytes())
