#!/usr/bin/env python3
"""
compile_cache.py — CLI entry point.

Usage:
    # Compile through the cache (source on stdin, output on stdout)
    python compile_cache.py src/main.ts --compiler "esbuild --loader=ts"

    # Pass the logical filename to the compiler
    python compile_cache.py a.ts b.ts --compiler "tsc-stdin --name {filename}"

    # Write a single output to a file
    python compile_cache.py src/main.ts --compiler "..." -o out/main.js

    # Show the cache key for a file
    python compile_cache.py src/main.ts --print-key

    # Show what is in the cache
    python compile_cache.py --stats

Environment:
    COMPILE_CACHE_DIR  — cache home (or pass --cache-dir); entries live in <home>/gen
"""

from __future__ import annotations
import argparse
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional, Sequence

sys.path.insert(0, str(Path(__file__).parent))

from cache import CacheError, CompileCache
from cache_dir import ensure_cache_root, gen_dir, resolve_cache_home
from cache_key import derive_key
from driver import CachedCompiler, CommandCompiler, CompileError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compile source files through a content-addressed output cache.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("files", nargs="*", type=Path,
                        help="Source files to compile")
    parser.add_argument("--compiler", default=None,
                        help="Compiler command; reads source on stdin, writes output to stdout. "
                             "'{filename}' is replaced with the source filename.")
    parser.add_argument("--compiler-timeout", type=float, default=300.0,
                        help="Seconds before a compiler run is abandoned (default: 300)")
    parser.add_argument("--cache-dir", type=Path, default=None,
                        help="Cache home directory (default: $COMPILE_CACHE_DIR or ~/.compile_cache)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Write output to this file (single input only)")
    parser.add_argument("--print-key", action="store_true",
                        help="Print the cache key for each file and exit")
    parser.add_argument("--stats", action="store_true",
                        help="Print cache statistics and exit")
    parser.add_argument("--strict-cache", action="store_true",
                        help="Fail when compiled output cannot be written to the cache")
    parser.add_argument("--no-cache", action="store_true",
                        help="Use a throwaway cache directory for this run")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print cache hits/misses and a summary to stderr")
    return parser


def _print_keys(files: Sequence[Path]) -> int:
    for path in files:
        try:
            source = path.read_bytes()
        except OSError as e:
            print(f"Error: Cannot read {path}: {e}", file=sys.stderr)
            return 1
        print(f"{path}\t{derive_key(str(path), source)}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.print_key:
        if not args.files:
            parser.error("--print-key requires at least one file")
        return _print_keys(args.files)

    tmp_home = None
    if args.no_cache:
        tmp_home = Path(tempfile.mkdtemp(prefix="compile_cache_"))
        home = tmp_home
    else:
        home = resolve_cache_home(args.cache_dir)

    try:
        return _run(parser, args, home)
    finally:
        if tmp_home is not None:
            shutil.rmtree(tmp_home, ignore_errors=True)


def _run(parser: argparse.ArgumentParser, args: argparse.Namespace, home: Path) -> int:
    try:
        cache = CompileCache(ensure_cache_root(gen_dir(home)))
    except CacheError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.stats:
        for name, value in cache.stats().items():
            print(f"{name}: {value}")
        return 0

    if not args.files:
        parser.error("no input files")
    if args.compiler is None:
        parser.error("--compiler is required to compile files")
    if args.output is not None and len(args.files) != 1:
        parser.error("--output can only be used with a single input file")

    try:
        compiler = CommandCompiler(args.compiler, timeout=args.compiler_timeout)
    except ValueError as e:
        parser.error(str(e))

    driver = CachedCompiler(cache, compiler, strict_writes=args.strict_cache, verbose=args.verbose)

    for path in args.files:
        if not path.is_file():
            print(f"Error: File does not exist: {path}", file=sys.stderr)
            return 1
        try:
            result = driver.compile_file(path)
        except (CacheError, CompileError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        if args.output is not None:
            try:
                args.output.parent.mkdir(parents=True, exist_ok=True)
                args.output.write_bytes(result.output)
            except OSError as e:
                print(f"Error: Cannot write {args.output}: {e}", file=sys.stderr)
                return 1
            driver._log(f"📄 Output written to: {args.output}")
        else:
            sys.stdout.buffer.write(result.output)
            sys.stdout.buffer.flush()

    driver._log(driver.tracker.report())
    return 0


if __name__ == "__main__":
    sys.exit(main())
