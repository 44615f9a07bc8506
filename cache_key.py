"""
cache_key.py — Cache key derivation for compiled output.

A key is `<fragment>-<sha256>`: the fragment is a sanitized piece of the
source's basename (only there so a human can tell entries apart), the
digest covers both the logical filename and the exact source bytes.
"""

from __future__ import annotations
import hashlib
import re

FRAGMENT_MAX_LEN = 40

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_KEY_RE = re.compile(r"^(?:[A-Za-z0-9_-][A-Za-z0-9._-]{0,%d}-)?[0-9a-f]{64}$" % (FRAGMENT_MAX_LEN - 1))


def _fragment(filename: str) -> str:
    base = re.split(r"[\\/]", filename)[-1]
    return _UNSAFE_CHARS.sub("_", base).lstrip(".")[:FRAGMENT_MAX_LEN]


def derive_key(filename: str, source: bytes) -> str:
    if not filename:
        raise ValueError("filename must be a non-empty string")
    if isinstance(source, str):
        raise TypeError("source must be bytes, not str")

    name = filename.encode("utf-8", "surrogatepass")
    h = hashlib.sha256()
    # Length prefix keeps ("ab", b"c") and ("a", b"bc") apart.
    h.update(f"{len(name)}:".encode("ascii"))
    h.update(name)
    h.update(b"\n")
    h.update(bytes(source))
    digest = h.hexdigest()

    fragment = _fragment(filename)
    return f"{fragment}-{digest}" if fragment else digest


def is_cache_key(name: str) -> bool:
    """True if `name` has the shape of a key produced by derive_key."""
    return bool(_KEY_RE.match(name))
