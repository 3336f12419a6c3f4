"""Content hashing for workspace files.

Manifest hashes are computed over a canonical form of the parsed TOML so that
manifests differing only in whitespace, comments, quoting or key order map to
the same hash (and therefore to the same server-side version). Lock hashes
are computed over the raw bytes.

Canonical form: the parsed document serialized as compact JSON with keys
sorted lexicographically in every table, arrays kept in order, and TOML
date/time values rendered as ISO 8601 strings.
"""

from datetime import date, datetime, time
from typing import Any
import hashlib
import json
import tomllib

from .constants import CONTENT_TAG_LENGTH, HASH_PREFIX


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    raise TypeError(f"Unsupported TOML value: {type(value).__name__}")


def canonical_manifest(text: str) -> str:
    """Return the canonical serialization of a TOML manifest.

    Raises:
        tomllib.TOMLDecodeError: If the text is not valid TOML
    """
    data = tomllib.loads(text)
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def _sha(data: bytes) -> str:
    return f"{HASH_PREFIX}{hashlib.sha256(data).hexdigest()}"


def hash_manifest(text: str) -> str:
    """Hash a pixi.toml by its canonical form.

    Falls back to hashing the raw bytes when the text does not parse.

    Returns:
        "sha-" followed by 64 lowercase hex chars
    """
    try:
        canonical = canonical_manifest(text)
    except (tomllib.TOMLDecodeError, TypeError):
        return hash_lock(text)
    return _sha(canonical.encode("utf-8"))


def hash_lock(text: str) -> str:
    """Hash a pixi.lock (or any text) by its raw UTF-8 bytes."""
    return _sha(text.encode("utf-8"))


def content_tag(digest: str) -> str:
    """Short content-addressed tag: "sha-" + first 12 hex chars.

    Accepts "sha-<hex>", "sha256:<hex>" or bare hex.
    """
    for prefix in (HASH_PREFIX, "sha256:"):
        if digest.startswith(prefix):
            digest = digest[len(prefix):]
            break
    return f"{HASH_PREFIX}{digest[:CONTENT_TAG_LENGTH]}"


# Names used by the store and elsewhere
toml_content_hash = hash_manifest
content_hash = hash_lock


__all__ = [
    "canonical_manifest",
    "hash_manifest",
    "hash_lock",
    "content_tag",
    "toml_content_hash",
    "content_hash",
]
