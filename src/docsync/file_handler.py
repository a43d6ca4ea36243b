"""File handler module: encoding-aware reads, JSON settings writes, hashing.

Provides the file I/O used by the assembler, the transports and the
upload passes.  All sync functions are plain blocking I/O; async wrappers
bridge them through run_sync().
"""

import hashlib
import json
from pathlib import Path, PurePosixPath
from typing import Any

from charset_normalizer import from_bytes

from .core.async_utils import run_sync

HASH_PREFIX = "sha256:"

# =============================================================================
# Text Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    # Plain UTF-8 is by far the common case; skip detection for it
    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    return (str(result), result.encoding)


def read_text(path: Path) -> str:
    """Return the decoded text of *path*."""
    content, _ = read_file_with_encoding(path)
    return content


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# JSON
# =============================================================================


def read_json(path: Path) -> Any | None:
    """Parse a JSON file, or return None when it is missing or invalid."""
    try:
        return json.loads(read_text(path))
    except (OSError, ValueError):
        return None


def write_json(path: Path, data: Any) -> int:
    """Write *data* as two-space-indented JSON with a trailing newline."""
    return write_file(path, json.dumps(data, indent=2) + "\n")


# =============================================================================
# Hashing and listings
# =============================================================================


def bytes_hash(data: bytes) -> str:
    """Return ``sha256:<hex>`` for *data*."""
    return HASH_PREFIX + hashlib.sha256(data).hexdigest()


def file_hash(path: Path) -> str:
    """Return ``sha256:<hex>`` for the file at *path*."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return HASH_PREFIX + digest.hexdigest()


def is_plain_file_name(name: str) -> bool:
    """True when *name* is a single path segment that stays inside its folder."""
    if not name or name == ".." or "\\" in name:
        return False
    return PurePosixPath(name).name == name


def list_upload_files(directory: Path) -> list[str]:
    """Return the sorted names of regular, non-hidden files in *directory*.

    A missing directory yields an empty list.
    """
    if not directory.is_dir():
        return []
    return sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and not entry.name.startswith(".")
    )


# =============================================================================
# Async Wrappers
# =============================================================================


async def file_hash_async(path: Path) -> str:
    """Async wrapper around file_hash()."""
    return await run_sync(file_hash, path)
