"""Transient gzip artifacts for compressed uploads."""
from __future__ import annotations

import gzip
import shutil
import uuid
from pathlib import Path

import aiofiles.os
import anyio

from core.logging_config import get_logger

logger = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024


class CompressionError(Exception):
    """Compressing a build file failed."""


def compressed_path_for(source: Path, suffix: str = ".gz") -> Path:
    """Sibling path for the compressed copy; never clobbers an existing file."""
    target = source.with_name(f"{source.name}{suffix}")
    if target.exists():
        target = source.with_name(f"{source.name}.{uuid.uuid4().hex[:8]}{suffix}")
    return target


def _gzip_copy(source: Path, target: Path, level: int) -> None:
    # mtime=0 and an empty header filename keep the output deterministic
    with open(source, "rb") as src, open(target, "wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw, compresslevel=level, mtime=0) as dst:
            shutil.copyfileobj(src, dst, _CHUNK_SIZE)
        raw.flush()


async def gzip_file(source: Path, level: int = 9, suffix: str = ".gz") -> Path:
    """Compress ``source`` into a sibling file and return its path.

    The input is fully consumed and the output flushed and closed before
    returning. On failure the partial output is removed before raising.
    """
    target = compressed_path_for(source, suffix)
    try:
        await anyio.to_thread.run_sync(_gzip_copy, source, target, level)
    except OSError as exc:
        await discard(target)
        raise CompressionError(f"Failed to gzip file {source}: {exc}") from exc
    return target


async def discard(path: Path) -> None:
    """Remove a transient artifact if it is still there."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("temp_file_cleanup_failed", path=str(path), error=str(exc))
