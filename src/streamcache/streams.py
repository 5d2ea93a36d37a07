"""Byte-stream helpers used when filling the cache.

Content is always moved in fixed-size chunks so that memory use stays
bounded no matter how large the producer's payload is.
"""

from __future__ import annotations

from typing import BinaryIO, Optional

DEFAULT_CHUNK_SIZE = 8192


def copy_stream(source: BinaryIO, dest: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Copy everything from *source* to *dest* in chunks.

    Neither stream is closed; the caller owns both.

    Args:
        source: Readable binary stream.
        dest: Writable binary stream.
        chunk_size: Maximum number of bytes read per iteration.

    Returns:
        The total number of bytes written.

    Raises:
        ValueError: If *chunk_size* is not positive.
        OSError: Propagated from either stream.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    total = 0
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        dest.write(chunk)
        total += len(chunk)
    return total


def read_text(stream: Optional[BinaryIO], encoding: str = "utf-8") -> str:
    """Drain *stream* into a string and close it.

    Args:
        stream: A readable binary stream, or ``None``.
        encoding: Text encoding used to decode the bytes.

    Returns:
        The decoded content, or ``""`` when *stream* is ``None``.
    """
    if stream is None:
        return ""
    with stream:
        return stream.read().decode(encoding)
