"""Ready-made refill producers.

A refill producer is any callable taking the target cache path and
returning a readable binary stream, or ``None`` when no replacement
content is available.  The helpers here cover the common sources:
in-memory bytes, a local file, and an HTTP URL fetched with
:mod:`httpx`.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional

import httpx

from streamcache.cache.store import RefillProducer

logger = logging.getLogger(__name__)


def none_producer(target: Path) -> None:
    """A producer that never has replacement content."""
    return None


def bytes_producer(data: bytes) -> RefillProducer:
    """Return a producer that yields *data* every time it is called."""

    def _produce(target: Path) -> BinaryIO:
        return io.BytesIO(data)

    return _produce


def file_producer(source: str | Path) -> RefillProducer:
    """Return a producer that streams the file at *source*.

    Yields ``None`` if the file is missing or unreadable.
    """
    source_path = Path(source)

    def _produce(target: Path) -> Optional[BinaryIO]:
        try:
            return open(source_path, "rb")
        except OSError as exc:
            logger.debug("Cannot read refill source %s: %s", source_path, exc)
            return None

    return _produce


class _ResponseStream(io.RawIOBase):
    """Read-only view over a streamed :class:`httpx.Response` body.

    The body is pulled from the network one chunk at a time as the cache
    copies it.  Closing the stream closes the response, and the client
    too when the producer created it.
    """

    def __init__(
        self,
        response: httpx.Response,
        chunk_size: int,
        owned_client: Optional[httpx.Client] = None,
    ) -> None:
        self._response = response
        self._owned_client = owned_client
        self._chunks = response.iter_bytes(chunk_size)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                chunk = next(self._chunks, None)
            except httpx.HTTPError as exc:
                # Surfaces as a write failure in CacheStore.put.
                raise OSError(f"Download of {self._response.url} failed: {exc}") from exc
            if chunk is None:
                return 0
            self._pending = chunk
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if not self.closed:
            try:
                self._response.close()
            finally:
                if self._owned_client is not None:
                    self._owned_client.close()
        super().close()


def url_producer(
    url: str,
    *,
    timeout: float = 30.0,
    headers: Optional[dict[str, str]] = None,
    client: Optional[httpx.Client] = None,
    chunk_size: int = 8192,
) -> RefillProducer:
    """Return a producer that downloads *url* with a blocking, streamed GET.

    Only 2xx responses produce content; any other status, and any
    network-level :class:`httpx.HTTPError`, yields ``None`` so the caller
    sees an ordinary cache miss.  The body is not buffered in memory: the
    returned stream reads it from the connection while the cache writes
    it to disk.

    Args:
        url: Absolute URL to fetch.
        timeout: Request timeout in seconds.  Ignored when *client* is given.
        headers: Extra request headers.
        client: An existing :class:`httpx.Client` to reuse.  It is not closed.
        chunk_size: Size of the chunks pulled from the response body.
    """

    def _fetch(http: httpx.Client, owned: bool) -> Optional[BinaryIO]:
        request = http.build_request("GET", url, headers=headers)
        try:
            response = http.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.warning("Refill request to %s failed: %s", url, exc)
            return None
        if not response.is_success:
            logger.warning("Refill request to %s returned HTTP %d", url, response.status_code)
            response.close()
            return None
        return _ResponseStream(response, chunk_size, owned_client=http if owned else None)

    def _produce(target: Path) -> Optional[BinaryIO]:
        logger.debug("Fetching %s to refill %s", url, target.name)
        if client is not None:
            return _fetch(client, owned=False)
        http = httpx.Client(timeout=timeout, follow_redirects=True)
        try:
            stream = _fetch(http, owned=True)
        except BaseException:
            http.close()
            raise
        if stream is None:
            http.close()
        return stream

    return _produce
