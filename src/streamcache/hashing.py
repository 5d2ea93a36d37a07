"""Key hashing for cache file names.

Cache entries live in a flat directory, one file per key.  Keys are
arbitrary strings (URLs, ``user:42``, paths with slashes), so they are
never used as file names directly.  Instead each key is encoded as UTF-8
and run through a cryptographic digest; the lowercase hex digest becomes
the file name.  The result has a fixed length for a given algorithm and
only contains ``[0-9a-f]``, which is safe on every filesystem.

SHA-1 is the default because existing cache directories are named with
it.  Any fixed-length algorithm from :mod:`hashlib` can be configured via
:attr:`~streamcache.models.CacheConfig.hash_algorithm`.
"""

from __future__ import annotations

import hashlib

from streamcache.exceptions import HashingUnavailableError

DEFAULT_ALGORITHM = "sha1"


def _new_digest(algorithm: str) -> "hashlib._Hash":
    try:
        return hashlib.new(algorithm)
    except (ValueError, TypeError) as exc:
        raise HashingUnavailableError(
            f"Hash algorithm '{algorithm}' is not available: {exc}"
        ) from exc


def hash_key(key: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Return the hex digest naming the cache file for *key*.

    Args:
        key: The caller's cache key.  Any string is accepted.
        algorithm: A :mod:`hashlib` algorithm name.

    Returns:
        A lowercase hexadecimal string of fixed length.

    Raises:
        HashingUnavailableError: If *algorithm* is unknown to this
            interpreter or does not produce a fixed-length digest.
    """
    digest = _new_digest(algorithm)
    digest.update(key.encode("utf-8"))
    try:
        return digest.hexdigest()
    except TypeError as exc:
        # Variable-length digests (shake_*) need an explicit length.
        raise HashingUnavailableError(
            f"Hash algorithm '{algorithm}' does not have a fixed digest length"
        ) from exc


class KeyHasher:
    """A hash function bound to one algorithm.

    The algorithm is checked once at construction so that a misconfigured
    store fails immediately rather than on the first lookup.

    Args:
        algorithm: A :mod:`hashlib` algorithm name (default ``sha1``).

    Raises:
        HashingUnavailableError: If the algorithm cannot be used.

    Example::

        hasher = KeyHasher()
        hasher("user:42")  # '5d6b...'
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        self._algorithm = algorithm
        self._length = len(hash_key("", algorithm))

    @property
    def algorithm(self) -> str:
        """The :mod:`hashlib` algorithm name."""
        return self._algorithm

    @property
    def digest_length(self) -> int:
        """Number of hex characters every hashed key has."""
        return self._length

    def __call__(self, key: str) -> str:
        return hash_key(key, self._algorithm)

    def __repr__(self) -> str:
        return f"KeyHasher(algorithm={self._algorithm!r})"
