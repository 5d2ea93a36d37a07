"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~streamcache.exceptions.StreamCacheError` subclass.
Shell wrappers can inspect the exit code to tell a cache miss apart from
a broken cache location without parsing stderr.

Example::

    $ streamcache has user:42 --max-age 5
    $ echo $?
    4   # EXIT_NOT_FOUND -- no fresh entry for the key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""No fresh entry exists and no replacement content could be produced."""

EXIT_WRITE_FAILURE = 5
"""Content could not be written to, or published in, the cache root."""

EXIT_NO_CACHE_LOCATION = 6
"""No usable cache root could be resolved or created."""

EXIT_HASHING_UNAVAILABLE = 7
"""The configured digest algorithm is not available on this interpreter."""
