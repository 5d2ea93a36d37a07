"""Built-in CLI sub-commands for streamcache.

* :mod:`~streamcache.commands.entries` -- read, write, check, and delete
  cache entries (``get``, ``put``, ``has``, ``delete``, ``clear``,
  ``where``, ``hash``).
* :mod:`~streamcache.commands.config` -- view and modify global settings.

Single commands are plain callback functions registered directly on the
root app; multi-command groups export a :class:`typer.Typer` sub-application.
"""
