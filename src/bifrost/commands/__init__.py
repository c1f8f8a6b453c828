"""Built-in CLI sub-commands for bifrost.

* :mod:`~bifrost.commands.get` -- read an endpoint through the caching
  repository.
* :mod:`~bifrost.commands.cache` -- inspect and invalidate the on-disk cache.
* :mod:`~bifrost.commands.config` -- view and modify global settings.
* :mod:`~bifrost.commands.profile` -- manage API profiles.

Multi-command groups export a :class:`typer.Typer` sub-application; ``get``
exports a plain callback registered directly on the root app.
"""
