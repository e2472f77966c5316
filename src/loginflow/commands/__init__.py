"""Built-in CLI commands for loginflow.

- :mod:`loginflow.commands.session` -- ``mode``, ``status``, ``login``,
  ``users``, ``redirect``, ``logout``.
- :mod:`loginflow.commands.config` -- the ``config`` sub-command group.
"""
