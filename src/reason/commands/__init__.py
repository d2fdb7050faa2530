"""Builtin commands.  Importing this package registers them."""
from reason.commands import papers, system
