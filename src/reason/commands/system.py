"""Commands that control the shell itself."""
import logging

from reason.command.core import AbstractCommand, ExitRequested, Message
from reason.command.registry import register_command

logger = logging.getLogger(__name__)


@register_command("help", "man")
class Help(AbstractCommand):
    """List the available commands."""

    def __init__(self):
        self.registry = None

    def attach(self, registry):
        self.registry = registry

    def execute(self, input, store, config):
        if self.registry is None:
            return Message("No commands are registered.")
        names = self.registry.names()
        width = max(len(name) for name in names)
        lines = [f"{name.ljust(width)}  {self.registry.resolve(name).summary}" for name in names]
        return Message("\n".join(lines))


@register_command("exit", "quit")
class Exit(AbstractCommand):
    """Leave the shell."""

    def execute(self, input, store, config):
        logger.debug("Exit requested")
        raise ExitRequested()
