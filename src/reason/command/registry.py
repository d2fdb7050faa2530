"""Command registry for the reason shell.

Command handlers are collected in two ways:
1. Decorator registration: `@register_command("name")` on a handler class
   records it in the builtin table when its module is imported.
2. Entry point discovery: installed packages can publish handlers in the
   `reason.commands` entry point group.

Neither of these is consulted while commands run.  build_registry() merges
them once at startup into an immutable CommandRegistry, and that object is
handed to the pipeline executor.
"""

from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Type, Union
import importlib
import logging
from importlib.metadata import entry_points

from reason.command.core import AbstractCommand, ReasonError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "reason.commands"

HandlerSpec = Union[AbstractCommand, Type[AbstractCommand]]

_builtin_commands: Dict[str, Type[AbstractCommand]] = {}


class UnknownCommand(ReasonError):
    """Raised when a command name has no registered handler."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown command '{name}'. Type 'help' for a list of commands.")


def register_command(*names: str):
    """
    Decorator to register a command class under one or more names.

    Usage:
        @register_command("ls")
        class List(AbstractCommand):
            ...

        # Register with multiple names
        @register_command("exit", "quit")
        class Exit(AbstractCommand):
            ...

    Args:
        *names: One or more names to register the command under.
    """
    if not names:
        raise ValueError("At least one name must be provided")

    def wrap(cls):
        for command_name in names:
            existing = _builtin_commands.get(command_name)
            if existing is not None and existing is not cls:
                logger.warning(
                    f"Command '{command_name}' already registered as {existing}. "
                    f"Overwriting with {cls}."
                )
            _builtin_commands[command_name] = cls
            logger.debug(f"Registered '{command_name}' → {cls.__module__}.{cls.__name__}")
        return cls
    return wrap


def builtin_commands() -> Dict[str, Type[AbstractCommand]]:
    """Get a copy of the commands registered through the decorator."""
    return dict(_builtin_commands)


def _instantiate(handler: HandlerSpec) -> AbstractCommand:
    return handler() if isinstance(handler, type) else handler


class CommandRegistry:
    """
    An immutable mapping from command names to handler instances.

    Names are matched exactly and case-sensitively.
    """

    def __init__(self, commands: Mapping[str, HandlerSpec]):
        """
        Args:
            commands: Command names mapped to handler classes or instances.
                Classes are instantiated once, here.
        """
        self._commands = MappingProxyType(
            {name: _instantiate(handler) for name, handler in commands.items()}
        )
        for handler in self._commands.values():
            attach = getattr(handler, "attach", None)
            if attach is not None:
                attach(self)

    def resolve(self, name: str) -> AbstractCommand:
        """
        Get the handler for a command name.

        Raises:
            UnknownCommand: If no handler is registered under the name.
        """
        try:
            return self._commands[name]
        except KeyError:
            raise UnknownCommand(name) from None

    def names(self):
        return sorted(self._commands)

    def items(self):
        return self._commands.items()

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)


def discover_entry_points(group: str = ENTRY_POINT_GROUP) -> Dict[str, object]:
    """Find command entry points published by installed packages.

    This does NOT import the handlers.

    Raises:
        ValueError: If two packages publish a command under the same name.
    """
    seen = {}
    conflicts = []

    for ep in entry_points(group=group):
        if ep.name in seen:
            existing_pkg = getattr(getattr(seen[ep.name], 'dist', None), 'name', 'unknown')
            new_pkg = getattr(getattr(ep, 'dist', None), 'name', 'unknown')
            conflicts.append(
                f"  - Command '{ep.name}' defined by:\n"
                f"      • {seen[ep.name].value} (from package '{existing_pkg}')\n"
                f"      • {ep.value} (from package '{new_pkg}')"
            )
        else:
            seen[ep.name] = ep

    if conflicts:
        raise ValueError(
            f"Entry point name collision detected in group '{group}'.\n"
            f"Multiple packages are trying to register commands with the same name:\n"
            + "\n".join(conflicts)
        )

    logger.debug(f"Discovered {len(seen)} entry points in group '{group}'")
    return seen


def load_plugin_commands(group: str = ENTRY_POINT_GROUP) -> Dict[str, HandlerSpec]:
    """Import the handlers published in an entry point group.

    A plugin that fails to import is logged and skipped.
    """
    loaded = {}
    for name, ep in discover_entry_points(group).items():
        try:
            logger.info(f"Loading command '{name}' from entry point: {ep.value}")
            loaded[name] = ep.load()
        except Exception as e:
            logger.error(f"Failed to load command '{name}' from entry point {ep.value}: {e}",
                         exc_info=True)
    return loaded


def build_registry(extra: Optional[Mapping[str, HandlerSpec]] = None,
                   include_plugins: bool = True) -> CommandRegistry:
    """Assemble the registry used by the shell.

    Later sources override earlier ones: builtins, then plugins, then `extra`.

    Args:
        extra: Additional handlers, mostly useful in tests.
        include_plugins: If False, skip entry point discovery.
    """
    importlib.import_module("reason.commands")

    commands: Dict[str, HandlerSpec] = dict(builtin_commands())
    if include_plugins:
        for name, handler in load_plugin_commands().items():
            if name in commands:
                logger.warning(f"Plugin command '{name}' overrides an existing command.")
            commands[name] = handler
    if extra:
        commands.update(extra)

    logger.debug(f"Built command registry with {len(commands)} commands")
    return CommandRegistry(commands)
