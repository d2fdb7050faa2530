"""Core definitions for reason commands.

This module contains the shapes that flow between chained commands (the
input envelope and the output variants), the abstract base class that every
command handler implements, and the exceptions that handlers raise.
A handler is written without knowing its position in a chain: it always
receives its own argument tokens and, unless it is the first stage, the
output of the stage before it.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import (
    Annotated, Any, Callable, ClassVar, Iterator, Optional, Sequence, Tuple, Type, TYPE_CHECKING
)

if TYPE_CHECKING:
    from reason.data.store import PaperStore
    from reason.util.config import ShellConfig

logger = logging.getLogger(__name__)


class ReasonError(Exception):
    """Base class for failures that are shown to the user without ending the shell."""


class CommandError(ReasonError):
    """Raised by a command handler when it cannot complete its work."""


class CommandUsageError(CommandError):
    """Raised when a command is given arguments it cannot interpret."""


class ExitRequested(Exception):
    """Raised when the user asks the shell to terminate.

    This is not a ReasonError.  The shell loop prints and continues on every
    ReasonError, and stops on this.
    """


class CommandOutput:
    """Base class for the closed set of values a command can produce."""

    kind: ClassVar[str] = "output"
    """Human readable name of the variant, used in error messages."""


@dataclass(frozen=True)
class NoOutput(CommandOutput):
    """Nothing to pass on or display (blank line, comment, silent success)."""

    kind: ClassVar[str] = "no output"


@dataclass(frozen=True)
class PaperList(CommandOutput):
    """References to papers in the store, as store indices in display order."""

    indices: Tuple[int, ...] = ()
    kind: ClassVar[str] = "a paper list"

    def __post_init__(self):
        object.__setattr__(self, "indices", tuple(self.indices))

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __len__(self) -> int:
        return len(self.indices)


@dataclass(frozen=True)
class Message(CommandOutput):
    """A string meant for display."""

    text: str
    kind: ClassVar[str] = "a message"


class IncompatibleInput(CommandError):
    """Raised when a command receives prior output of a kind it does not accept."""

    def __init__(self, command: str, received: CommandOutput):
        self.command = command
        self.received = received
        super().__init__(f"'{command}' cannot take {received.kind} as input.")


@dataclass(frozen=True)
class CommandInput:
    """The input envelope handed to a command for one invocation."""

    args: Tuple[str, ...]
    """The tokens of this stage.  The first token is the command's own name."""
    prior: Optional[CommandOutput] = None
    """Output of the previous stage, or None for the first stage of a chain."""

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def name(self) -> str:
        return self.args[0] if self.args else ""

    @property
    def params(self) -> Tuple[str, ...]:
        """The argument tokens after the command name."""
        return self.args[1:]

    @property
    def is_first(self) -> bool:
        return self.prior is None


class AbstractCommand(ABC):
    """Abstract base class for all command handlers.

    Subclasses implement execute().  Instances are called by the pipeline
    executor through __call__, which checks the prior output against
    `accepts` before delegating, so execute() only ever sees a prior output
    of an accepted kind (or None).

    Attributes:
        accepts: Output classes this command accepts as prior output.
    """

    accepts: Tuple[Type[CommandOutput], ...] = (CommandOutput,)

    @abstractmethod
    def execute(self,
                input: Annotated[CommandInput, "The tokens and prior output for this stage"],
                store: Annotated["PaperStore", "The record store, mutable for the call only"],
                config: Annotated["ShellConfig", "Read-only shell configuration"]) -> Optional[CommandOutput]:
        """Run the command.

        Returns:
            The output envelope.  Returning None is the same as NoOutput().

        Raises:
            CommandError: If the command cannot complete.  Any store changes made
                before raising are kept; nothing is rolled back.
        """

    def attach(self, registry: Any) -> None:
        """Called once by the CommandRegistry that holds this handler."""

    @property
    def summary(self) -> str:
        """First line of the handler's docstring, used by help listings."""
        doc = (self.__class__.__doc__ or "").strip()
        return doc.splitlines()[0] if doc else ""

    def __call__(self, input: CommandInput, store: "PaperStore", config: "ShellConfig") -> CommandOutput:
        logger.debug(f"Running command {self.__class__.__name__} with args {input.args}")
        if input.prior is not None and not isinstance(input.prior, self.accepts):
            raise IncompatibleInput(input.name, input.prior)
        result = self.execute(input, store, config)
        return NoOutput() if result is None else result


def command(*decorator_args: Annotated[Any, "The function to wrap, when used without parentheses"],
            accepts: Annotated[Optional[Sequence[Type[CommandOutput]]], "Output classes accepted as prior output"] = None):
    """Decorator to convert a function into a command class.

    The function receives the same arguments as AbstractCommand.execute.

    Usage:
        @command
        def hello(input, store, config):
            return Message("hello")

        @command(accepts=[PaperList])
        def count(input, store, config):
            return Message(str(len(input.prior or store.indices())))

    Returns:
        A command class.  The class keeps the function's docstring so help
        listings can show it.
    """
    def decorator(func: Callable[..., Optional[CommandOutput]]) -> Type[AbstractCommand]:
        class FunctionCommand(AbstractCommand):
            def execute(self, input, store, config):
                return func(input, store, config)

        if accepts is not None:
            FunctionCommand.accepts = tuple(accepts)
        FunctionCommand.__name__ = f"{func.__name__}Command"
        FunctionCommand.__qualname__ = FunctionCommand.__name__
        FunctionCommand.__doc__ = func.__doc__
        return FunctionCommand

    if len(decorator_args) == 1 and callable(decorator_args[0]):
        return decorator(decorator_args[0])
    return decorator
