from reason.command.core import (
    AbstractCommand, command, CommandInput, CommandOutput, NoOutput, PaperList, Message,
    ReasonError, CommandError, CommandUsageError, IncompatibleInput, ExitRequested,
)
from reason.command.parsers import tokenize
from reason.command.registry import CommandRegistry, UnknownCommand, register_command, build_registry
from reason.command.executor import PipelineExecutor, InvalidChain
