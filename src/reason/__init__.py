from reason.command import (
    AbstractCommand, command, CommandInput, CommandOutput, NoOutput, PaperList, Message,
    ReasonError, CommandError, CommandUsageError, IncompatibleInput, ExitRequested,
    tokenize, CommandRegistry, UnknownCommand, register_command, build_registry,
    PipelineExecutor, InvalidChain,
)
from reason.data import Paper, PaperStore, StoreError