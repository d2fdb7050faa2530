""" Pipeline executor for tokenized command lines

The executor takes a chain produced by the tokenizer, checks that it is well formed,
resolves every command name against a CommandRegistry and runs the handlers in order,
passing each handler's output to the next as its prior output.
"""

from typing import TYPE_CHECKING
import logging
from reason.command.core import CommandInput, CommandOutput, NoOutput, ReasonError
from reason.command.parsers import Chain, COMMENT_MARKER, is_empty_segment
from reason.command.registry import CommandRegistry

if TYPE_CHECKING:
    from reason.data.store import PaperStore
    from reason.util.config import ShellConfig

logger = logging.getLogger(__name__)

LEADING_PIPE = "Command cannot begin with a pipe."
TRAILING_PIPE = "Command cannot end with a pipe."
REPEATED_PIPE = "Commands can only be chained with one pipe character."


class InvalidChain(ReasonError):
    """ Exception raised when the pipe structure of a command line is malformed """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def validate_chain(chain: Chain) -> None:
    """ Check that no segment of a multi-command chain is empty

    Raises:
        InvalidChain: naming where the empty segment is (start, end or middle).
    """
    last = len(chain) - 1
    for index, tokens in enumerate(chain):
        if not is_empty_segment(tokens):
            continue
        if index == 0:
            raise InvalidChain(LEADING_PIPE)
        if index == last:
            raise InvalidChain(TRAILING_PIPE)
        raise InvalidChain(REPEATED_PIPE)


def is_comment(chain: Chain) -> bool:
    return bool(chain) and bool(chain[0]) and chain[0][0] == COMMENT_MARKER


class PipelineExecutor:
    """ Runs chains against a fixed set of command handlers """

    def __init__(self, registry: CommandRegistry):
        self.registry = registry

    def run(self, chain: Chain, store: "PaperStore", config: "ShellConfig") -> CommandOutput:
        """ Execute a chain and return the output of its last stage

        Handlers run one at a time, in order.  The first failure is raised unchanged and
        no later stage runs.  Changes made to the store by stages that finished before
        the failure are kept.

        Args:
            chain: Segments produced by reason.command.parsers.tokenize.
            store: The paper store handed to each handler in turn.
            config: Shell configuration passed through to handlers.

        Raises:
            InvalidChain: If a chain of two or more commands has an empty segment.
            UnknownCommand: If any command name is not registered.
            CommandError: If a handler fails.
            ExitRequested: If a handler asks the shell to exit.
        """
        if not chain or is_comment(chain):
            return NoOutput()

        if len(chain) == 1:
            tokens = chain[0]
            if is_empty_segment(tokens):
                return NoOutput()
            handler = self.registry.resolve(tokens[0])
            return handler(CommandInput(tokens), store, config)

        validate_chain(chain)
        # Every name is resolved before the first handler runs.
        handlers = [self.registry.resolve(tokens[0]) for tokens in chain]

        result = None
        for index, (tokens, handler) in enumerate(zip(chain, handlers)):
            logger.debug(f"Running stage {index} of {len(chain)}: {tokens[0]}")
            result = handler(CommandInput(tokens, prior=result), store, config)
        logger.debug(f"Finished chain of {len(chain)} commands")
        return result
