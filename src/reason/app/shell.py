"""The interactive reason shell.

Reads lines with prompt_toolkit, runs each through the tokenizer and the
pipeline executor, prints the rendered result and saves the paper store
whenever a command changed it.
"""
from typing import Optional
import argparse
import logging
import os
import sys
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

from reason.app.render import render
from reason.command.core import ExitRequested, ReasonError
from reason.command.executor import PipelineExecutor
from reason.command.parsers import tokenize
from reason.command.registry import CommandRegistry, build_registry
from reason.data.store import PaperStore, StoreError
from reason.util import config
from reason.util.config import ShellConfig, load_module_file, load_shell_config

logger = logging.getLogger(__name__)


class App:
    """Holds the store, configuration and executor for one shell session."""

    def __init__(self,
                 store: PaperStore,
                 shell_config: ShellConfig,
                 registry: CommandRegistry,
                 state_path: Optional[str] = None):
        """
        Args:
            store: The paper store commands operate on.
            shell_config: Configuration handed to every command.
            registry: The commands available in this session.
            state_path: Where to save the store after it changes.  If None,
                changes are kept in memory only.
        """
        self.store = store
        self.config = shell_config
        self.executor = PipelineExecutor(registry)
        self.state_path = state_path

    @classmethod
    def from_config(cls, shell_config: ShellConfig, registry: CommandRegistry) -> "App":
        """Create an App whose store is loaded from and saved to shell_config.state_path."""
        state_path = shell_config.expanded_state_path
        return cls(PaperStore.load(state_path), shell_config, registry, state_path=state_path)

    def execute(self, line: str) -> str:
        """Run one line entered by the user and return the text to display.

        The store is saved if it changed, even when a later stage of the
        line failed.  A save failure after a failed command is logged and the
        command's error is raised.

        Raises:
            ReasonError: If the line is malformed or a command fails.
            StoreError: If the store cannot be saved after a successful line.
            ExitRequested: If a command asked the shell to exit.
        """
        chain = tokenize(line)
        logger.debug(f"Tokenized {line!r} into {chain}")
        try:
            output = self.executor.run(chain, self.store, self.config)
        except Exception:
            # The command's own error is the one raised.
            try:
                self.save_if_dirty()
            except StoreError as e:
                logger.error(f"Could not save the store after a failed command: {e}")
            raise
        self.save_if_dirty()
        return render(output, self.store, self.config)

    def save_if_dirty(self) -> None:
        if self.state_path and self.store.dirty:
            self.store.save(self.state_path)


def make_session(shell_config: ShellConfig) -> PromptSession:
    history_path = shell_config.expanded_history_path
    history_dir = os.path.dirname(history_path)
    if history_dir:
        os.makedirs(history_dir, exist_ok=True)
    return PromptSession(history=FileHistory(history_path))


def run_interactive(app: App, session: Optional[PromptSession] = None) -> int:
    """Prompt for lines until EOF or an exit command.

    Errors are printed and the loop continues.

    Returns:
        The process exit status.
    """
    session = session or make_session(app.config)
    while True:
        try:
            line = session.prompt(app.config.prompt)
        except KeyboardInterrupt:
            continue
        except EOFError:
            break

        try:
            text = app.execute(line)
        except ExitRequested:
            break
        except ReasonError as e:
            print(f"Error: {e}")
            continue
        except Exception as e:
            logger.exception(f"Unexpected failure running {line!r}")
            print(f"Error: {e}")
            continue

        if text:
            print(text)
    return 0


def run_once(app: App, line: str) -> int:
    """Run a single line non-interactively and return the exit status."""
    try:
        text = app.execute(line)
    except ExitRequested:
        return 0
    except ReasonError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if text:
        print(text)
    return 0


def main(argv=None) -> int:
    """Start the reason shell.

    Command Line Arguments:
        --config: Path to the TOML configuration file (default ~/.reason.toml)
        --state-path: Path to the paper store, overriding the configuration
        -c/--command: Run one command line and exit instead of prompting
        --load-module: Path(s) to module file(s) defining extra commands (can be given multiple times)
        --logger_levels: Logger levels in format 'logger:level,logger:level,...'
        --logger_files: Logger files in format 'logger:file,logger:file,...'

    Returns:
        The process exit status.
    """
    parser = argparse.ArgumentParser(description='Manage a collection of papers from an interactive shell.')
    parser.add_argument("--config", type=str, default=config.DEFAULT_CONFIG_PATH, help="Path to the configuration file.")
    parser.add_argument("--state-path", type=str, default=None, help="Path to the paper store file.")
    parser.add_argument("-c", "--command", type=str, default=None, help="Run this command line and exit.")
    parser.add_argument("--load-module", action='append', default=[], type=str, help="Path to a module file that defines extra commands.")
    parser.add_argument("--logger_levels", type=str, help="Logger levels in format 'logger:level,logger:level,...'")
    parser.add_argument("--logger_files", type=str, help="Logger files in format 'logger:file,logger:file,...'")
    args = parser.parse_args(argv)

    try:
        config.get_config(reload=True, path=args.config)
        config.configure_logger(args.logger_levels, logger_files=args.logger_files)
        shell_config = load_shell_config({"state_path": args.state_path})
        for module_file in args.load_module:
            load_module_file(fname=module_file, fail_on_missing=False)
        app = App.from_config(shell_config, build_registry())
    except ReasonError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command is not None:
        return run_once(app, args.command)
    return run_interactive(app)


if __name__ == '__main__':
    sys.exit(main())
