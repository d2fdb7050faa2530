from typing import Optional
import importlib.util
import logging
import os
import sys
import tomllib
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Mapping
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reason.command.core import ReasonError

logger = logging.getLogger(__name__)

_config = None

DEFAULT_CONFIG_PATH = "~/.reason.toml"
ENV_PREFIX = "REASON_"


class ConfigError(ReasonError):
    """Raised when configuration values cannot be turned into a ShellConfig."""


def parse_key_value_str(field_list: str, require_value: bool = False) -> Dict[str, str]:
    """Parse a property assignment list into a dictionary.

    Args:
        field_list (str): A comma-separated string of key-value pairs in the format "key:value,key:value".
        require_value (bool, optional): If True, raises a ValueError when a key is missing a value.

    Returns:
        Dict[str, str]: A dictionary where keys are property names and values are assigned values.
            A key without a value maps to the last dotted component of the key.

    Raises:
        ValueError: If require_value is True and a key is missing a value.
    """
    result = {}
    for property in field_list.split(","):
        key, *value = property.split(":", 1)
        key = key.strip()
        value = value[0].strip() if len(value) > 0 else None

        if value is None:
            if require_value:
                raise ValueError(f"Value required for property '{key}'")
            value = key.rsplit(".", 1)[-1]

        result[key] = value

    return result


def reset_config():
    """Reset the configuration to None.

    This forces the next call to get_config() to reload configuration from
    disk and environment variables.
    """
    global _config
    _config = None


def get_config(reload=False, path=DEFAULT_CONFIG_PATH, ignore_env=False):
    """Get the configuration from the config file and environment variables.

    Args:
        reload (bool, optional): Force reload config from disk. Defaults to False.
        path (str, optional): Path to config file. Defaults to "~/.reason.toml".
        ignore_env (bool, optional): If True, REASON_ environment variables are not read.

    Returns:
        dict: Configuration dictionary combining file and environment settings.

    Notes:
        - Environment variables prefixed with 'REASON_' take precedence over the file
        - If the config file doesn't exist, only environment variables are used
        - Configuration is cached after first load unless reload=True
    """
    global _config
    if _config is None or reload:
        logger.debug("Loading configuration")
        config_path = os.path.expanduser(path)
        if os.path.exists(config_path):
            logger.info(f"Reading config from {config_path}")
            try:
                with open(config_path, 'rb') as f:
                    _config = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Malformed config file {config_path}: {e}") from e
            logger.debug(f"Loaded config: {_config}")
        else:
            logger.warning(f"Config file {config_path} not found, using defaults")
            _config = {}

        if not ignore_env:
            for env_var in os.environ:
                if env_var.startswith(ENV_PREFIX):
                    config_key = env_var[len(ENV_PREFIX):].lower()
                    _config[config_key] = os.environ[env_var]
                    logger.debug(f"Set {config_key} from environment variable {env_var}")

    return _config


class ShellConfig(BaseModel):
    """Typed, read-only view of the configuration handed to commands."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    state_path: str = "~/.local/share/reason/state.yaml"
    history_path: str = "~/.local/share/reason/history"
    prompt: str = ">> "
    max_title_width: int = Field(default=60, gt=0)
    max_author_count: int = Field(default=3, gt=0)
    editor: Optional[str] = None

    @property
    def expanded_state_path(self) -> str:
        return os.path.expanduser(self.state_path)

    @property
    def expanded_history_path(self) -> str:
        return os.path.expanduser(self.history_path)


def load_shell_config(overrides: Optional[Mapping[str, Any]] = None, **config_kwargs) -> ShellConfig:
    """Build a ShellConfig from get_config() and explicit overrides.

    Args:
        overrides: Values that win over the file and environment, such as
            command line flags.  None values are skipped.
        **config_kwargs: Passed to get_config().

    Raises:
        ConfigError: If a value has the wrong type or range.
    """
    values = dict(get_config(**config_kwargs))
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ShellConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def configure_logger(logger_levels: Optional[str] = None, base_level="WARNING", logger_files: Optional[str] = None):
    """Configure logging levels for specified loggers.

    Args:
        logger_levels (str): A string containing logger name and level pairs in the format
            "logger1:LEVEL1,logger2:LEVEL2". Use "root" as logger name for root logger.
            Valid levels are DEBUG, INFO, WARNING, ERROR, CRITICAL.
        base_level (str, optional): Default logging level. Defaults to "WARNING".
        logger_files (str, optional): A string mapping loggers to file paths in "logger:path" format.

    Examples:
        >>> configure_logger("root:INFO,reason.command:DEBUG")

    Note:
        - Each logger gets a StreamHandler with formatted output
        - Format: '%(asctime)s - %(levelname)s:%(name)s:%(message)s'
        - Levels are converted to uppercase automatically

    Raises:
        ConfigError: If a logger has no level or an unknown level.
    """

    if not logger_levels:
        logger_levels = get_config().get("logger_levels", None)

    if not logger_files:
        logger_files = get_config().get("logger_files", None)

    logging.basicConfig(level=base_level.upper())

    formatter = logging.Formatter('%(asctime)s - %(levelname)s:%(name)s:%(message)s')

    if logger_levels:
        try:
            levels = parse_key_value_str(logger_levels, require_value=True)
        except ValueError as e:
            raise ConfigError(f"Invalid logger levels '{logger_levels}': {e}") from e
        for logger_name, level in levels.items():
            level = level.upper()
            configured = logging.getLogger(logger_name if logger_name != "root" else None)
            try:
                configured.setLevel(level)
            except ValueError as e:
                raise ConfigError(f"Invalid level for logger '{logger_name}': {e}") from e

            # Remove existing handlers to prevent duplicate logs
            configured.handlers.clear()

            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            configured.addHandler(console_handler)

    if logger_files:
        for logger_name, file_name in parse_key_value_str(logger_files, require_value=True).items():
            configured = logging.getLogger(logger_name if logger_name != "root" else None)

            file_handler = TimedRotatingFileHandler(os.path.expanduser(file_name), when='midnight', backupCount=7)
            file_handler.setLevel(configured.level or base_level.upper())
            file_handler.setFormatter(formatter)
            configured.addHandler(file_handler)


def load_module_file(fname: str, fail_on_missing=False) -> Optional[Any]:
    """
    Load a Python module that defines extra commands.
    Supports ~ notation for home directory.

    Commands in the module register themselves with @register_command when
    it is executed, so it must be loaded before the registry is built.

    Args:
        fname: Path to the module file (absolute, relative, or with ~)
        fail_on_missing: If True, a missing file is an error instead of a warning.

    Returns:
        Module object containing the module, or None if the file does not exist

    Raises:
        ImportError: If there are issues importing the module
        FileNotFoundError: If the module file doesn't exist and fail_on_missing is True
    """
    module_path = os.path.abspath(os.path.expanduser(fname))

    if not os.path.exists(module_path):
        logger.warning(f"Custom module file not found: {module_path}")
        if fail_on_missing:
            raise FileNotFoundError(f"Custom module file not found: {module_path}")
        return None

    module_dir = os.path.dirname(module_path)
    module_name = f"reason_custom_{os.path.splitext(os.path.basename(module_path))[0]}"

    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load custom module from {module_path}")

    module = importlib.util.module_from_spec(spec)

    # The module's own directory is importable only while it executes
    sys.path.insert(0, module_dir)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ImportError(f"Error loading module file: {str(e)}") from e
    finally:
        sys.path.remove(module_dir)
    logger.info(f"Loaded custom module {module_path}")
    return module
