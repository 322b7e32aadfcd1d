import argparse
import logging
import os
import sys
from typing import (
    NoReturn,
    Optional,
    Tuple,
    Any,
)

import colorlog

COLORS_ENV_VAR = "MOCK_INSTALLER_COLORS"
DEBUG_ENV_VAR = "MOCK_INSTALLER_DEBUG"
LIBRARY_LOGGER_NAME = "mock_installer"

_DEFAULT_LOGGER: Optional[logging.Logger] = None
_STDOUT_HANDLER: Optional[logging.StreamHandler] = None
_STDERR_HANDLER: Optional[logging.StreamHandler] = None
_LOGGING_SET_UP = False


def _logger() -> logging.Logger:
    logger = _DEFAULT_LOGGER
    if logger is None:
        # Library use (e.g., from a test suite) before any CLI set up logging
        logger = logging.getLogger(LIBRARY_LOGGER_NAME)
    return logger


def _is_debug_log_enabled() -> bool:
    return _logger().isEnabledFor(logging.DEBUG)


def _debug_log(msg: str) -> None:
    _logger().debug(msg)


def _info(msg: str) -> None:
    _logger().info(msg)


def _error(msg: str, *, prog: Optional[str] = None) -> "NoReturn":
    global _DEFAULT_LOGGER
    logger = _DEFAULT_LOGGER
    if logger:
        logger.error(msg)
    else:
        me = os.path.basename(sys.argv[0]) if prog is None else prog
        print(
            f"{me}: error: {msg}",
            file=sys.stderr,
        )
    sys.exit(1)


def _warn(msg: str) -> None:
    _logger().warning(msg)


class ColorizedArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        _error(message, prog=self.prog)


def ensure_dir(path: str) -> None:
    if not os.path.isdir(path):
        os.makedirs(path, mode=0o755, exist_ok=True)


def _check_color() -> Tuple[bool, bool, Optional[str]]:
    default = "never" if "NO_COLOR" in os.environ else "auto"
    requested_color = os.environ.get(COLORS_ENV_VAR, default)
    bad_request = None
    if requested_color not in {"auto", "always", "never"}:
        bad_request = requested_color
        requested_color = "auto"

    if requested_color == "auto":
        stdout_color = sys.stdout.isatty()
        stderr_color = sys.stderr.isatty()
    else:
        enable = requested_color == "always"
        stdout_color = enable
        stderr_color = enable
    return stdout_color, stderr_color, bad_request


def _debug_requested() -> bool:
    value = os.environ.get(DEBUG_ENV_VAR, "")
    return value not in ("", "0")


def program_name() -> str:
    name = os.path.basename(sys.argv[0])
    if name.endswith(".py"):
        name = name[:-3]
    if name == "__main__":
        name = os.path.basename(os.path.dirname(sys.argv[0]))
    if name in ("", "mock_installer_cmd"):
        name = "mock-installer"
    return name


def _stream_handler(stream: Any, use_color: bool) -> logging.StreamHandler:
    color_format = (
        "{bold}{name}{reset}: {bold}{log_color}{levelnamelower}{reset}: {message}"
    )
    colorless_format = "{name}: {levelnamelower}: {message}"
    handler: logging.StreamHandler
    if use_color:
        handler = colorlog.StreamHandler(stream)
        handler.setFormatter(
            colorlog.ColoredFormatter(color_format, style="{", force_color=True)
        )
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(colorless_format, style="{"))
    return handler


def setup_logging(
    *, log_only_to_stderr: bool = False, reconfigure_logging: bool = False
) -> None:
    global _LOGGING_SET_UP, _DEFAULT_LOGGER, _STDOUT_HANDLER, _STDERR_HANDLER
    if _LOGGING_SET_UP and not reconfigure_logging:
        raise RuntimeError(
            "Logging has already been configured."
            " Use reconfigure_logging=True if you need to reconfigure it"
        )
    stdout_color, stderr_color, bad_request = _check_color()

    if log_only_to_stderr:
        stdout = sys.stderr
        stdout_color = stderr_color
    else:
        stdout = sys.stdout

    class LogLevelFilter(logging.Filter):
        def __init__(self, threshold: int, above: bool):
            super().__init__()
            self.threshold = threshold
            self.above = above

        def filter(self, record: logging.LogRecord) -> bool:
            if self.above:
                return record.levelno >= self.threshold
            else:
                return record.levelno < self.threshold

    root_logger = logging.getLogger()
    for existing_handler in (_STDOUT_HANDLER, _STDERR_HANDLER):
        if existing_handler is not None:
            root_logger.removeHandler(existing_handler)

    stdout_handler = _stream_handler(stdout, stdout_color)
    stderr_handler = _stream_handler(sys.stderr, stderr_color)
    stdout_handler.addFilter(LogLevelFilter(logging.WARN, False))
    stderr_handler.addFilter(LogLevelFilter(logging.WARN, True))
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)
    _STDOUT_HANDLER = stdout_handler
    _STDERR_HANDLER = stderr_handler

    if not _LOGGING_SET_UP:
        old_factory = logging.getLogRecordFactory()

        def record_factory(
            *args: Any, **kwargs: Any
        ) -> logging.LogRecord:  # pragma: no cover
            record = old_factory(*args, **kwargs)
            record.levelnamelower = record.levelname.lower()
            return record

        logging.setLogRecordFactory(record_factory)

    root_logger.setLevel(logging.DEBUG if _debug_requested() else logging.INFO)
    _DEFAULT_LOGGER = logging.getLogger(program_name())

    if bad_request:
        _DEFAULT_LOGGER.warning(
            f'Invalid color request for "{bad_request}" in {COLORS_ENV_VAR}.'
            ' Resetting to "auto".'
        )

    _LOGGING_SET_UP = True
