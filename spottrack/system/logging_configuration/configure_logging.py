import logging
import sys

from spottrack.system.logging_configuration.log_levels import LogLevels

DEFAULT_LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)-7s] [%(name)s:%(lineno)d] %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

_HANDLER_NAME_CONSOLE = "spottrack_console"
_HANDLER_NAME_FILE = "spottrack_file"


def _add_custom_level(*, level: LogLevels) -> None:
    """Register a custom level and a matching `logger.<name>()` method."""
    level_name = level.name
    level_value = level.value
    method_name = level_name.lower()

    logging.addLevelName(level_value, level_name)

    if hasattr(logging.Logger, method_name):
        return

    def log_for_level(self: logging.Logger, message: object, *args: object, **kwargs: object) -> None:
        if self.isEnabledFor(level_value):
            kwargs.setdefault("stacklevel", 2)
            self._log(level_value, message, args, **kwargs)  # type: ignore[arg-type]

    setattr(logging.Logger, method_name, log_for_level)


def _find_handler(*, logger: logging.Logger, name: str) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.get_name() == name:
            return handler
    return None


def configure_logging(level: LogLevels, log_file_path: str | None = None) -> None:
    """
    Configure the root logger for the package.

    Safe to call more than once: the console handler is only attached once and
    its level is updated on later calls. A file handler is added when
    `log_file_path` is given.
    """
    _add_custom_level(level=LogLevels.TRACE)
    _add_custom_level(level=LogLevels.SUCCESS)

    root = logging.getLogger()
    root.setLevel(level.value)
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    console_handler = _find_handler(logger=root, name=_HANDLER_NAME_CONSOLE)
    if console_handler is None:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name(_HANDLER_NAME_CONSOLE)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
    console_handler.setLevel(level.value)

    if log_file_path is not None and _find_handler(logger=root, name=_HANDLER_NAME_FILE) is None:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.set_name(_HANDLER_NAME_FILE)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(LogLevels.TRACE.value)
        root.addHandler(file_handler)
        root.setLevel(LogLevels.TRACE.value)
        logging.getLogger(__name__).debug(f"Logging to file: {log_file_path}")
