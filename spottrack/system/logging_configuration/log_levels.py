from enum import Enum
import logging


class LogLevels(Enum):
    """Log levels, including the two extra ones registered by configure_logging."""
    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    SUCCESS = 25
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL
