"""Terminal error reporting for command handlers.

``terminate`` is the only place in pavo that ends the process because a
command failed. Everything upstream of it raises and stays testable.
"""
from __future__ import annotations

import sys
import traceback
from typing import NoReturn

from rich.text import Text

from pavo.errors import SubsystemError
from pavo.logger import create_logger

EXIT_FAILURE = 1


def format_failure(error: SubsystemError) -> str:
    """``"<context>:\\n<traceback of the underlying error>"``."""
    cause = error.__cause__ or error
    trace = "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
    return f"{error.context}:\n{trace.rstrip()}"


def terminate(error: SubsystemError, log_level: str | None = None) -> NoReturn:
    """Log ``error`` once, in red, at ``log_level`` and exit with status 1.

    An unknown ``log_level`` falls back to the default level rather than
    raising, so this function cannot fail on its own.
    """
    logger = create_logger(log_level)
    logger.error(Text(format_failure(error), style="red"))
    sys.exit(EXIT_FAILURE)
