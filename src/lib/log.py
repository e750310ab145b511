"""
Verbosity-gated logging on top of loguru

The CLI connects its ``ProgramState`` once per run; after that any library
module (tokenizer, template library, renderer) can call ``LOG`` and the
message is shown only when the run's verbosity is high enough. With no state
connected (library use, tests) ``LOG`` is silent and ``LOG_error`` still
reports.

Levels:
    1  progress ("Rendering highlights...")
    2  detail (template chosen, counts, output paths)
    3  trace (tokenizer recoveries, per-chapter group counts)
"""

import sys
from contextvars import ContextVar
from typing import Any, Optional

from loguru import logger


_connected_state: ContextVar[Optional[Any]] = ContextVar("highlightdown_state", default=None)

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <7}</level> │ "
    "<cyan>{module}.{function}</cyan>:<cyan>{line}</cyan> │ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=LOG_FORMAT, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """Make ``state.verbosity`` govern LOG() calls in the current context"""
    _connected_state.set(state)


def verbosity_get() -> int:
    """Verbosity of the connected state, 0 when nothing is connected"""
    state = _connected_state.get()
    return int(getattr(state, "verbosity", 0) or 0)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Emit ``message`` when the connected verbosity is at least ``level``

    Extra keyword arguments are passed to loguru as formatting arguments.
    """
    if verbosity_get() >= level:
        logger.opt(depth=1).debug(message, **kwargs)


def LOG_error(message: str, **kwargs: Any) -> None:
    """
    Report a recoverable failure that changes the output

    For example, a template that fails validation and is replaced by the
    default. Shown at every verbosity.
    """
    logger.opt(depth=1).error(message, **kwargs)
