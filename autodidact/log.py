"""Logging setup for the CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "autodidact-rich"


def setup_logging(level: str | int = "INFO", console: Console | None = None) -> None:
    """Route the ``autodidact`` logger hierarchy through a rich handler.

    Safe to call repeatedly; the handler is installed once and only its
    level is updated afterwards.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("autodidact")
    logger.setLevel(level)

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
