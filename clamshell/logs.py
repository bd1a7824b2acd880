"""
Logging setup for applications embedding clamshell.

The library itself only logs through module loggers under "clamshell" and
ships with a NullHandler; call configure() to see the records on a console.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

from .utils import *

ROOT = "clamshell"

_installed = None


def configure(level=logging.INFO, /, *, console=Unset):
    """
    Attach a RichHandler to the "clamshell" logger and set its level.

    Calling it again replaces the handler installed by the previous call.
    Returns the handler.
    """
    global _installed

    logger = logging.getLogger(ROOT)
    if _installed is not None:
        logger.removeHandler(_installed)

    _installed = RichHandler(
        console=coalesce(console, Console(stderr=True)),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    _installed.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(_installed)
    logger.setLevel(level)
    return _installed


__all__ = (
    "configure",
)
