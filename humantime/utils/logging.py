"""
Logging setup for the Humantime command line.
"""

import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(name)s: %(message)s"


def setup_logging(level: Union[int, str] = logging.WARNING) -> None:
    """
    Set up logging for the command line application.

    Log records go to stderr through Rich so they never mix with command
    output on stdout.

    Args:
        level: Logging level name or number
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
            )
        ],
        force=True,
    )
