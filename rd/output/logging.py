"""Logging setup for the CLI.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the CLI entry point.
"""

from __future__ import annotations

import logging

_FORMAT = "%(name)s: %(message)s"


def setup_logging(*, verbose: bool = False) -> None:
    """Route ``rd.*`` log records to stderr through Rich.

    Warnings and above are shown by default; ``verbose`` lowers the level to
    DEBUG (which includes every chunk of publish-program output).
    """
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter(_FORMAT))

    logger = logging.getLogger("rd")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
