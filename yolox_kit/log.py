from __future__ import annotations

import logging


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stderr handler on the root logger. Library modules only
    create loggers; scripts call this once at startup.
    """

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
