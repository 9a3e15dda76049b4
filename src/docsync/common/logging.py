"""Shared logging helpers for docsync."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    ``level`` accepts either a numeric level or a level name such as ``"DEBUG"``.
    We default to INFO and a terse format suitable for CLI output. Pass
    ``force=True`` to reconfigure during tests or specialised entry points.
    """

    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.strip().upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
