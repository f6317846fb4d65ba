"""Shared logging helpers for flightdeck."""

from __future__ import annotations

import logging

from .env import ENV_PREFIX, optional_env


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``FLIGHTDECK_LOG_LEVEL`` (or INFO) and the format is terse enough for
    worker output. Pass ``force=True`` to reconfigure during tests.
    """

    if level is None:
        level_name = (optional_env(f"{ENV_PREFIX}LOG_LEVEL") or "INFO").upper()
        level = logging.getLevelNamesMapping().get(level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
