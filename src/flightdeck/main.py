#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import sys
import threading
from dataclasses import replace
from functools import partial
from pathlib import Path
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from flightdeck.adapters.catalog_file import load_catalog
from flightdeck.adapters.memory.log_sets import InMemoryLogSetRegistry
from flightdeck.app import build_scheduler
from flightdeck.config import (
    ConfigurationError,
    configure_logging,
    get_database_config,
    get_scheduler_config,
    optional_env,
)
from flightdeck.config.env import ENV_PREFIX

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

_stop = threading.Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the flightdeck integration worker")
    parser.add_argument(
        "--catalog",
        type=Path,
        default=optional_env(f"{ENV_PREFIX}CATALOG_PATH"),
        help="JSON catalog of entity sets, entity types and property types "
        "(default: $FLIGHTDECK_CATALOG_PATH)",
    )
    parser.add_argument(
        "--max-concurrent-jobs",
        type=int,
        help="Upper bound on integration jobs running at once",
    )
    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Run the worker until SIGINT or SIGTERM."""
    configure_logging()
    try:
        args = _parse_args(argv or sys.argv[1:])
        if args.catalog is None:
            raise ConfigurationError("A catalog path is required (--catalog)")
        config = get_scheduler_config()
        if args.max_concurrent_jobs is not None:
            config = replace(config, max_concurrent_jobs=args.max_concurrent_jobs)
    except (ConfigurationError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        scheduler = build_scheduler(
            database=get_database_config(),
            catalog_provider=partial(load_catalog, Path(args.catalog)),
            log_sets=InMemoryLogSetRegistry(),
            config=config,
        )
        with scheduler:
            _stop.wait()
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def stop_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Let the worker finish its running jobs and exit."""
    print("\nStopping worker")
    _stop.set()


def run() -> None:
    """Console entry point: load ``.env``, install the stop handlers and run the worker."""
    load_dotenv()
    signal(SIGINT, stop_handler)
    signal(SIGTERM, stop_handler)
    main()


if __name__ == "__main__":
    run()
