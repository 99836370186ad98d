"""Console logging setup for the branchwarden CLI."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Send step progress and run summaries to stderr.

    The CLI calls this once at INFO, then again with ``level=logging.DEBUG`` and
    ``force=True`` when ``-v``/``--verbose`` is given, which also prints each
    GitHub request and the remaining API quota. httpx's own per-request lines are
    held at WARNING unless that debug level is active.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    logging.getLogger("httpx").setLevel(level if level <= logging.DEBUG else logging.WARNING)
