from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stderr handler on the root logger.

    Called by the CLI and the HTTP gateway; library code only ever asks
    for module loggers.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_guestbook", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._guestbook = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
