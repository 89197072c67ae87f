"""
Process-wide logging setup, called once from the application lifespan.
"""

from __future__ import annotations

import logging

_HANDLER_NAME = "blog-api"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
        )
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
