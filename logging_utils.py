from __future__ import annotations

import logging


def setup_logging(level: str) -> None:
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    root.addHandler(sh)
