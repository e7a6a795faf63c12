"""
core/params.py
Parameter-string parser shared by the install/uninstall commands.

    parse_params("a=1, b ,c=3")  ->  {"a": "1", "b": None, "c": "3"}

Rules:
  - parts are separated by commas and trimmed; empty parts are skipped
  - ``key=value`` splits at the FIRST equals sign only, so
    ``"x=1=2"`` gives ``{"x": "1=2"}``
  - a part without ``=``, or with an empty value, maps to ``None``
    (use the default version)
  - a duplicate key overwrites the earlier value (last one wins) but
    keeps the position of its first occurrence
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def parse_params(param_str: str | None) -> dict[str, Optional[str]]:
    """Parse ``id[=version][,id2[=version2]...]`` into an ordered mapping."""
    logger.info("Params line is: %s", param_str)
    res: dict[str, Optional[str]] = {}
    if not param_str:
        return res

    for part in param_str.split(","):
        if "=" in part:
            key, _, value = part.partition("=")
            key = key.strip()
            if key:
                res[key] = value.strip() or None
        else:
            key = part.strip()
            if key:
                res[key] = None
    return res
