"""Display rendering for values that reach the console hooks or the log mirror."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from pprint import pformat

__all__ = ["render_value", "render_values"]


def render_value(value: object) -> str:
    """Strings pass through; anything else is pretty-printed on one line."""

    if isinstance(value, str):
        return value
    try:
        return pformat(value, width=sys.maxsize, sort_dicts=False)
    except Exception:  # noqa: BLE001 - a broken __repr__ must not end the run
        return f"<unprintable {type(value).__name__}>"


def render_values(values: Iterable[object]) -> str:
    return " ".join(render_value(value) for value in values) + "\n"
