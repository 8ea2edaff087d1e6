from __future__ import annotations

import copy
from typing import Any


def deep_merge(base: Any, incoming: Any) -> Any:
    """
    Recursively merge `incoming` into `base`, returning a new value.

    Dicts are merged key by key; any other incoming value (scalar, list, None)
    replaces what was there. Neither argument is mutated.
    """
    if isinstance(base, dict) and isinstance(incoming, dict):
        merged = copy.deepcopy(base)
        for key, value in incoming.items():
            if key in merged:
                merged[key] = deep_merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
    return copy.deepcopy(incoming)
