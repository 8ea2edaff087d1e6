from __future__ import annotations

import inspect
from typing import Any, Callable, Union

# A predicate is a callable taking (document) or (document, key), a single id,
# a collection of ids, or a partial document to match structurally.
Predicate = Union[Callable[..., Any], str, list, tuple, set, frozenset, dict, None]
Matcher = Callable[[Any, "str | None"], bool]


def is_match(candidate: Any, pattern: Any) -> bool:
    """
    Structural subset match: every key of a dict pattern must match the same key
    of the candidate (recursively for nested dicts); anything else uses ==.
    """
    if isinstance(pattern, dict):
        if not isinstance(candidate, dict):
            return False
        return all(k in candidate and is_match(candidate[k], v) for k, v in pattern.items())
    return candidate == pattern


def _positional_arity(func: Callable[..., Any]) -> int:
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return 1
    count = 0
    for p in params:
        if p.kind is inspect.Parameter.VAR_POSITIONAL:
            return 2
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


def compile_predicate(predicate: Predicate) -> Matcher:
    if predicate is None:
        return lambda doc, key: True
    if isinstance(predicate, str):
        return lambda doc, key: key == predicate
    if isinstance(predicate, (list, tuple, set, frozenset)):
        ids = {str(i) for i in predicate}
        return lambda doc, key: key in ids
    if isinstance(predicate, dict):
        return lambda doc, key: is_match(doc, predicate)
    if callable(predicate):
        if _positional_arity(predicate) >= 2:
            return lambda doc, key: bool(predicate(doc, key))
        return lambda doc, key: bool(predicate(doc))
    raise TypeError(f"Unsupported predicate type: {type(predicate).__name__}")
