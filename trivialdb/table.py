from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable

from .ids import generate_id
from .predicates import Predicate, compile_predicate
from .query import Query

MISSING: Any = object()


@dataclass(frozen=True)
class SetIntent:
    """A normalized `set()` call: an explicit key (or None) and the document."""

    key: str | None
    document: Any


def resolve_set_intent(key_or_document: Any, document: Any = MISSING) -> SetIntent:
    # set(doc) vs set(key, doc)
    if document is MISSING:
        return SetIntent(key=None, document=key_or_document)
    key = None if key_or_document is None else str(key_or_document)
    return SetIntent(key=key, document=document)


class DocumentTable:
    """
    In-memory mapping of id -> document.

    Values are deep copied on the way in and on the way out, so callers can never
    mutate the table through a reference they hold.
    """

    def __init__(self, *, pk: str = "id", id_func: Callable[[Any], str] = generate_id):
        self.pk = pk
        self.id_func = id_func
        self._values: dict[str, Any] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def keys(self) -> list[str]:
        return list(self._values)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._values:
            return default
        return copy.deepcopy(self._values[key])

    def resolve_key(self, intent: SetIntent) -> str:
        if intent.key is not None:
            return intent.key
        doc = intent.document
        if isinstance(doc, dict) and doc.get(self.pk) is not None:
            return str(doc[self.pk])
        return str(self.id_func(doc))

    def set(self, key_or_document: Any, document: Any = MISSING) -> str:
        intent = resolve_set_intent(key_or_document, document)
        key = self.resolve_key(intent)

        value = copy.deepcopy(intent.document)
        # Only object documents carry a primary key; scalars and lists are stored as-is.
        if isinstance(value, dict):
            value[self.pk] = key
        self._values[key] = value
        return key

    def delete(self, predicate: Predicate) -> list[Any]:
        if predicate is None:
            raise ValueError("delete() requires a predicate; use clear() to remove everything")
        match = compile_predicate(predicate)
        removed_keys = [k for k, v in self._values.items() if match(v, k)]
        return [self._values.pop(k) for k in removed_keys]

    def filter(self, predicate: Predicate = None) -> list[Any]:
        match = compile_predicate(predicate)
        return [copy.deepcopy(v) for k, v in self._values.items() if match(v, k)]

    def query(self) -> Query:
        return Query(self.snapshot())

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)

    def replace(self, values: dict[str, Any]) -> None:
        self._values = copy.deepcopy(values)

    def raw(self) -> dict[str, Any]:
        """The live mapping. Callers must not mutate it or keep it across awaits."""
        return self._values
