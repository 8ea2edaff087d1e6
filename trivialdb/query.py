from __future__ import annotations

import json
from typing import Any, Callable, Iterator

from .predicates import Predicate, compile_predicate

# (key, document) pairs; the key becomes None once a document has been map()ped.
Rows = list[tuple["str | None", Any]]


def _sortable(value: Any) -> tuple:
    # Values of different types never compare directly: group by type first.
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    if isinstance(value, str):
        return ("str", value)
    return (type(value).__name__, json.dumps(value, sort_keys=True, default=str))


def _sort_key(field: str) -> Callable[[tuple], tuple]:
    # Missing fields and non-dict documents sort first.
    def key(row: tuple) -> tuple:
        doc = row[1]
        if isinstance(doc, dict) and doc.get(field) is not None:
            return (1, _sortable(doc[field]))
        return (0, ("", 0))

    return key


class Query:
    """
    Lazy, chainable view over a private copy of a store's documents.

    Steps are only applied when a terminal (`run`, `first`, `count`) is called,
    and every step returns a new `Query`, so partial chains can be reused.
    Id predicates (`"some-id"`, `["a", "b"]`) match until the first `map()`.
    """

    def __init__(self, values: dict[str, Any], steps: tuple[Callable[[Rows], Rows], ...] = ()):
        self._values = values
        self._steps = steps

    def _then(self, step: Callable[[Rows], Rows]) -> "Query":
        return Query(self._values, self._steps + (step,))

    def filter(self, predicate: Predicate) -> "Query":
        match = compile_predicate(predicate)
        return self._then(lambda rows: [(k, d) for k, d in rows if match(d, k)])

    def map(self, func: Callable[[Any], Any]) -> "Query":
        return self._then(lambda rows: [(None, func(d)) for _, d in rows])

    def sort_by(self, field: str, *, reverse: bool = False) -> "Query":
        return self._then(lambda rows: sorted(rows, key=_sort_key(field), reverse=reverse))

    def limit(self, n: int) -> "Query":
        if n < 0:
            raise ValueError("limit must be non-negative")
        return self._then(lambda rows: rows[:n])

    def run(self) -> list[Any]:
        rows: Rows = list(self._values.items())
        for step in self._steps:
            rows = step(rows)
        return [doc for _, doc in rows]

    def first(self, default: Any = None) -> Any:
        docs = self.run()
        return docs[0] if docs else default

    def count(self) -> int:
        return len(self.run())

    def __iter__(self) -> Iterator[Any]:
        return iter(self.run())
