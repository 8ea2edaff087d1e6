from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Protocol

from .events import EventEmitter


class DocumentStore(Protocol):
    """
    What the model layer needs from a store.
    """

    events: EventEmitter

    @property
    def pk(self) -> str:
        ...

    @property
    def loading(self) -> Awaitable[None]:
        ...

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key_or_document: Any, document: Any = ...) -> str:
        ...

    def filter(self, predicate: Any = None) -> list[Any]:
        ...

    def sync(self) -> asyncio.Future[None]:
        ...

    async def load(self, key: str, default: Any = ...) -> Any:
        ...

    async def remove(self, predicate: Any) -> list[Any]:
        ...

    async def clear(self) -> None:
        ...
