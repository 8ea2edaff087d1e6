from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable

from . import json_store, paths
from .errors import DatabaseFileMissing, DocumentNotFound, ParseFailure, UnsupportedOperation, WriteFailure
from .events import EventEmitter
from .merge import deep_merge
from .options import StoreOptions
from .predicates import Predicate
from .query import Query
from .scheduler import SchedulerState, WriteScheduler
from .table import MISSING, DocumentTable

if TYPE_CHECKING:
    from .namespace import Namespace

logger = logging.getLogger(__name__)


def resolve_root_path(options: StoreOptions, namespace: "Namespace | None" = None) -> Path:
    """
    Directory holding a store's file.

    An explicit `root_path` always wins. Inside a namespace, overriding just
    `db_path` keeps the namespace folder under the new db path; otherwise the
    namespace's own root is used. Without a namespace: <app root>/<db_path>.
    """
    if options.root_path is not None:
        return Path(options.root_path).resolve()
    if namespace is not None:
        if options.db_path is not None and options.db_path != namespace.db_path:
            return (namespace.base_path / options.db_path / namespace.name).resolve()
        return namespace.root_path.resolve()
    return (paths.project_root() / (options.db_path or "db")).resolve()


async def _completed() -> None:
    return None


def _retrieve_exception(task: "asyncio.Task[None]") -> None:
    # Load failures are logged in _initial_load; mark them retrieved so an unawaited
    # failed load does not also produce "Task exception was never retrieved".
    if not task.cancelled():
        task.exception()


class Store:
    """
    A named, file-backed table of JSON documents.

    Reads and mutations are synchronous and only touch memory; `sync()` (and the
    async helpers built on it: `save`, `merge`, `remove`, `clear`) persist the
    whole table to `<root_path>/<name>.json` through a debounced write
    scheduler.

    Must be created inside a running event loop when disk loading is enabled,
    since construction schedules the initial load. Await `loading` before
    relying on the contents.
    """

    def __init__(
        self,
        name: str,
        options: StoreOptions | None = None,
        *,
        namespace: "Namespace | None" = None,
        **overrides: Any,
    ):
        if not name:
            raise ValueError("Store name must be a non-empty string")
        if options is None:
            options = StoreOptions.build(**overrides)
        elif overrides:
            options = StoreOptions.build(options.model_dump(), **overrides)

        self._name = name
        self._namespace = namespace
        self.options = options
        self.events = EventEmitter()

        self._table = DocumentTable(pk=options.pk, id_func=options.id_func)
        self._root_path = resolve_root_path(options, namespace)
        self._scheduler = WriteScheduler(
            self._write_snapshot,
            path=self.path,
            write_delay=options.write_delay,
        )

        self._load_error: Exception | None = None
        self._loading: asyncio.Task[None] | None = None
        if options.load_from_disk:
            self._loading = asyncio.get_running_loop().create_task(self._initial_load())
            self._loading.add_done_callback(_retrieve_exception)

    def __repr__(self) -> str:
        return f"<Store {self._name!r} path={str(self.path)!r} count={self.count}>"

    # ------------------------------------------------------------------
    # Properties

    @property
    def name(self) -> str:
        return self._name

    @property
    def namespace(self) -> "Namespace | None":
        return self._namespace

    @property
    def root_path(self) -> Path:
        return self._root_path

    @property
    def path(self) -> Path:
        return paths.db_file(self._root_path, self._name)

    @property
    def count(self) -> int:
        return len(self._table)

    @property
    def pk(self) -> str:
        return self.options.pk

    @property
    def write_state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def writes(self) -> int:
        """Number of successful physical writes so far."""
        return self._scheduler.writes

    @property
    def loading(self) -> Awaitable[None]:
        """Resolves once the initial load attempt is over (immediately if disk loading is off)."""
        if self._loading is None:
            return _completed()
        return self._loading

    # ------------------------------------------------------------------
    # Loading

    async def _initial_load(self) -> None:
        try:
            await self._read_into_table(keep_pending=True)
        except DatabaseFileMissing:
            # Fine for a new database.
            logger.debug("no database file at %s yet", self.path)
        except Exception as e:
            logger.warning("DB LOAD: failed to load %s: %r", self.path, e)
            self._load_error = e
            raise

    async def _read_into_table(self, *, keep_pending: bool = False) -> None:
        raw = await asyncio.to_thread(json_store.read_json, self.path)
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ParseFailure(self.path, ValueError("top level JSON value is not an object"))
        if keep_pending:
            # Documents set while the file was being read win over what was on disk.
            raw.update(self._table.raw())
        self._replace(raw)
        self._load_error = None
        logger.info("loaded %d documents from %s", len(raw), self.path)

    async def _settle_loading(self) -> None:
        """Wait for the initial load without raising; its outcome is kept in `_load_error`."""
        if self._loading is not None and not self._loading.done():
            await asyncio.wait([self._loading])

    def _replace(self, values: dict[str, Any]) -> None:
        self._table.replace(values)
        self.events.emit("loaded", self)

    def reload(self) -> asyncio.Task[None]:
        """
        Re-read the backing file, replacing the whole table.

        Raises `UnsupportedOperation` right away if the store does not load from
        disk. The returned task fails with `DatabaseFileMissing` when the file is
        absent, and with `ParseFailure` when it is malformed.
        """
        if not self.options.load_from_disk:
            raise UnsupportedOperation("Database is not configured to load from disk.")
        return asyncio.get_running_loop().create_task(self._read_into_table())

    # ------------------------------------------------------------------
    # Writing

    async def _write_snapshot(self) -> None:
        # Never write before the initial load settles, and never over a file that failed to load.
        await self._settle_loading()
        if self._load_error is not None:
            raise WriteFailure(
                "refusing to overwrite a database file that failed to load", self.path, self._load_error
            ) from self._load_error

        # Serialized here, at write start, so the newest table is what lands on disk.
        text = json_store.dumps(self._table.raw(), pretty=self.options.pretty_print)
        await asyncio.to_thread(json_store.atomic_write_json, self.path, text)
        self.events.emit("sync", self)

    def sync(self) -> asyncio.Future[None]:
        """
        Persist the table. The returned future resolves once the current state
        (or a newer one) is on disk, or fails with `WriteFailure`.
        """
        if not self.options.write_to_disk:
            fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            fut.set_result(None)
            return fut
        return self._scheduler.sync()

    # ------------------------------------------------------------------
    # In-memory API

    def get(self, key: str, default: Any = None) -> Any:
        return self._table.get(key, default)

    def set(self, key_or_document: Any, document: Any = MISSING) -> str:
        """
        Store a document in memory and return its id. Does not persist.

        Accepts `set(key, doc)` or `set(doc)`; in the latter case the id comes
        from the document's pk field, or is generated.
        """
        return self._table.set(key_or_document, document)

    def delete(self, predicate: Predicate) -> list[Any]:
        return self._table.delete(predicate)

    def filter(self, predicate: Predicate = None) -> list[Any]:
        return self._table.filter(predicate)

    def query(self) -> Query:
        return self._table.query()

    def keys(self) -> list[str]:
        return self._table.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._table

    # ------------------------------------------------------------------
    # Persisting API

    async def load(self, key: str, default: Any = MISSING) -> Any:
        await self.loading
        value = self._table.get(key, MISSING)
        if value is MISSING:
            if default is MISSING:
                raise DocumentNotFound(key)
            return default
        return value

    async def save(self, key_or_document: Any, document: Any = MISSING) -> str:
        key = self.set(key_or_document, document)
        await self.sync()
        return key

    async def merge(self, key: str, partial: Any) -> Any:
        """Deep-merge `partial` into the document at `key` (or into {}), persist, and return the result."""
        merged = deep_merge(self._table.get(key, {}), partial)
        self._table.set(key, merged)
        await self.sync()
        return self._table.get(key)

    async def remove(self, predicate: Predicate) -> list[Any]:
        removed = self.delete(predicate)
        await self.sync()
        return removed

    async def clear(self) -> None:
        # A load finishing after this would bring the old documents back.
        await self._settle_loading()
        self._replace({})
        await self.sync()
