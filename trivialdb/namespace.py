from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator

from . import paths
from .options import StoreOptions
from .settings import Settings, get_settings
from .store import Store

logger = logging.getLogger(__name__)


class Namespace:
    """
    A group of stores sharing a folder: <base_path>/<db_path>/<name>.

    `db(name)` creates a store on first use and returns the same instance
    afterwards; options passed on later calls are ignored.
    """

    def __init__(
        self,
        name: str,
        *,
        base_path: Path | str | None = None,
        db_path: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        self.name = name
        self.base_path = Path(base_path) if base_path is not None else paths.project_root()
        self.db_path = db_path or "db"
        self.defaults = dict(defaults or {})
        self._stores: dict[str, Store] = {}

    def __repr__(self) -> str:
        return f"<Namespace {self.name!r} root={str(self.root_path)!r}>"

    @property
    def root_path(self) -> Path:
        return self.base_path / self.db_path / self.name

    def db(self, name: str, **options: Any) -> Store:
        store = self._stores.get(name)
        if store is None:
            store = Store(name, StoreOptions.build(self.defaults, **options), namespace=self)
            self._stores[name] = store
            logger.debug("created store %r in namespace %r at %s", name, self.name, store.path)
        return store

    database = db

    def __contains__(self, name: object) -> bool:
        return name in self._stores

    def __iter__(self) -> Iterator[Store]:
        return iter(list(self._stores.values()))


class Registry:
    """
    Explicit, application-owned cache of namespaces and their stores.

    Stores created through the registry get the settings' defaults
    (`write_to_disk`, `write_delay`, `pretty_print`) under any per-store options.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings if settings is not None else get_settings()
        self._namespaces: dict[str, Namespace] = {}

    def namespace(
        self,
        name: str,
        *,
        base_path: Path | str | None = None,
        db_path: str | None = None,
    ) -> Namespace:
        ns = self._namespaces.get(name)
        if ns is None:
            ns = Namespace(
                name,
                base_path=base_path if base_path is not None else self.settings.base_path,
                db_path=db_path or self.settings.db_path,
                defaults=self.settings.store_defaults(),
            )
            self._namespaces[name] = ns
        return ns

    ns = namespace

    def db(self, name: str, **options: Any) -> Store:
        return self.namespace("").db(name, **options)

    database = db

    def stores(self) -> Iterator[Store]:
        for ns in list(self._namespaces.values()):
            yield from ns
