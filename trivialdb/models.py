from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, PrivateAttr

from .errors import ValidationError
from .interfaces import DocumentStore

if TYPE_CHECKING:
    from .namespace import Registry


class Model(BaseModel):
    """
    Base class for typed documents.

    Fields not declared on the model are kept (extra="allow"), so saving a model
    never drops data another writer put in the document. Assignment is not
    validated; `Collection.save` validates the whole model.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None

    _snapshot: dict[str, Any] | None = PrivateAttr(default=None)

    @property
    def is_dirty(self) -> bool:
        """True until the model matches what was last read from or written to its store."""
        return self._snapshot is None or self.to_document() != self._snapshot

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def mark_clean(self) -> None:
        self._snapshot = self.to_document()


M = TypeVar("M", bound=Model)


def _validation_error(exc: pydantic.ValidationError) -> ValidationError:
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "__root__"
    return ValidationError(field, first.get("msg", str(exc)))


class Collection(Generic[M]):
    """
    Typed access to the documents of one store.

    Models handed out (or saved) by a collection are tracked weakly; whenever
    the store is reloaded or written, the ones without local changes are
    refreshed from the store.
    """

    def __init__(self, store: DocumentStore, model_cls: type[M]):
        self.store = store
        self.model_cls = model_cls
        self._live: weakref.WeakValueDictionary[int, M] = weakref.WeakValueDictionary()
        store.events.on("loaded", self._on_store_changed)
        store.events.on("sync", self._on_store_changed)

    # -------- helpers
    def _to_store_doc(self, model: M) -> tuple[str | None, dict[str, Any]]:
        doc = model.to_document()
        key = doc.pop("id", None)
        return key, doc

    def _parse(self, key: str, doc: Any) -> M:
        if not isinstance(doc, dict):
            raise ValidationError("__root__", f"document {key!r} is not an object")
        data = dict(doc)
        data["id"] = key
        try:
            return self.model_cls.model_validate(data)
        except pydantic.ValidationError as exc:
            raise _validation_error(exc) from exc

    def _track(self, model: M) -> M:
        model.mark_clean()
        self._live[id(model)] = model
        return model

    def _apply(self, model: M, doc: Any) -> None:
        fresh = self._parse(model.id or "", doc)
        for name, value in fresh:
            setattr(model, name, value)
        model.mark_clean()

    def _on_store_changed(self, store: DocumentStore) -> None:
        for model in list(self._live.values()):
            if model.id is None or model.is_dirty:
                continue
            doc = store.get(model.id)
            if doc is not None:
                self._apply(model, doc)

    # -------- public API
    def validate(self, model: M) -> None:
        try:
            self.model_cls.model_validate(model.model_dump())
        except pydantic.ValidationError as exc:
            raise _validation_error(exc) from exc

    async def get(self, key: str) -> M:
        """Raises `DocumentNotFound` if there is no document with that id."""
        doc = await self.store.load(key)
        return self._track(self._parse(key, doc))

    def filter(self, predicate: Any = None) -> list[M]:
        pk = self.store.pk
        return [
            self._track(self._parse(str(doc[pk]), doc))
            for doc in self.store.filter(predicate)
            if isinstance(doc, dict) and pk in doc
        ]

    async def save(self, model: M, *, skip_validation: bool = False) -> M:
        if not skip_validation:
            self.validate(model)
        if not model.is_dirty:
            return model

        key, doc = self._to_store_doc(model)
        model.id = self.store.set(key, doc) if key is not None else self.store.set(doc)
        self._track(model)
        await self.store.sync()
        return model

    async def refresh(self, model: M, *, force: bool = False) -> M:
        """Re-read `model` from the store; local changes are kept unless `force`."""
        await self.store.loading
        if model.id is None:
            return model
        doc = self.store.get(model.id)
        if doc is not None and (force or not model.is_dirty):
            self._apply(model, doc)
        return model

    async def remove(self, predicate: Any) -> list[Any]:
        if isinstance(predicate, Model):
            model = predicate
            removed = await self.store.remove(model.id) if model.id is not None else []
            self._live.pop(id(model), None)
            model.id = None
            model._snapshot = None
            return removed
        return await self.store.remove(predicate)

    async def remove_all(self) -> None:
        await self.store.clear()

    async def populate(self, model: Model, field: str, related: "Collection[Any]") -> Any:
        """
        Resolve the id (or list of ids) held in `model.<field>` into models of
        `related`. Missing documents raise `DocumentNotFound`.
        """
        value = getattr(model, field)
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return [await related.get(str(v)) for v in value]
        return await related.get(str(value))


def define_model(registry: "Registry", db_name: str, model_cls: type[M], **options: Any) -> Collection[M]:
    return Collection(registry.db(db_name, **options), model_cls)
