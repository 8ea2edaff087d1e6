from __future__ import annotations

import asyncio

import pytest
from pydantic import Field

from trivialdb import Collection, Model, Registry, Store, define_model
from trivialdb.errors import DocumentNotFound, ValidationError
from trivialdb.settings import Settings


class Author(Model):
    name: str
    admin: bool = False


class Post(Model):
    title: str
    author: str | None = None
    tags: list[str] = Field(default_factory=list)


def test_save_and_get_roundtrip(db_dir):
    async def _run():
        authors = Collection(Store("authors", root_path=db_dir), Author)

        ann = Author(name="Ann")
        assert ann.is_dirty
        await authors.save(ann)
        assert ann.id
        assert not ann.is_dirty
        assert authors.store.get(ann.id) == {"name": "Ann", "admin": False, "id": ann.id}

        fetched = await authors.get(ann.id)
        assert isinstance(fetched, Author)
        assert fetched.name == "Ann"
        assert fetched is not ann

        with pytest.raises(DocumentNotFound):
            await authors.get("missing")

    asyncio.run(_run())


def test_save_validates_model(db_dir):
    async def _run():
        authors = Collection(Store("authors", root_path=db_dir), Author)
        bad = Author(name="Bob")
        bad.admin = "definitely"  # assignment is not validated

        with pytest.raises(ValidationError) as ei:
            await authors.save(bad)
        assert ei.value.field == "admin"
        assert bad.id is None
        assert authors.store.count == 0

        # skip_validation stores it anyway
        await authors.save(bad, skip_validation=True)
        assert authors.store.get(bad.id)["admin"] == "definitely"

    asyncio.run(_run())


def test_unchanged_model_is_not_written_again(db_dir):
    async def _run():
        store = Store("authors", root_path=db_dir)
        authors = Collection(store, Author)
        ann = await authors.save(Author(name="Ann"))
        writes = store.writes
        await authors.save(ann)
        assert store.writes == writes

    asyncio.run(_run())


def test_filter_returns_models_and_keeps_unknown_fields(db_dir):
    async def _run():
        store = Store("authors", root_path=db_dir)
        store.set("a1", {"name": "Ann", "admin": True, "nickname": "annie"})
        store.set("a2", {"name": "Bob"})
        authors = Collection(store, Author)

        admins = authors.filter({"admin": True})
        assert [a.id for a in admins] == ["a1"]
        assert admins[0].to_document()["nickname"] == "annie"

        admins[0].name = "Annabel"
        await authors.save(admins[0])
        assert store.get("a1") == {"name": "Annabel", "admin": True, "nickname": "annie", "id": "a1"}

    asyncio.run(_run())


def test_live_models_refresh_unless_dirty(db_dir):
    async def _run():
        store = Store("authors", root_path=db_dir)
        authors = Collection(store, Author)
        clean = await authors.save(Author(name="Ann"))
        dirty = await authors.save(Author(name="Bob"))
        dirty.name = "Robert"

        store.set(clean.id, {"name": "Ann B."})
        store.set(dirty.id, {"name": "Bobby"})
        await store.sync()

        assert clean.name == "Ann B."
        assert not clean.is_dirty
        assert dirty.name == "Robert"

        await authors.refresh(dirty, force=True)
        assert dirty.name == "Bobby"
        assert not dirty.is_dirty

    asyncio.run(_run())


def test_live_models_refresh_on_reload(db_dir):
    async def _run():
        store = Store("authors", root_path=db_dir)
        authors = Collection(store, Author)
        ann = await authors.save(Author(name="Ann"))

        store.path.write_text(f'{{"{ann.id}": {{"id": "{ann.id}", "name": "Reloaded"}}}}', encoding="utf-8")
        await store.reload()
        assert ann.name == "Reloaded"

    asyncio.run(_run())


def test_remove_model_and_remove_all(db_dir):
    async def _run():
        store = Store("authors", root_path=db_dir)
        authors = Collection(store, Author)
        ann = await authors.save(Author(name="Ann"))
        await authors.save(Author(name="Bob"))

        old_id = ann.id
        removed = await authors.remove(ann)
        assert [d["id"] for d in removed] == [old_id]
        assert ann.id is None
        assert store.get(old_id) is None

        await authors.remove({"name": "nobody"})
        assert store.count == 1

        await authors.remove_all()
        assert store.count == 0

    asyncio.run(_run())


def test_populate_related_documents(db_dir):
    async def _run():
        authors = Collection(Store("authors", root_path=db_dir), Author)
        posts = Collection(Store("posts", root_path=db_dir), Post)

        ann = await authors.save(Author(name="Ann"))
        post = await posts.save(Post(title="Hello", author=ann.id))

        author = await posts.populate(post, "author", authors)
        assert isinstance(author, Author)
        assert author.name == "Ann"

        post.tags = [ann.id, ann.id]
        both = await posts.populate(post, "tags", authors)
        assert [a.name for a in both] == ["Ann", "Ann"]

        orphan = Post(title="Orphan")
        assert await posts.populate(orphan, "author", authors) is None

        orphan.author = "ghost"
        with pytest.raises(DocumentNotFound):
            await posts.populate(orphan, "author", authors)

    asyncio.run(_run())


def test_define_model_uses_registry(tmp_path):
    async def _run():
        registry = Registry(
            Settings(base_path=tmp_path, db_path="db", write_to_disk=True, write_delay=0, pretty_print=True)
        )
        authors = define_model(registry, "authors", Author)
        assert authors.store is registry.db("authors")
        saved = await authors.save(Author(name="Ann"))
        assert (tmp_path / "db" / "authors.json").exists()
        assert (await authors.get(saved.id)).name == "Ann"

    asyncio.run(_run())
