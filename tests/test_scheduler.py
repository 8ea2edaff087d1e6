from __future__ import annotations

import asyncio
import json
import threading
import time

import pytest

from trivialdb import Store, json_store
from trivialdb.errors import WriteFailure
from trivialdb.scheduler import SchedulerState


def test_syncs_before_write_starts_share_one_write(db_dir, monkeypatch):
    payloads: list[dict] = []
    real_write = json_store.atomic_write_json

    def recording_write(path, text):
        payloads.append(json.loads(text))
        real_write(path, text)

    monkeypatch.setattr(json_store, "atomic_write_json", recording_write)

    async def _run():
        store = Store("coalesce", root_path=db_dir, load_from_disk=False)
        store.set("a", {"v": 1})
        first = store.sync()
        store.set("b", {"v": 2})
        second = store.sync()
        assert first is second
        assert store.write_state is SchedulerState.SCHEDULED

        await second
        assert len(payloads) == 1
        assert set(payloads[0]) == {"a", "b"}
        assert store.write_state is SchedulerState.IDLE
        assert store.writes == 1

    asyncio.run(_run())


def test_syncs_during_write_coalesce_into_one_follow_up(db_dir, monkeypatch):
    payloads: list[dict] = []
    started = threading.Event()
    gate = threading.Event()
    real_write = json_store.atomic_write_json

    def slow_write(path, text):
        payloads.append(json.loads(text))
        started.set()
        if len(payloads) == 1:
            gate.wait(5)
        real_write(path, text)

    monkeypatch.setattr(json_store, "atomic_write_json", slow_write)

    async def _run():
        store = Store("overlap", root_path=db_dir, load_from_disk=False)
        store.set("a", {"v": 1})
        first = store.sync()

        await asyncio.to_thread(started.wait, 5)
        assert store.write_state is SchedulerState.WRITING

        store.set("b", {"v": 2})
        second = store.sync()
        store.set("c", {"v": 3})
        third = store.sync()
        assert second is third
        assert second is not first

        gate.set()
        await first
        await third

        assert len(payloads) == 2
        assert set(payloads[0]) == {"a"}
        assert set(payloads[1]) == {"a", "b", "c"}
        on_disk = json.loads(store.path.read_text(encoding="utf-8"))
        assert on_disk == {
            "a": {"v": 1, "id": "a"},
            "b": {"v": 2, "id": "b"},
            "c": {"v": 3, "id": "c"},
        }
        assert store.write_state is SchedulerState.IDLE

    asyncio.run(_run())


def test_write_delay_spaces_writes(db_dir):
    async def _run():
        store = Store("delayed", root_path=db_dir, write_delay=50, load_from_disk=False)
        start = time.monotonic()
        store.set("a", {"v": 1})
        fut = store.sync()

        await asyncio.sleep(0.02)
        assert not store.path.exists()

        await asyncio.wait_for(fut, 2)
        elapsed = time.monotonic() - start
        assert store.path.exists()
        assert elapsed >= 0.045

    asyncio.run(_run())


def test_write_failure_is_reported_and_not_retried(tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("i am a file", encoding="utf-8")

    calls: list[str] = []
    real_write = json_store.atomic_write_json

    def counting_write(path, text):
        calls.append(text)
        real_write(path, text)

    monkeypatch.setattr(json_store, "atomic_write_json", counting_write)

    async def _run():
        store = Store("broken", root_path=blocker, load_from_disk=False)
        store.set("a", {"v": 1})

        with pytest.raises(WriteFailure) as ei:
            await store.sync()
        assert ei.value.path == store.path
        assert store.write_state is SchedulerState.FAILED
        assert store.writes == 0

        await asyncio.sleep(0.05)
        assert len(calls) == 1

        # Fix the cause; the next sync starts over.
        blocker.unlink()
        await store.sync()
        assert store.write_state is SchedulerState.IDLE
        assert json.loads(store.path.read_text(encoding="utf-8")) == {"a": {"v": 1, "id": "a"}}

    asyncio.run(_run())


def test_unserializable_document_becomes_write_failure(db_dir):
    async def _run():
        store = Store("unserializable", root_path=db_dir, load_from_disk=False)
        store.set("a", {"when": object()})
        with pytest.raises(WriteFailure) as ei:
            await store.sync()
        assert isinstance(ei.value.cause, TypeError)
        assert not store.path.exists()

    asyncio.run(_run())


def test_memory_only_store_never_touches_disk(tmp_path):
    async def _run():
        store = Store("memory", root_path=tmp_path / "never", write_to_disk=False)
        await store.loading
        for i in range(5):
            await store.save({"n": i})
        await store.sync()
        await store.remove(lambda d: d["n"] < 2)
        await store.clear()
        assert store.writes == 0
        assert store.write_state is SchedulerState.IDLE

    asyncio.run(_run())
    assert not (tmp_path / "never").exists()
