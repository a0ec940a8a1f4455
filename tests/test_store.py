"""Tests for blog stores (memory and JSON)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest
from inkwell.config import InkwellConfig
from inkwell.errors import StorageError
from inkwell.models import Blog, Comment, Entry
from inkwell.permalink import PermalinkProvider
from inkwell.store import (
    CATEGORIES_FILENAME,
    DAY_INDEX_FILENAME,
    JsonStore,
    MemoryStore,
    create_store,
)


def _make_entry(
    entry_id: str = "1142329800000",
    title: str = "Hello World",
    when: datetime | None = None,
) -> Entry:
    return Entry(
        id=entry_id,
        blog_id="default",
        title=title,
        body="Body",
        created_at=when or datetime(2006, 3, 14, 9, 30, tzinfo=UTC),
    )


def _attach_and_persist(blog: Blog, store, entry: Entry) -> None:
    for changed in [entry, *PermalinkProvider(blog).attach(entry)]:
        store.persist(changed)


class TestCategories:
    def test_create_or_get_is_idempotent(self):
        blog = Blog()
        store = MemoryStore()
        first = store.create_or_get_category(blog, "Java")
        second = store.create_or_get_category(blog, "Java")
        assert first is second
        assert list(blog.categories) == ["Java"]

    def test_json_store_writes_categories(self, tmp_path: Path):
        blog = Blog()
        store = JsonStore(tmp_path)
        store.create_or_get_category(blog, "Java")

        data = json.loads((tmp_path / CATEGORIES_FILENAME).read_text())
        assert data == [{"id": "Java", "name": "Java"}]

    def test_append_entry_to_day_returns_bucket(self):
        blog = Blog()
        bucket = MemoryStore().append_entry_to_day(blog, datetime(2006, 3, 14).date())
        assert bucket is blog.find_day(datetime(2006, 3, 14).date())


class TestMemoryStore:
    def test_persist_keeps_a_copy(self):
        store = MemoryStore()
        entry = _make_entry()
        store.persist(entry)
        entry.title = "Changed"

        assert store.get(entry.id).title == "Hello World"
        assert store.count() == 1

    def test_load_restores_order_and_permalinks(self):
        blog = Blog()
        store = MemoryStore()
        _attach_and_persist(blog, store, _make_entry("1"))
        _attach_and_persist(blog, store, _make_entry("2"))

        restored = store.load(Blog())
        entries = restored.all_entries()
        assert [e.id for e in entries] == ["1", "2"]
        assert entries[0].permalink == "/2006/03/14/hello_world_1.html"
        assert entries[1].permalink == "/2006/03/14/hello_world.html"


    def test_remove_drops_entry_and_order(self):
        store = MemoryStore()
        first, second = _make_entry("1"), _make_entry("2", title="Other")
        store.persist(first)
        store.persist(second)

        store.remove(first)
        store.remove(first)

        assert store.get("1") is None
        assert [e.id for e in store.load(Blog()).all_entries()] == ["2"]

class TestJsonStore:
    def test_persist_writes_entry_and_index(self, tmp_path: Path):
        store = JsonStore(tmp_path)
        entry = _make_entry()
        store.persist(entry)

        day_dir = tmp_path / "entries" / "2006" / "03" / "14"
        assert (day_dir / f"{entry.id}.json").exists()
        assert json.loads((day_dir / DAY_INDEX_FILENAME).read_text()) == [entry.id]

    def test_persist_twice_does_not_duplicate_index(self, tmp_path: Path):
        store = JsonStore(tmp_path)
        entry = _make_entry()
        store.persist(entry)
        store.persist(entry)

        index = tmp_path / "entries" / "2006" / "03" / "14" / DAY_INDEX_FILENAME
        assert json.loads(index.read_text()) == [entry.id]

    def test_round_trip_through_load(self, tmp_path: Path):
        blog = Blog(url="http://example.com")
        store = JsonStore(tmp_path)
        store.create_or_get_category(blog, "Java")
        entry = _make_entry()
        entry.add_category(blog.get_category("Java"))
        entry.add_comment(
            Comment(entry_id=entry.id, author="Alice", body="Hi", created_at=entry.created_at)
        )
        _attach_and_persist(blog, store, entry)

        restored = JsonStore(tmp_path).load(Blog(url="http://example.com"))
        loaded = PermalinkProvider(restored).resolve("/2006/03/14/hello_world.html")

        assert loaded is not None
        assert loaded.id == entry.id
        assert loaded.comments[0].author == "Alice"
        assert "Java" in restored.categories

    def test_load_keeps_insertion_order_not_id_order(self, tmp_path: Path):
        blog = Blog()
        store = JsonStore(tmp_path)
        _attach_and_persist(blog, store, _make_entry("9"))
        _attach_and_persist(blog, store, _make_entry("1"))

        restored = store.load(Blog())
        entries = restored.all_entries()
        assert [e.id for e in entries] == ["9", "1"]
        assert entries[1].permalink == "/2006/03/14/hello_world.html"

    def test_load_skips_corrupt_entry(self, tmp_path: Path):
        blog = Blog()
        store = JsonStore(tmp_path)
        _attach_and_persist(blog, store, _make_entry("1", title="One"))
        _attach_and_persist(blog, store, _make_entry("2", title="Two"))
        (tmp_path / "entries" / "2006" / "03" / "14" / "1.json").write_text("{not json")

        restored = store.load(Blog())
        assert [e.id for e in restored.all_entries()] == ["2"]

    def test_load_empty_directory(self, tmp_path: Path):
        assert JsonStore(tmp_path / "missing").load(Blog()).entry_count == 0

    def test_persist_failure_raises_storage_error(self, tmp_path: Path):
        blocker = tmp_path / "blocked"
        blocker.write_text("a file, not a directory")
        with pytest.raises(StorageError):
            JsonStore(blocker).persist(_make_entry())


    def test_remove_deletes_file_and_index_entry(self, tmp_path: Path):
        store = JsonStore(tmp_path)
        first, second = _make_entry("1"), _make_entry("2", title="Other")
        store.persist(first)
        store.persist(second)

        store.remove(first)

        day_dir = tmp_path / "entries" / "2006" / "03" / "14"
        assert not (day_dir / "1.json").exists()
        assert json.loads((day_dir / DAY_INDEX_FILENAME).read_text()) == ["2"]
        assert [e.id for e in store.load(Blog()).all_entries()] == ["2"]

    def test_remove_unknown_entry_is_ignored(self, tmp_path: Path):
        JsonStore(tmp_path).remove(_make_entry())
        assert not (tmp_path / "entries" / "2006" / "03" / "14" / "1142329800000.json").exists()

class TestCreateStore:
    def test_json_backend(self, tmp_path: Path):
        config = InkwellConfig.model_validate({"blog": {"directory": str(tmp_path)}})
        store = create_store(config)
        assert isinstance(store, JsonStore)
        assert store.root == tmp_path

    def test_memory_backend(self):
        config = InkwellConfig.model_validate({"store": {"backend": "memory"}})
        assert isinstance(create_store(config), MemoryStore)

    def test_unknown_backend(self):
        config = InkwellConfig.model_validate({"store": {"backend": "postgres"}})
        with pytest.raises(ValueError, match="Unknown store backend"):
            create_store(config)
