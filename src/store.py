"""Blog storage backends.

The importer and the permalink engine only need a narrow surface: find or
create a category, get the day bucket an entry belongs in, and persist an
entry. ``JsonStore`` keeps one JSON file per entry under
``entries/YYYY/MM/DD/`` plus a per-day index that records insertion order
(permalink disambiguation depends on it).
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path

from inkwell.config import InkwellConfig
from inkwell.errors import StorageError
from inkwell.models import Blog, Category, DayBucket, Entry
from inkwell.permalink import PermalinkProvider
from pydantic import ValidationError

logger = logging.getLogger(__name__)

CATEGORIES_FILENAME = "categories.json"
DAY_INDEX_FILENAME = "index.json"


class BlogStore(ABC):
    """Storage collaborator for importing and serving a blog."""

    def create_or_get_category(self, blog: Blog, name: str) -> Category:
        """Return the blog's category called ``name``, creating it if needed."""
        category = blog.get_category(name)
        if category is not None:
            return category
        category = blog.add_category(Category(id=name, name=name))
        self._store_categories(blog)
        logger.debug("Created category %r", name)
        return category

    def append_entry_to_day(self, blog: Blog, day: date) -> DayBucket:
        """Return the day bucket new entries for ``day`` go into."""
        return blog.day_for(day)

    @abstractmethod
    def persist(self, entry: Entry) -> None:
        """Store an entry.

        Raises:
            StorageError: If the entry could not be written.
        """

    @abstractmethod
    def remove(self, entry: Entry) -> None:
        """Delete a stored entry; unknown entries are ignored.

        Raises:
            StorageError: If the entry could not be deleted.
        """

    @abstractmethod
    def load(self, blog: Blog) -> Blog:
        """Fill ``blog`` with stored categories and entries."""

    def _store_categories(self, blog: Blog) -> None:
        return None


class MemoryStore(BlogStore):
    """Keeps copies of persisted entries in memory."""

    def __init__(self) -> None:
        self._entries: dict[str, Entry] = {}
        self._order: dict[date, list[str]] = {}
        self._categories: dict[str, Category] = {}

    def persist(self, entry: Entry) -> None:
        self._entries[entry.id] = entry.model_copy(deep=True)
        order = self._order.setdefault(entry.day, [])
        if entry.id not in order:
            order.append(entry.id)

    def remove(self, entry: Entry) -> None:
        self._entries.pop(entry.id, None)
        order = self._order.get(entry.day, [])
        if entry.id in order:
            order.remove(entry.id)

    def get(self, entry_id: str) -> Entry | None:
        stored = self._entries.get(entry_id)
        return stored.model_copy(deep=True) if stored else None

    def count(self) -> int:
        return len(self._entries)

    def load(self, blog: Blog) -> Blog:
        for category in self._categories.values():
            blog.add_category(category)
        permalinks = PermalinkProvider(blog)
        for day in sorted(self._order):
            for entry_id in self._order[day]:
                permalinks.attach(self._entries[entry_id].model_copy(deep=True))
        return blog

    def _store_categories(self, blog: Blog) -> None:
        self._categories.update(blog.categories)


class JsonStore(BlogStore):
    """File-backed store rooted at a blog directory."""

    def __init__(self, path: Path) -> None:
        self._root = path

    @property
    def root(self) -> Path:
        return self._root

    def persist(self, entry: Entry) -> None:
        day_dir = self._day_dir(entry.day)
        try:
            day_dir.mkdir(parents=True, exist_ok=True)
            (day_dir / f"{entry.id}.json").write_text(
                entry.model_dump_json(indent=2), encoding="utf-8"
            )
            order = self._read_day_index(day_dir)
            if entry.id not in order:
                order.append(entry.id)
                (day_dir / DAY_INDEX_FILENAME).write_text(json.dumps(order), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not store entry {entry.id}: {exc}") from exc

    def remove(self, entry: Entry) -> None:
        day_dir = self._day_dir(entry.day)
        try:
            (day_dir / f"{entry.id}.json").unlink(missing_ok=True)
            order = self._read_day_index(day_dir)
            if entry.id in order:
                order.remove(entry.id)
                (day_dir / DAY_INDEX_FILENAME).write_text(json.dumps(order), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not remove entry {entry.id}: {exc}") from exc

    def load(self, blog: Blog) -> Blog:
        categories_path = self._root / CATEGORIES_FILENAME
        if categories_path.exists():
            try:
                data = json.loads(categories_path.read_text(encoding="utf-8"))
                for item in data:
                    blog.add_category(Category.model_validate(item))
            except (json.JSONDecodeError, ValueError):
                logger.warning("Corrupt category file at %s, ignoring", categories_path)

        entries_dir = self._root / "entries"
        if not entries_dir.exists():
            return blog

        permalinks = PermalinkProvider(blog)
        loaded = 0
        for index_path in sorted(entries_dir.glob(f"*/*/*/{DAY_INDEX_FILENAME}")):
            for entry_id in self._read_day_index(index_path.parent):
                entry = self._read_entry(index_path.parent / f"{entry_id}.json")
                if entry is None:
                    continue
                for category in entry.categories:
                    blog.add_category(category)
                permalinks.attach(entry)
                loaded += 1

        logger.info("Loaded %d entries from %s", loaded, self._root)
        return blog

    def _store_categories(self, blog: Blog) -> None:
        path = self._root / CATEGORIES_FILENAME
        data = [c.model_dump(mode="json") for c in blog.categories.values()]
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not store categories: {exc}") from exc

    def _day_dir(self, day: date) -> Path:
        return self._root / "entries" / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"

    @staticmethod
    def _read_day_index(day_dir: Path) -> list[str]:
        path = day_dir / DAY_INDEX_FILENAME
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Corrupt day index at %s, rebuilding from entry files", path)
            return sorted(
                (p.stem for p in day_dir.glob("*.json") if p.name != DAY_INDEX_FILENAME),
                key=lambda stem: (len(stem), stem),
            )
        return [str(entry_id) for entry_id in data]

    @staticmethod
    def _read_entry(path: Path) -> Entry | None:
        if not path.exists():
            logger.warning("Indexed entry file missing: %s", path)
            return None
        try:
            return Entry.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError:
            logger.warning("Corrupt entry at %s, skipping", path)
            return None


def create_store(config: InkwellConfig) -> BlogStore:
    """Create the store named by ``config.store.backend``.

    Raises:
        ValueError: If the backend is unknown.
    """
    backend = config.store.backend
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        logger.info("Using JSON blog store at %s", config.blog_directory)
        return JsonStore(config.blog_directory)
    raise ValueError(f"Unknown store backend: {backend!r}")
