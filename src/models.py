"""Blog content models: entries and the day buckets that hold them."""

from __future__ import annotations

import threading
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr


class ApprovalState(StrEnum):
    """Moderation state shared by entries, comments and references."""

    NEW = "new"
    APPROVED = "approved"
    REJECTED = "rejected"


class Category(BaseModel):
    """A blog-owned category that entries point at."""

    id: str
    name: str


class Comment(BaseModel):
    """A reader comment on an entry."""

    entry_id: str
    author: str = ""
    email: str = ""
    url: str = ""
    ip_address: str = ""
    body: str = ""
    created_at: datetime
    state: ApprovalState = ApprovalState.NEW


class Reference(BaseModel):
    """An inbound reference (trackback) from another site."""

    entry_id: str
    title: str = ""
    body: str = ""
    url: str = ""
    ip_address: str = ""
    blog_name: str = ""
    created_at: datetime
    state: ApprovalState = ApprovalState.NEW


class Entry(BaseModel):
    """A single blog entry.

    ``permalink`` is the path part only (``/2006/03/14/slug.html``); the
    blog prepends its own URL to get the local permalink. Entries pulled
    in from elsewhere keep their foreign link in ``original_permalink``.
    """

    id: str
    blog_id: str = ""
    title: str = ""
    body: str = ""
    extended_body: str = ""
    excerpt: str = ""
    keywords: str = ""
    author: str = ""
    created_at: datetime
    categories: list[Category] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    references: list[Reference] = Field(default_factory=list)
    state: ApprovalState = ApprovalState.APPROVED
    published: bool = True
    convert_breaks: bool = False
    comments_enabled: bool = True
    references_enabled: bool = True
    permalink: str | None = None
    original_permalink: str | None = None

    @property
    def day(self) -> date:
        return self.created_at.date()

    @property
    def is_approved(self) -> bool:
        return self.state == ApprovalState.APPROVED

    @property
    def aggregated(self) -> bool:
        return bool(self.original_permalink)

    def add_category(self, category: Category) -> None:
        if all(c.id != category.id for c in self.categories):
            self.categories.append(category)

    def add_comment(self, comment: Comment) -> None:
        self.comments.append(comment)

    def add_reference(self, reference: Reference) -> None:
        self.references.append(reference)


class DayBucket(BaseModel):
    """Entries created on one calendar day, in insertion order.

    The lock serialises everything that reads sibling titles and then
    mutates the list (permalink assignment, insertion, renames).
    """

    day: date
    entries: list[Entry] = Field(default_factory=list)

    # the owning Blog's _entry_ids, shared by every bucket
    # shared with the owning Blog so id allocation needs no full scan
    _lock: threading.RLock = PrivateAttr(default_factory=threading.RLock)
    _ids: set[str] = PrivateAttr(default_factory=set)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def index_of(self, entry: Entry) -> int:
        """Position of ``entry`` in the bucket, matched by id; -1 if absent."""
        for i, candidate in enumerate(self.entries):
            if candidate.id == entry.id:
                return i
        return -1

    def entries_after(self, entry: Entry) -> list[Entry]:
        """Entries inserted after ``entry``, newest first."""
        index = self.index_of(entry)
        if index < 0:
            return []
        return list(reversed(self.entries[index + 1 :]))

    def find(self, entry_id: str) -> Entry | None:
        return next((e for e in self.entries if e.id == entry_id), None)

    def append(self, entry: Entry) -> None:
        with self._lock:
            self.entries.append(entry)
            self._ids.add(entry.id)

    def remove(self, entry: Entry) -> bool:
        with self._lock:
            index = self.index_of(entry)
            if index < 0:
                return False
            del self.entries[index]
            self._ids.discard(entry.id)
            return True


class Blog(BaseModel):
    """The target blog: category collection plus day buckets."""

    id: str = "default"
    name: str = ""
    url: str = ""
    timezone: str = "UTC"
    categories: dict[str, Category] = Field(default_factory=dict)
    days: dict[date, DayBucket] = Field(default_factory=dict)

    _lock: threading.RLock = PrivateAttr(default_factory=threading.RLock)
    _entry_ids: set[str] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context: Any) -> None:
        for bucket in self.days.values():
            self._adopt(bucket)

    def _adopt(self, bucket: DayBucket) -> None:
        self._entry_ids.update(e.id for e in bucket.entries)
        bucket._ids = self._entry_ids

    def day_for(self, day: date) -> DayBucket:
        """Return the bucket for ``day``, creating it if needed."""
        with self._lock:
            bucket = self.days.get(day)
            if bucket is None:
                bucket = DayBucket(day=day)
                self._adopt(bucket)
                self.days[day] = bucket
            return bucket

    def find_day(self, day: date) -> DayBucket | None:
        return self.days.get(day)

    def add_category(self, category: Category) -> Category:
        with self._lock:
            return self.categories.setdefault(category.id, category)

    def get_category(self, category_id: str) -> Category | None:
        return self.categories.get(category_id)

    def all_entries(self) -> list[Entry]:
        """Every entry, oldest day first, insertion order within a day."""
        return [e for day in sorted(self.days) for e in self.days[day].entries]

    @property
    def entry_count(self) -> int:
        return sum(len(bucket.entries) for bucket in self.days.values())

    def allocate_entry_id(self, created_at: datetime) -> str:
        """Millisecond timestamp id, bumped until unused in this blog."""
        millis = int(created_at.timestamp() * 1000)
        with self._lock:
            while str(millis) in self._entry_ids:
                millis += 1
            return str(millis)

    def local_permalink(self, entry: Entry) -> str:
        return f"{self.url.rstrip('/')}{entry.permalink or ''}"
