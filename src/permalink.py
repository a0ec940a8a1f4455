"""Title-based permalinks: ``/YYYY/MM/DD/<slug>.html``.

Only ``a-z``, ``0-9`` and ``_`` survive from the title. Titles that clean
down to nothing (or are empty) use the entry id instead. When a later
entry on the same day ends up with the same slug, the earlier entry gets
``_<id>`` appended, so the most recent one keeps the clean slug.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from inkwell.errors import PermalinkError
from inkwell.models import Blog, DayBucket, Entry

logger = logging.getLogger(__name__)

ENTRY_PERMALINK_PATTERN = re.compile(r"/(\d{4})/(\d{2})/(\d{2})/\w*\.html", re.ASCII)

_SEPARATORS = re.compile(r"[. ,;/\\-]")
_DISALLOWED = re.compile(r"[^a-z0-9_]")
_UNDERSCORE_RUNS = re.compile(r"_+")


def slugify_title(title: str | None, fallback: str) -> str:
    """Reduce a title to ``[a-z0-9_]``, or ``fallback`` if nothing is left."""
    if not title:
        return fallback
    slug = title.lower()
    slug = _SEPARATORS.sub("_", slug)
    slug = _DISALLOWED.sub("", slug)
    slug = _UNDERSCORE_RUNS.sub("_", slug)
    slug = slug.strip("_")
    return slug or fallback


class PermalinkProvider:
    """Assigns and resolves entry permalinks for one blog.

    Every operation that looks at sibling slugs holds the day bucket's
    lock, so two writers on the same day never compute the same path.

    Siblings collide when their *slugs* match, not only their exact
    titles: "Hello World" and "hello, world!" would otherwise both claim
    ``hello_world.html``.
    """

    def __init__(self, blog: Blog) -> None:
        self._blog = blog

    @property
    def blog(self) -> Blog:
        return self._blog

    def permalink_for(self, entry: Entry) -> str:
        """Compute the permalink without storing it."""
        bucket = self._bucket_of(entry)
        with bucket.lock:
            return self._compute(entry, bucket)

    def assign(self, entry: Entry) -> str:
        """Compute the permalink and store it on the entry."""
        bucket = self._bucket_of(entry)
        with bucket.lock:
            entry.permalink = self._compute(entry, bucket)
            return entry.permalink

    def attach(self, entry: Entry, bucket: DayBucket | None = None) -> list[Entry]:
        """Insert ``entry`` into its day bucket and assign its permalink.

        Earlier entries with the same slug lose the clean slug, so their
        permalinks are recomputed too.

        Returns:
            The siblings whose permalink changed.
        """
        if bucket is None:
            bucket = self._blog.day_for(entry.day)
        elif bucket.day != entry.day:
            raise PermalinkError(
                f"Entry {entry.id} belongs to {entry.day.isoformat()}, "
                f"not {bucket.day.isoformat()}"
            )
        with bucket.lock:
            if bucket.index_of(entry) < 0:
                bucket.append(entry)
            entry.permalink = self._compute(entry, bucket)
            return self._refresh(bucket, {self._slug(entry)}, skip=entry)

    def detach(self, entry: Entry) -> list[Entry]:
        """Remove ``entry`` from its bucket; same-slug siblings are refreshed."""
        bucket = self._blog.find_day(entry.day)
        if bucket is None:
            return []
        with bucket.lock:
            if not bucket.remove(entry):
                return []
            return self._refresh(bucket, {self._slug(entry)})

    def rename(self, entry: Entry, title: str) -> list[Entry]:
        """Change an entry's title and re-derive the affected permalinks."""
        bucket = self._bucket_of(entry)
        with bucket.lock:
            old_title = entry.title
            old_slug = self._slug(entry)
            entry.title = title
            entry.permalink = self._compute(entry, bucket)
            changed = self._refresh(bucket, {old_slug, self._slug(entry)}, skip=entry)
        logger.debug("Renamed entry %s: %r -> %r", entry.id, old_title, title)
        return changed

    def is_entry_permalink(self, path: str | None) -> bool:
        if path is None:
            return False
        return ENTRY_PERMALINK_PATTERN.fullmatch(path) is not None

    def resolve(self, path: str | None) -> Entry | None:
        """Find the entry a permalink path points at, or None."""
        if path is None:
            return None
        match = ENTRY_PERMALINK_PATTERN.fullmatch(path)
        if match is None:
            return None
        try:
            day = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

        bucket = self._blog.find_day(day)
        if bucket is None:
            return None

        with bucket.lock:
            for entry in bucket.entries:
                # match on the local permalink in case the entry was aggregated
                # from somewhere else and carries a foreign one
                permalink = entry.permalink or self._compute(entry, bucket)
                local = f"{self._blog.url.rstrip('/')}{permalink}"
                if local.endswith(path):
                    return entry
        return None

    def _bucket_of(self, entry: Entry) -> DayBucket:
        bucket = self._blog.find_day(entry.day)
        if bucket is None or bucket.index_of(entry) < 0:
            raise PermalinkError(
                f"Entry {entry.id} is not in the {entry.day.isoformat()} day bucket"
            )
        return bucket

    def _compute(self, entry: Entry, bucket: DayBucket) -> str:
        if bucket.index_of(entry) < 0:
            raise PermalinkError(
                f"Entry {entry.id} is not in the {bucket.day.isoformat()} day bucket"
            )
        day = entry.day
        slug = self._slug(entry)
        path = f"/{day.year:04d}/{day.month:02d}/{day.day:02d}/{slug}"
        if entry.title and any(
            self._slug(sibling) == slug for sibling in bucket.entries_after(entry)
        ):
            path = f"{path}_{entry.id}"
        return f"{path}.html"

    @staticmethod
    def _slug(entry: Entry) -> str:
        return slugify_title(entry.title, fallback=entry.id)

    def _refresh(
        self,
        bucket: DayBucket,
        slugs: set[str],
        *,
        skip: Entry | None = None,
    ) -> list[Entry]:
        changed: list[Entry] = []
        for sibling in bucket.entries:
            if skip is not None and sibling.id == skip.id:
                continue
            if self._slug(sibling) not in slugs:
                continue
            permalink = self._compute(sibling, bucket)
            if permalink != sibling.permalink:
                sibling.permalink = permalink
                changed.append(sibling)
        return changed
