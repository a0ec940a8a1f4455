"""Tests for blog content models."""

from datetime import UTC, date, datetime

from inkwell.models import ApprovalState, Blog, Category, DayBucket, Entry


def _make_entry(entry_id: str, title: str = "Title") -> Entry:
    return Entry(id=entry_id, title=title, created_at=datetime(2006, 3, 14, 9, 30, tzinfo=UTC))


class TestEntry:
    def test_defaults(self):
        entry = _make_entry("1")
        assert entry.state == ApprovalState.APPROVED
        assert entry.is_approved
        assert entry.comments_enabled
        assert entry.references_enabled
        assert entry.permalink is None
        assert not entry.aggregated

    def test_day(self):
        assert _make_entry("1").day == date(2006, 3, 14)

    def test_add_category_no_duplicates(self):
        entry = _make_entry("1")
        entry.add_category(Category(id="java", name="Java"))
        entry.add_category(Category(id="java", name="Java"))
        assert len(entry.categories) == 1


class TestDayBucket:
    def test_entries_after_newest_first(self):
        bucket = DayBucket(day=date(2006, 3, 14))
        a, b, c = _make_entry("a"), _make_entry("b"), _make_entry("c")
        for entry in (a, b, c):
            bucket.append(entry)
        assert [e.id for e in bucket.entries_after(a)] == ["c", "b"]
        assert bucket.entries_after(c) == []

    def test_entries_after_missing_entry(self):
        bucket = DayBucket(day=date(2006, 3, 14))
        assert bucket.entries_after(_make_entry("x")) == []

    def test_remove(self):
        bucket = DayBucket(day=date(2006, 3, 14))
        entry = _make_entry("a")
        bucket.append(entry)
        assert bucket.remove(entry) is True
        assert bucket.remove(entry) is False
        assert bucket.find("a") is None


class TestBlog:
    def test_day_for_creates_once(self):
        blog = Blog()
        day = date(2006, 3, 14)
        assert blog.find_day(day) is None
        bucket = blog.day_for(day)
        assert blog.day_for(day) is bucket

    def test_allocate_entry_id_bumps_on_clash(self):
        blog = Blog()
        when = datetime(2006, 3, 14, 9, 30, tzinfo=UTC)
        first_id = blog.allocate_entry_id(when)
        blog.day_for(when.date()).append(_make_entry(first_id))
        second_id = blog.allocate_entry_id(when)
        assert int(second_id) == int(first_id) + 1

    def test_allocate_entry_id_sees_prebuilt_days(self):
        when = datetime(2006, 3, 14, 9, 30, tzinfo=UTC)
        taken = str(int(when.timestamp() * 1000))
        day = when.date()
        blog = Blog(days={day: DayBucket(day=day, entries=[_make_entry(taken)])})

        assert blog.allocate_entry_id(when) == str(int(taken) + 1)

    def test_removed_entry_frees_its_id(self):
        blog = Blog()
        when = datetime(2006, 3, 14, 9, 30, tzinfo=UTC)
        entry = _make_entry(blog.allocate_entry_id(when))
        bucket = blog.day_for(when.date())
        bucket.append(entry)
        bucket.remove(entry)

        assert blog.allocate_entry_id(when) == entry.id

    def test_local_permalink(self):
        blog = Blog(url="http://example.com/blog/")
        entry = _make_entry("1")
        entry.permalink = "/2006/03/14/title.html"
        assert blog.local_permalink(entry) == "http://example.com/blog/2006/03/14/title.html"

    def test_entry_count_and_all_entries(self):
        blog = Blog()
        blog.day_for(date(2006, 3, 15)).append(_make_entry("2"))
        blog.day_for(date(2006, 3, 14)).append(_make_entry("1"))
        assert blog.entry_count == 2
        assert [e.id for e in blog.all_entries()] == ["1", "2"]
