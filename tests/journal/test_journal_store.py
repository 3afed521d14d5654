"""Tests for JsonJournalStore."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from mindful.errors import StorageError
from mindful.journal.models import Entry, Prompt, UserStats, WeeklyInsight
from mindful.journal.store import JsonJournalStore

_BASE = datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


def _make_entry(user_id: str = "u1", *, hours: int = 0, completed: bool = True, **kwargs) -> Entry:
    return Entry(
        user_id=user_id,
        content=kwargs.pop("content", f"entry at +{hours}h"),
        is_completed=completed,
        created_at=_BASE + timedelta(hours=hours),
        **kwargs,
    )


def _make_insight(user_id: str = "u1", *, week: int = 0, **kwargs) -> WeeklyInsight:
    start = datetime(2024, 1, 7, tzinfo=UTC) + timedelta(weeks=week)
    return WeeklyInsight(
        user_id=user_id,
        week_start=start,
        week_end=start + timedelta(days=7) - timedelta(microseconds=1),
        summary=kwargs.pop("summary", "A week."),
        mood_trend="calm",
        **kwargs,
    )


class TestUsers:
    def test_ensure_user_creates_once(self) -> None:
        store = JsonJournalStore()
        first = asyncio.run(store.ensure_user("u1"))
        second = asyncio.run(store.ensure_user("u1"))

        assert first.id == second.id == "u1"
        assert first.total_entries == 0

    def test_get_missing_user(self) -> None:
        assert asyncio.run(JsonJournalStore().get_user("ghost")) is None

    def test_update_aggregates(self) -> None:
        store = JsonJournalStore()
        asyncio.run(store.ensure_user("u1"))
        stats = UserStats(current_streak=2, longest_streak=5, total_entries=7, words_written=300)

        user = asyncio.run(store.update_user_aggregates("u1", stats))

        assert user.current_streak == 2
        assert user.longest_streak == 5
        assert asyncio.run(store.get_user("u1")).words_written == 300

    def test_update_aggregates_missing_user(self) -> None:
        with pytest.raises(KeyError):
            asyncio.run(JsonJournalStore().update_user_aggregates("ghost", UserStats()))

    def test_delete_user_cascades(self) -> None:
        store = JsonJournalStore()
        asyncio.run(store.ensure_user("u1"))
        asyncio.run(store.create_entry(_make_entry()))
        asyncio.run(store.create_prompt(Prompt(user_id="u1", prompt_text="Why?")))
        asyncio.run(store.create_weekly_insight(_make_insight()))
        asyncio.run(store.create_entry(_make_entry("u2")))

        asyncio.run(store.delete_user("u1"))

        assert asyncio.run(store.get_user("u1")) is None
        assert asyncio.run(store.get_entries("u1")) == []
        assert asyncio.run(store.get_unused_prompt("u1")) is None
        assert asyncio.run(store.list_weekly_insights("u1")) == []
        assert len(asyncio.run(store.get_entries("u2"))) == 1


class TestEntries:
    def test_create_and_get(self) -> None:
        store = JsonJournalStore()
        entry = asyncio.run(store.create_entry(_make_entry(content="Hello")))

        fetched = asyncio.run(store.get_entry(entry.id))
        assert fetched == entry

    def test_duplicate_id_rejected(self) -> None:
        store = JsonJournalStore()
        entry = _make_entry()
        asyncio.run(store.create_entry(entry))
        with pytest.raises(ValueError, match="duplicate"):
            asyncio.run(store.create_entry(entry))

    def test_reads_are_copies(self) -> None:
        store = JsonJournalStore()
        entry = asyncio.run(store.create_entry(_make_entry(themes=["work"])))

        fetched = asyncio.run(store.get_entry(entry.id))
        fetched.themes.append("mutated")

        assert asyncio.run(store.get_entry(entry.id)).themes == ["work"]

    def test_recent_newest_first_completed_only(self) -> None:
        store = JsonJournalStore()
        for hours in (0, 2, 1):
            asyncio.run(store.create_entry(_make_entry(hours=hours)))
        asyncio.run(store.create_entry(_make_entry(hours=3, completed=False)))

        recent = asyncio.run(store.get_recent_entries("u1", 2))
        assert [e.content for e in recent] == ["entry at +2h", "entry at +1h"]

        with_drafts = asyncio.run(store.get_recent_entries("u1", 10, completed_only=False))
        assert with_drafts[0].content == "entry at +3h"

    def test_range_is_inclusive(self) -> None:
        store = JsonJournalStore()
        for hours in (0, 1, 2, 3):
            asyncio.run(store.create_entry(_make_entry(hours=hours)))

        found = asyncio.run(
            store.get_entries_in_range("u1", _BASE + timedelta(hours=1), _BASE + timedelta(hours=2))
        )
        assert [e.content for e in found] == ["entry at +2h", "entry at +1h"]

    def test_update_entry(self) -> None:
        store = JsonJournalStore()
        entry = asyncio.run(store.create_entry(_make_entry(updated_at=_BASE)))

        updated = asyncio.run(store.update_entry(entry.id, {"title": "New title"}))

        assert updated.title == "New title"
        assert updated.updated_at > entry.updated_at
        assert asyncio.run(store.get_entry(entry.id)).title == "New title"

    def test_update_entry_revalidates(self) -> None:
        store = JsonJournalStore()
        entry = asyncio.run(store.create_entry(_make_entry()))
        with pytest.raises(ValueError):
            asyncio.run(store.update_entry(entry.id, {"sentiment_score": 4.0}))

    def test_update_missing_entry(self) -> None:
        with pytest.raises(KeyError):
            asyncio.run(JsonJournalStore().update_entry("nope", {"title": "x"}))

    def test_delete_entry(self) -> None:
        store = JsonJournalStore()
        entry = asyncio.run(store.create_entry(_make_entry()))
        asyncio.run(store.delete_entry(entry.id))
        assert asyncio.run(store.get_entry(entry.id)) is None


class TestPrompts:
    def test_unused_prompt_is_newest(self) -> None:
        store = JsonJournalStore()
        old = Prompt(user_id="u1", prompt_text="old", created_at=_BASE)
        new = Prompt(user_id="u1", prompt_text="new", created_at=_BASE + timedelta(minutes=1))
        asyncio.run(store.create_prompt(old))
        asyncio.run(store.create_prompt(new))

        assert asyncio.run(store.get_unused_prompt("u1")).prompt_text == "new"

    def test_created_at_tie_prefers_latest_insert(self) -> None:
        store = JsonJournalStore()
        asyncio.run(store.create_prompt(Prompt(user_id="u1", prompt_text="first", created_at=_BASE)))
        asyncio.run(store.create_prompt(Prompt(user_id="u1", prompt_text="second", created_at=_BASE)))

        assert asyncio.run(store.get_unused_prompt("u1")).prompt_text == "second"

    def test_mark_used(self) -> None:
        store = JsonJournalStore()
        prompt = asyncio.run(store.create_prompt(Prompt(user_id="u1", prompt_text="Why?")))

        asyncio.run(store.mark_prompt_used(prompt.id))

        assert asyncio.run(store.get_unused_prompt("u1")) is None
        assert asyncio.run(store.get_prompt(prompt.id)).is_used

    def test_mark_missing_prompt(self) -> None:
        with pytest.raises(KeyError):
            asyncio.run(JsonJournalStore().mark_prompt_used("nope"))


class TestWeeklyInsights:
    def test_one_per_week(self) -> None:
        store = JsonJournalStore()
        asyncio.run(store.create_weekly_insight(_make_insight()))
        with pytest.raises(ValueError, match="already exists"):
            asyncio.run(store.create_weekly_insight(_make_insight()))

    def test_get_by_week_start(self) -> None:
        store = JsonJournalStore()
        insight = asyncio.run(store.create_weekly_insight(_make_insight()))

        assert asyncio.run(store.get_weekly_insight("u1", insight.week_start)) == insight
        assert asyncio.run(store.get_weekly_insight("u2", insight.week_start)) is None

    def test_replace(self) -> None:
        store = JsonJournalStore()
        stale = asyncio.run(store.create_weekly_insight(_make_insight(summary="old")))

        fresh = asyncio.run(store.replace_weekly_insight(stale.id, _make_insight(summary="new")))

        current = asyncio.run(store.get_weekly_insight("u1", stale.week_start))
        assert current.id == fresh.id != stale.id
        assert current.summary == "new"
        assert len(asyncio.run(store.list_weekly_insights("u1"))) == 1

    def test_delete(self) -> None:
        store = JsonJournalStore()
        insight = asyncio.run(store.create_weekly_insight(_make_insight()))
        asyncio.run(store.delete_weekly_insight(insight.id))
        assert asyncio.run(store.get_weekly_insight("u1", insight.week_start)) is None

    def test_list_newest_week_first(self) -> None:
        store = JsonJournalStore()
        for week in (0, 2, 1):
            asyncio.run(store.create_weekly_insight(_make_insight(week=week, summary=f"week {week}")))

        listed = asyncio.run(store.list_weekly_insights("u1", limit=2))
        assert [i.summary for i in listed] == ["week 2", "week 1"]


class TestPersistence:
    def test_round_trip_through_file(self, tmp_path: Path) -> None:
        path = tmp_path / "data" / "journal.json"
        store = JsonJournalStore(path)
        asyncio.run(store.ensure_user("u1"))
        entry = asyncio.run(store.create_entry(_make_entry(themes=["work"], content="Hello")))

        reopened = JsonJournalStore(path)
        assert asyncio.run(reopened.get_entry(entry.id)) == entry
        assert asyncio.run(reopened.get_user("u1")) is not None

    def test_file_is_json(self, tmp_path: Path) -> None:
        path = tmp_path / "journal.json"
        store = JsonJournalStore(path)
        asyncio.run(store.create_entry(_make_entry()))

        data = json.loads(path.read_text())
        assert len(data["entries"]) == 1

    def test_truncated_file_raises_and_is_left_alone(self, tmp_path: Path) -> None:
        path = tmp_path / "journal.json"
        store = JsonJournalStore(path)
        asyncio.run(store.ensure_user("u1"))
        for hours in range(3):
            asyncio.run(store.create_entry(_make_entry(hours=hours, content=f"precious entry {hours}")))
        damaged = path.read_text()[:-5]
        path.write_text(damaged)

        with pytest.raises(StorageError, match="Cannot read journal store") as exc_info:
            JsonJournalStore(path)

        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)
        assert path.read_text() == damaged
        assert "precious entry 2" in path.read_text()

    def test_wrong_shape_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "journal.json"
        path.write_text(json.dumps({"entries": [{"content": "no user id"}]}))

        with pytest.raises(StorageError):
            JsonJournalStore(path)

    def test_save_leaves_no_temp_file(self, tmp_path: Path) -> None:
        path = tmp_path / "journal.json"
        store = JsonJournalStore(path)
        asyncio.run(store.create_entry(_make_entry()))

        assert [p.name for p in tmp_path.iterdir()] == ["journal.json"]

    def test_concurrent_writes_keep_latest_snapshot(self, tmp_path: Path) -> None:
        path = tmp_path / "journal.json"
        store = JsonJournalStore(path)

        async def _create_many() -> None:
            await asyncio.gather(*(store.create_entry(_make_entry(hours=h)) for h in range(5)))

        asyncio.run(_create_many())

        assert len(json.loads(path.read_text())["entries"]) == 5
