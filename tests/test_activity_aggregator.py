# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import shutil
import tempfile
import unittest
from pathlib import Path

from nutriclinic.activity.aggregator import (
    ActivityItem,
    aggregate_activity,
    filter_activities,
    merge_activities,
    normalize_audit_row,
    normalize_weight_row,
    parse_timestamp,
)
from nutriclinic.errors import StoreError
from nutriclinic.store.sqlite import SQLiteStore


def _item(type_: str, name: str, ts: str) -> ActivityItem:
    return ActivityItem(
        id=f"{type_}-{name}-{ts}",
        type=type_,
        patient_id=name,
        patient_name=name,
        description="",
        detail="",
        timestamp=ts,
    )


class TestNormalization(unittest.TestCase):
    ROSTER = {"p1": "Ana Silva", "p2": "Carlos Souza"}

    def test_audit_actions_map_to_verbs_and_categories(self) -> None:
        expected = {"create": ("registered", "meal"), "update": ("edited", "edit"), "delete": ("deleted", "delete")}
        for action, (verb, category) in expected.items():
            row = {
                "id": "a1",
                "patient_id": "p1",
                "action": action,
                "meal_type": "lunch",
                "details": {"total_calories": 512.5},
                "created_at": "2024-05-01T12:00:00Z",
            }
            item = normalize_audit_row(row, self.ROSTER)
            assert item is not None
            self.assertEqual(item.type, category)
            self.assertEqual(item.description, f"{verb} lunch")
            self.assertEqual(item.detail, "512.5 kcal")
            self.assertEqual(item.patient_name, "Ana Silva")

    def test_unknown_action_has_empty_description(self) -> None:
        row = {"id": "a2", "patient_id": "p1", "action": "merge", "details": None, "created_at": "2024-05-01T12:00:00Z"}
        item = normalize_audit_row(row, self.ROSTER)
        assert item is not None
        self.assertEqual(item.description, "")
        self.assertEqual(item.type, "other")
        self.assertEqual(item.detail, "0 kcal")

    def test_calories_default_to_zero_and_accept_json_text(self) -> None:
        row = {"id": "a3", "patient_id": "p2", "action": "create", "details": '{"total_calories": 300}', "created_at": "x"}
        item = normalize_audit_row(row, self.ROSTER)
        assert item is not None
        self.assertEqual(item.calories, 300)

        row["details"] = {"other": 1}
        item = normalize_audit_row(row, self.ROSTER)
        assert item is not None
        self.assertEqual(item.calories, 0)

    def test_rows_outside_roster_are_dropped(self) -> None:
        self.assertIsNone(normalize_weight_row({"id": "w", "patient_id": "p9", "weight": 60}, self.ROSTER))
        self.assertIsNone(normalize_audit_row({"id": "a", "patient_id": "p9", "action": "create"}, self.ROSTER))

    def test_weight_row(self) -> None:
        item = normalize_weight_row({"id": "w1", "patient_id": "p2", "weight": 70.0, "created_at": "t"}, self.ROSTER)
        assert item is not None
        self.assertEqual(item.type, "weight")
        self.assertEqual(item.description, "registered weight")
        self.assertEqual(item.detail, "70 kg")


class TestMergeAndFilter(unittest.TestCase):
    def test_merge_sorts_newest_first_across_sources(self) -> None:
        audits = [_item("meal", "a", "2024-01-01T10:00:00Z"), _item("meal", "a", "2024-01-03T10:00:00Z")]
        weights = [_item("weight", "b", "2024-01-02T10:00:00Z"), _item("weight", "b", "2024-01-04T10:00:00+00:00")]
        merged = merge_activities(audits, weights)
        stamps = [parse_timestamp(i.timestamp) for i in merged]
        self.assertEqual(stamps, sorted(stamps, reverse=True))
        self.assertEqual(merged[0].type, "weight")

    def test_unparseable_timestamps_sort_last(self) -> None:
        merged = merge_activities([_item("meal", "a", "garbage"), _item("meal", "b", "2024-01-01T00:00:00Z")])
        self.assertEqual(merged[-1].timestamp, "garbage")

    def test_category_filter(self) -> None:
        items = [_item("meal", "a", "1"), _item("weight", "b", "2"), _item("edit", "c", "3")]
        self.assertEqual([i.type for i in filter_activities(items, category="weight")], ["weight"])
        self.assertEqual(len(filter_activities(items, category="all")), 3)
        self.assertEqual(len(filter_activities(items, category="")), 3)

    def test_search_is_case_insensitive_and_empty_is_noop(self) -> None:
        items = [_item("meal", "Ana Silva", "2"), _item("meal", "Carlos", "1")]
        self.assertEqual([i.patient_name for i in filter_activities(items, search="ana")], ["Ana Silva"])
        self.assertEqual(filter_activities(items, search=""), items)
        self.assertEqual(filter_activities(items, search="   "), items)


class _BrokenWeights(SQLiteStore):
    def _select(self, query):
        if query.table == "growth_records":
            raise StoreError("connection reset")
        return super()._select(query)


class TestAggregateActivity(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutriclinic-activity-"))
        self.store = SQLiteStore(self._tmp / "app.db")
        for pid, name in (("P1", "Ana"), ("P2", "Bruno")):
            self.store.insert(
                "profiles",
                {"id": pid, "name": name, "user_type": "patient", "nutritionist_id": "N1", "created_at": "2024-01-01T00:00:00Z"},
            )
        self.store.insert(
            "profiles",
            {"id": "P3", "name": "Outro", "user_type": "patient", "nutritionist_id": "N2", "created_at": "2024-01-01T00:00:00Z"},
        )

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _run(self, nutritionist_id, **kwargs):
        return asyncio.run(aggregate_activity(nutritionist_id, store=self.store, **kwargs))

    def test_roster_example(self) -> None:
        self.store.insert(
            "meal_audit_log",
            {"patient_id": "P1", "action": "create", "details": {"total_calories": 400}, "created_at": "2024-01-01T00:00:10Z"},
        )
        self.store.insert(
            "growth_records",
            [
                {"patient_id": "P2", "weight": 70, "created_at": "2024-01-01T00:00:20Z"},
                {"patient_id": "P3", "weight": 65, "created_at": "2024-01-01T00:00:30Z"},
            ],
        )
        feed = self._run("N1")
        self.assertEqual(
            [(i.patient_id, i.description) for i in feed.items],
            [("P2", "registered weight"), ("P1", "registered")],
        )
        self.assertEqual(feed.truncated_sources, [])

    def test_fetch_cap_hides_the_oldest_row(self) -> None:
        self.store.insert(
            "growth_records",
            [
                {"patient_id": "P1", "weight": 80 - i * 0.1, "created_at": f"2024-01-01T00:{i // 60:02d}:{i % 60:02d}Z"}
                for i in range(101)
            ],
        )
        feed = self._run("N1", limit=100)
        self.assertEqual(len(feed.items), 100)
        self.assertNotIn("2024-01-01T00:00:00Z", [i.timestamp for i in feed.items])
        self.assertEqual(feed.truncated_sources, ["growth_records"])

    def test_empty_id_and_empty_roster(self) -> None:
        self.assertEqual(self._run("").items, [])
        self.assertEqual(self._run(None).items, [])
        self.assertEqual(self._run("nobody").items, [])

    def test_source_failure_returns_empty_feed(self) -> None:
        broken = _BrokenWeights(self._tmp / "app.db")
        self.store.insert("meal_audit_log", {"patient_id": "P1", "action": "create", "created_at": "2024-01-01T00:00:10Z"})
        with self.assertLogs("nutriclinic.activity.aggregator", level="ERROR"):
            feed = asyncio.run(aggregate_activity("N1", store=broken))
        self.assertEqual(feed.items, [])


if __name__ == "__main__":
    unittest.main()
