# -*- coding: utf-8 -*-

from __future__ import annotations

import shutil
import tempfile
import unittest
from datetime import date
from pathlib import Path

from nutriclinic.anthropometry.storage import create_record, list_records
from nutriclinic.diary.storage import create_meal, diary_adherence
from nutriclinic.errors import StoreError
from nutriclinic.store import set_store
from nutriclinic.store.sqlite import SQLiteStore


class _FailingAuditStore(SQLiteStore):
    def _insert(self, table, rows):
        if table == "meal_audit_log":
            raise StoreError("audit log unavailable")
        return super()._insert(table, rows)


class _StoreTestCase(unittest.TestCase):
    store_class = SQLiteStore

    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutriclinic-records-"))
        self.store = self.store_class(self._tmp / "app.db")
        set_store(self.store)
        self.patient_id = self.store.insert(
            "profiles",
            {"name": "Ana Silva", "user_type": "patient", "weight_kg": 80, "height_cm": 165, "created_at": "2023-01-01T00:00:00Z"},
        )[0]["id"]

    def tearDown(self) -> None:
        set_store(None)
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _profile(self) -> dict:
        return self.store.table("profiles").eq("id", self.patient_id).first()


class TestGrowthRecordProfileSync(_StoreTestCase):
    def test_latest_measurement_updates_profile(self) -> None:
        create_record(patient_id=self.patient_id, weight=70, height=170, record_date="2024-06-01")
        profile = self._profile()
        self.assertEqual(profile["weight_kg"], 70.0)
        self.assertEqual(profile["height_cm"], 170.0)

    def test_back_dated_measurement_keeps_current_weight(self) -> None:
        create_record(patient_id=self.patient_id, weight=70, record_date="2024-06-01")
        create_record(patient_id=self.patient_id, weight=90, height=180, record_date="2023-01-01")

        profile = self._profile()
        self.assertEqual(profile["weight_kg"], 70.0)
        self.assertEqual(profile["height_cm"], 165.0)
        self.assertEqual([r["record_date"] for r in list_records(self.patient_id)], ["2024-06-01", "2023-01-01"])

    def test_same_day_measurement_replaces_weight(self) -> None:
        create_record(patient_id=self.patient_id, weight=70, record_date="2024-06-01")
        create_record(patient_id=self.patient_id, weight=69.5, record_date="2024-06-01")
        self.assertEqual(self._profile()["weight_kg"], 69.5)


class TestDiaryAdherenceWindow(_StoreTestCase):
    def _meal(self, day: str) -> None:
        create_meal(patient_id=self.patient_id, meal_type="lunch", meal_date=day, items=[])

    def test_future_meals_are_not_counted(self) -> None:
        for day in ("2024-01-10", "2024-01-11", "2024-01-12"):
            self._meal(day)

        result = diary_adherence(patient_id=self.patient_id, days=1, today=date(2024, 1, 10))
        self.assertEqual(result["days_with_records"], 1)
        self.assertEqual(result["adherence_percentage"], 100)
        self.assertEqual(result["total_meals"], 1)
        self.assertEqual(result["current_streak"], 1)


class TestMealCreationRollback(_StoreTestCase):
    store_class = _FailingAuditStore

    def test_failed_audit_removes_meal_and_items(self) -> None:
        with self.assertRaises(StoreError):
            create_meal(
                patient_id=self.patient_id,
                meal_type="breakfast",
                meal_date="2024-01-10",
                items=[{"name": "Pão", "quantity": 50, "calories": 150}],
            )
        self.assertEqual(self.store.table("meals").count(), 0)
        self.assertEqual(self.store.table("meal_items").count(), 0)


if __name__ == "__main__":
    unittest.main()
