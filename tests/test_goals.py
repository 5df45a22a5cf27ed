# -*- coding: utf-8 -*-

from __future__ import annotations

import shutil
import tempfile
import unittest
from datetime import date
from pathlib import Path

from fastapi import HTTPException

from nutriclinic.goals.storage import (
    active_goal,
    calculate_viability,
    cancel_goal,
    complete_goal,
    create_goal,
    deadline_recommendation,
    ideal_deadline,
    list_goals,
    minimum_deadline,
    pause_goal,
    progress_percentage,
    progress_status,
    resume_goal,
    update_goal,
    update_progress,
)
from nutriclinic.store import set_store
from nutriclinic.store.sqlite import SQLiteStore

LOSS_GOAL = {
    "goal_type": "weight_loss",
    "initial_weight": 80,
    "target_weight": 75,
    "start_date": "2024-01-01",
    "target_date": "2024-03-01",
}


def _warning_types(result: dict) -> list:
    return [w["type"] for w in result["warnings"]]


class TestGoalViability(unittest.TestCase):
    def test_plan_matching_the_deadline(self) -> None:
        result = calculate_viability(LOSS_GOAL, energy_expenditure=2500, plan_calories=1900)
        self.assertTrue(result["is_realistic"])
        self.assertEqual(result["viability_score"], 5)
        self.assertEqual(result["required_daily_deficit"], 642)
        self.assertEqual(result["daily_calorie_goal"], 1858)
        self.assertEqual(result["warnings"], [])

    def test_plan_with_too_many_calories(self) -> None:
        result = calculate_viability(LOSS_GOAL, energy_expenditure=2500, plan_calories=2400)
        self.assertEqual(_warning_types(result), ["plan_too_high_calories"])
        self.assertEqual(result["viability_score"], 3)

    def test_missing_nutrition_data_caps_score(self) -> None:
        result = calculate_viability(LOSS_GOAL)
        self.assertTrue(result["is_realistic"])
        self.assertEqual(result["viability_score"], 3)
        self.assertEqual(_warning_types(result), ["missing_data"])
        self.assertIsNone(result["daily_calorie_goal"])

    def test_aggressive_loss_is_unrealistic(self) -> None:
        goal = {**LOSS_GOAL, "target_weight": 70, "target_date": "2024-01-31"}
        result = calculate_viability(goal)
        self.assertFalse(result["is_realistic"])
        self.assertEqual(result["viability_score"], 1)
        self.assertEqual(_warning_types(result), ["too_aggressive", "missing_data"])

    def test_fast_gain_is_unrealistic(self) -> None:
        goal = {**LOSS_GOAL, "goal_type": "weight_gain", "initial_weight": 60, "target_weight": 65, "target_date": "2024-01-31"}
        result = calculate_viability(goal)
        self.assertFalse(result["is_realistic"])
        self.assertIn("gain_too_fast", _warning_types(result))
        self.assertLess(result["required_daily_deficit"], 0)

    def test_short_deadline(self) -> None:
        goal = {**LOSS_GOAL, "target_weight": 79.5, "target_date": "2024-01-06"}
        result = calculate_viability(goal)
        self.assertEqual(result["viability_score"], 2)
        self.assertIn("too_short_deadline", _warning_types(result))

    def test_target_before_start(self) -> None:
        result = calculate_viability({**LOSS_GOAL, "target_date": "2023-12-01"})
        self.assertFalse(result["is_realistic"])
        self.assertEqual(_warning_types(result), ["invalid_dates"])


class TestGoalMath(unittest.TestCase):
    def test_deadlines(self) -> None:
        self.assertEqual(minimum_deadline(-5), 39)
        self.assertEqual(ideal_deadline(-5), 77)
        self.assertEqual(minimum_deadline(2), 31)
        self.assertEqual(ideal_deadline(2), 52)
        self.assertEqual(minimum_deadline(0), 1)

    def test_deadline_recommendation_dates(self) -> None:
        rec = deadline_recommendation(80, 75, "2024-01-01")
        self.assertEqual(rec["min_date"], "2024-02-09")
        self.assertEqual(rec["ideal_date"], "2024-03-18")
        self.assertEqual(rec["weight_change"], 5)

    def test_progress_percentage(self) -> None:
        self.assertEqual(progress_percentage(80, 75, 77.5), 50.0)
        self.assertEqual(progress_percentage(80, 75, 81), 0.0)
        self.assertEqual(progress_percentage(60, 65, 62), 40.0)
        self.assertEqual(progress_percentage(70, 70, 70), 100.0)

    def test_progress_status_against_linear_schedule(self) -> None:
        today = date(2024, 1, 31)
        goal = {**LOSS_GOAL, "status": "active"}
        self.assertEqual(progress_status({**goal, "progress_percentage": 65}, today), "ahead")
        self.assertEqual(progress_status({**goal, "progress_percentage": 45}, today), "on_track")
        self.assertEqual(progress_status({**goal, "progress_percentage": 30}, today), "behind")
        self.assertIsNone(progress_status({**goal, "status": "paused"}, today))


class TestGoalLifecycle(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutriclinic-goals-"))
        self.store = SQLiteStore(self._tmp / "app.db")
        set_store(self.store)

    def tearDown(self) -> None:
        set_store(None)
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _create(self, **overrides) -> dict:
        return create_goal({**LOSS_GOAL, **overrides}, patient_id="p1", nutritionist_id="n1")

    def test_create_uses_active_meal_plan(self) -> None:
        plan = self.store.insert(
            "meal_plans",
            {
                "patient_id": "p1",
                "nutritionist_id": "n1",
                "name": "Plano",
                "status": "active",
                "is_active": True,
                "daily_calories": 1900,
                "created_at": "2024-01-01T00:00:00Z",
            },
        )[0]
        goal = create_goal({**LOSS_GOAL}, patient_id="p1", nutritionist_id="n1", energy_expenditure=2500)
        self.assertEqual(goal["title"], "Perder 5.0kg")
        self.assertEqual(goal["status"], "active")
        self.assertEqual(goal["current_weight"], 80)
        self.assertEqual(goal["meal_plan_id"], plan["id"])
        self.assertEqual(goal["daily_calorie_goal"], 1858)
        self.assertIs(goal["is_realistic"], True)

    def test_progress_pause_resume_and_completion(self) -> None:
        goal = self._create()

        halfway = update_progress(goal["id"], 77.5)
        self.assertEqual(halfway["progress_percentage"], 50.0)
        self.assertEqual(halfway["status"], "active")

        self.assertEqual(pause_goal(goal["id"])["status"], "paused")
        with self.assertRaises(HTTPException) as ctx:
            update_progress(goal["id"], 76)
        self.assertEqual(ctx.exception.status_code, 409)
        with self.assertRaises(HTTPException):
            pause_goal(goal["id"])

        self.assertEqual(resume_goal(goal["id"])["status"], "active")
        done = update_progress(goal["id"], 74.8)
        self.assertEqual(done["status"], "completed")
        self.assertEqual(done["completion_date"], date.today().isoformat())
        self.assertIsNone(active_goal("p1"))
        with self.assertRaises(HTTPException):
            complete_goal(goal["id"])

    def test_cancel_and_status_filters(self) -> None:
        first = self._create(title="Primeira meta")
        second = self._create(title="Segunda meta")

        cancelled = cancel_goal(first["id"], "Paciente mudou de objetivo")
        self.assertEqual(cancelled["status"], "cancelled")
        self.assertEqual(cancelled["description"], "Paciente mudou de objetivo")

        self.assertEqual([g["id"] for g in list_goals("p1", status=["cancelled"])], [first["id"]])
        self.assertEqual(len(list_goals("p1", status=["active", "cancelled"])), 2)
        self.assertEqual(active_goal("p1")["id"], second["id"])

    def test_update_targets_recomputes_viability_and_progress(self) -> None:
        goal = self._create()
        update_progress(goal["id"], 78)
        updated = update_goal(goal["id"], {"target_weight": 70})
        self.assertEqual(updated["target_weight"], 70)
        self.assertEqual(updated["progress_percentage"], 20.0)
        self.assertEqual(updated["required_daily_deficit"], 1283)
        self.assertFalse(updated["is_realistic"])

    def test_invalid_date_is_rejected(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            self._create(target_date="not-a-date")
        self.assertEqual(ctx.exception.status_code, 400)


if __name__ == "__main__":
    unittest.main()
