# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from nutriclinic.anthropometry.storage import compute_bmi
from nutriclinic.billing.storage import month_bounds
from nutriclinic.diary.storage import compute_totals
from nutriclinic.labs.storage import calculate_status
from nutriclinic.meal_plans.storage import daily_totals, recalculate_meals
from nutriclinic.reports import MealPlanReport, PDFReportGenerator, ReceiptData, format_brl


class TestLabStatus(unittest.TestCase):
    def test_numeric_values(self) -> None:
        self.assertEqual(calculate_status(5.0, 4, 6), "normal")
        self.assertEqual(calculate_status("3.9", 4, 6), "low")
        self.assertEqual(calculate_status(6.1, 4, 6), "high")
        self.assertEqual(calculate_status("4", 4, 6), "normal")

    def test_leading_number_in_text(self) -> None:
        self.assertEqual(calculate_status("7.2 mg/dL", 4, 6), "high")

    def test_pending_cases(self) -> None:
        self.assertEqual(calculate_status(None, 4, 6), "pending")
        self.assertEqual(calculate_status("", 4, 6), "pending")
        self.assertEqual(calculate_status("positivo", 4, 6), "pending")
        self.assertEqual(calculate_status(5, None, 6), "pending")
        self.assertEqual(calculate_status(5, 4, None), "pending")


class TestNutrientMath(unittest.TestCase):
    def test_compute_bmi(self) -> None:
        self.assertEqual(compute_bmi(70, 175), 22.9)
        self.assertIsNone(compute_bmi(70, None))
        self.assertIsNone(compute_bmi(70, 0))

    def test_meal_totals_round_to_two_decimals(self) -> None:
        totals = compute_totals(
            [
                {"calories": 100.123, "protein": 1.111, "carbs": 10, "fat": 0},
                {"calories": 50.001, "protein": None, "carbs": "2.5", "fat": 1},
            ]
        )
        self.assertEqual(totals, {"total_calories": 150.12, "total_protein": 1.11, "total_carbs": 12.5, "total_fat": 1.0})

    def test_plan_totals(self) -> None:
        meals = recalculate_meals(
            [
                {"name": "Café", "foods": [{"name": "Pão", "quantity": 50, "calories": 150, "protein": 4, "carbs": 29, "fat": 1.5}]},
                {"name": "Almoço", "foods": [
                    {"name": "Arroz", "quantity": 100, "calories": 128, "protein": 2.5, "carbs": 28.1, "fat": 0.2},
                    {"name": "Frango", "quantity": 120, "calories": 190.8, "protein": 38.4, "carbs": 0, "fat": 3},
                ]},
            ]
        )
        self.assertEqual(meals[1]["total_calories"], 318.8)
        self.assertEqual(daily_totals(meals)["daily_calories"], 468.8)
        self.assertEqual(daily_totals(meals)["daily_protein"], 44.9)


class TestBilling(unittest.TestCase):
    def test_month_bounds(self) -> None:
        self.assertEqual(month_bounds(2024, 2), ("2024-02-01", "2024-02-29"))
        self.assertEqual(month_bounds(2023, 12), ("2023-12-01", "2023-12-31"))

    def test_format_brl(self) -> None:
        self.assertEqual(format_brl(1234.5), "R$ 1.234,50")
        self.assertEqual(format_brl(0), "R$ 0,00")
        self.assertEqual(format_brl(-80), "-R$ 80,00")
        self.assertEqual(format_brl("abc"), "R$ 0,00")


class TestPDFReports(unittest.TestCase):
    def test_receipt_pdf(self) -> None:
        content = PDFReportGenerator().generate_receipt(
            ReceiptData(
                transaction_id="t-1",
                amount=250,
                description="Consulta <inicial> & retorno",
                transaction_date="2024-03-10",
                patient_name="Ana Silva",
                provider_name="Dra. Paula",
                provider_email="paula@example.com",
            )
        )
        self.assertTrue(content.startswith(b"%PDF"))

    def test_meal_plan_pdf(self) -> None:
        meals = recalculate_meals(
            [{"name": "Café", "meal_time": "08:00", "foods": [{"name": "Aveia", "quantity": 40, "unit": "g", "calories": 157}]}]
        )
        content = PDFReportGenerator().generate_meal_plan(
            MealPlanReport(
                plan_name="Plano semanal",
                patient_name="Ana Silva",
                nutritionist_name="Dra. Paula",
                start_date="2024-03-01",
                meals=meals,
                daily_totals=daily_totals(meals),
            )
        )
        self.assertTrue(content.startswith(b"%PDF"))


if __name__ == "__main__":
    unittest.main()
