# -*- coding: utf-8 -*-

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect


class TestClinicFlow(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="nutriclinic-test-"))
        data_root = cls._tmp / "data"
        os.environ["NUTRICLINIC_DATA_ROOT"] = str(data_root)
        os.environ["NUTRICLINIC_DB_PATH"] = str(data_root / "nutriclinic.db")
        os.environ["NUTRICLINIC_STORAGE_ROOT"] = str(data_root / "storage")
        os.environ["NUTRICLINIC_JWT_SECRET"] = "test-secret"
        os.environ.pop("NUTRICLINIC_STORE_URL", None)
        os.environ.pop("NUTRICLINIC_FUNCTIONS_URL", None)
        os.environ.pop("NUTRICLINIC_PUBLIC_STORAGE_URL", None)

        # Ensure settings/app reflect the env vars above.
        for name in list(sys.modules.keys()):
            if name == "nutriclinic" or name.startswith("nutriclinic."):
                sys.modules.pop(name, None)

        from nutriclinic.api import app  # noqa: WPS433 (import inside test for env control)

        cls.app = app
        cls.client = TestClient(app)
        cls.nutri_token, cls.nutri = cls._register("nutri@example.com", "Dra. Paula")
        cls.other_token, cls.other = cls._register("outra@example.com", "Dra. Outra")

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        from nutriclinic.store import get_store

        get_store().close()
        shutil.rmtree(cls._tmp, ignore_errors=True)

    @classmethod
    def _register(cls, email: str, name: str, role: str = "nutritionist") -> tuple[str, dict]:
        resp = cls.client.post(
            "/api/auth/register",
            json={"email": email, "password": "password123", "name": name, "role": role},
        )
        assert resp.status_code == 200, resp.text
        payload = resp.json()
        return payload["token"], payload["user"]

    @staticmethod
    def _auth(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    def _invite(self, email: str, name: str, token: str | None = None) -> str:
        resp = self.client.post(
            "/api/patients/invite",
            json={"email": email, "name": name, "height_cm": 170, "weight_kg": 70},
            headers=self._auth(token or self.nutri_token),
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["patient_id"]

    def _store(self):
        from nutriclinic.store import get_store

        return get_store()

    # ---- auth / health ----

    def test_health_and_auth_required(self) -> None:
        resp = self.client.get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["store"], "sqlite")

        unauth = TestClient(self.app)
        self.assertEqual(unauth.get("/api/patients").status_code, 401)
        self.assertEqual(unauth.get("/api/activity").status_code, 401)
        unauth.close()

        resp = self.client.get("/api/auth/me", headers=self._auth(self.nutri_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["role"], "nutritionist")
        self.assertEqual(resp.json()["name"], "Dra. Paula")

    def test_duplicate_registration_and_bad_login(self) -> None:
        resp = self.client.post(
            "/api/auth/register",
            json={"email": "nutri@example.com", "password": "password123", "name": "X"},
        )
        self.assertEqual(resp.status_code, 409)
        resp = self.client.post("/api/auth/login", json={"email": "nutri@example.com", "password": "wrong-pass"})
        self.assertEqual(resp.status_code, 401)
        resp = self.client.post("/api/auth/login", json={"email": "nutri@example.com", "password": "password123"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["token"])

    # ---- patients ----

    def test_invite_roster_and_patient_access(self) -> None:
        patient_id = self._invite("Bia@Example.com", "Beatriz Gomes")

        resp = self.client.post(
            "/api/patients/invite",
            json={"email": "bia@example.com", "name": "Beatriz"},
            headers=self._auth(self.nutri_token),
        )
        self.assertEqual(resp.status_code, 409)

        resp = self.client.get("/api/patients?q=beatriz", headers=self._auth(self.nutri_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([p["id"] for p in resp.json()["items"]], [patient_id])

        invited = self._store().table("notifications").eq("user_id", self.nutri["id"]).eq("type", "patient_invited").execute()
        self.assertIn(patient_id, [n["content"]["patient_id"] for n in invited])

        # Another nutritionist cannot see the patient.
        resp = self.client.get(f"/api/patients/{patient_id}", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 403)

        # Registering with the invited email claims the profile.
        patient_token, patient = self._register("bia@example.com", "Bia", role="patient")
        self.assertEqual(patient["id"], patient_id)
        resp = self.client.get(f"/api/patients/{patient_id}", headers=self._auth(patient_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["name"], "Beatriz Gomes")
        self.assertEqual(self.client.get("/api/patients", headers=self._auth(patient_token)).status_code, 403)

        resp = self.client.delete(f"/api/patients/{patient_id}", headers=self._auth(self.nutri_token))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["is_active"])
        resp = self.client.get("/api/patients?active=false", headers=self._auth(self.nutri_token))
        self.assertIn(patient_id, [p["id"] for p in resp.json()["items"]])

    def test_remote_invite_goes_through_function(self) -> None:
        from nutriclinic.config import settings
        from nutriclinic.errors import FunctionInvocationError

        with mock.patch.object(settings, "functions_url", "https://fn.example.com"), mock.patch(
            "nutriclinic.patients.api.invoke", return_value={"userId": "remote-1"}
        ) as invoke:
            resp = self.client.post(
                "/api/patients/invite",
                json={"email": "remote@example.com", "name": "Remote"},
                headers=self._auth(self.nutri_token),
            )
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertEqual(resp.json(), {"patient_id": "remote-1", "invited": True})
        name, body = invoke.call_args.args
        self.assertEqual(name, "create-patient")
        self.assertEqual(body["email"], "remote@example.com")
        self.assertEqual(body["metadata"]["nutritionist_id"], self.nutri["id"])
        self.assertTrue(body["redirectTo"].endswith("/update-password"))

        error = FunctionInvocationError("create-patient", "Email already registered", logical=True)
        with mock.patch.object(settings, "functions_url", "https://fn.example.com"), mock.patch(
            "nutriclinic.patients.api.invoke", side_effect=error
        ):
            resp = self.client.post(
                "/api/patients/invite",
                json={"email": "remote@example.com", "name": "Remote"},
                headers=self._auth(self.nutri_token),
            )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Email already registered")

    # ---- appointments / billing ----

    def test_appointment_creates_transaction_and_notification(self) -> None:
        patient_id = self._invite("agenda@example.com", "Carlos Souza")
        auth = self._auth(self.nutri_token)

        resp = self.client.post("/api/billing/services", json={"name": "Consulta", "price": 200}, headers=auth)
        self.assertEqual(resp.status_code, 201)
        service_id = resp.json()["id"]

        resp = self.client.post(
            "/api/appointments",
            json={
                "patient_id": patient_id,
                "appointment_time": "2030-05-10T14:00:00Z",
                "billing": {"service_id": service_id},
            },
            headers=auth,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        appointment = body["appointment"]
        self.assertEqual(appointment["duration_minutes"], 60)
        self.assertEqual(appointment["appointment_type"], "first_appointment")
        self.assertEqual(appointment["status"], "scheduled")
        self.assertEqual(body["transaction"]["description"], "Agendamento: Carlos Souza - Consulta")
        self.assertEqual(body["transaction"]["amount"], 200)
        self.assertEqual(body["transaction"]["status"], "pending")
        self.assertEqual(body["transaction"]["transaction_date"], "2030-05-10")
        self.assertEqual(body["transaction"]["category"], "consulta")

        resp = self.client.post(
            "/api/appointments",
            json={
                "patient_id": patient_id,
                "appointment_time": "2030-05-17T14:00:00Z",
                "billing": {"custom_price": 150},
            },
            headers=auth,
        )
        self.assertEqual(resp.json()["transaction"]["description"], "Agendamento: Carlos Souza")

        resp = self.client.post(
            "/api/appointments",
            json={"patient_id": patient_id, "appointment_time": "2030-05-24T14:00:00Z"},
            headers=auth,
        )
        self.assertIsNone(resp.json()["transaction"])
        third_id = resp.json()["appointment"]["id"]

        reminders = self._store().table("notifications").eq("user_id", patient_id).eq("type", "appointment_reminder").count()
        self.assertEqual(reminders, 3)

        resp = self.client.post(f"/api/appointments/{third_id}/status", json={"status": "teleported"}, headers=auth)
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post(f"/api/appointments/{third_id}/status", json={"status": "confirmed"}, headers=auth)
        self.assertEqual(resp.json()["status"], "confirmed")

        resp = self.client.get(
            "/api/appointments",
            params={"start": "2030-05-01", "end": "2030-05-31", "status": "scheduled", "patient_id": patient_id},
            headers=auth,
        )
        times = [a["appointment_time"] for a in resp.json()["items"]]
        self.assertEqual(times, ["2030-05-10T14:00:00Z", "2030-05-17T14:00:00Z"])

        resp = self.client.get(f"/api/appointments/{third_id}", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 404)
        resp = self.client.delete(f"/api/appointments/{third_id}", headers=auth)
        self.assertEqual(resp.status_code, 200)

    def test_billing_summary_listing_and_receipt(self) -> None:
        auth = self._auth(self.nutri_token)
        patient_id = self._invite("billing@example.com", "Juliana Lima")
        created = []
        for payload in (
            {"type": "income", "amount": 300, "transaction_date": "2024-03-05", "description": "Consulta março", "patient_id": patient_id, "is_paid": True},
            {"type": "expense", "amount": 100, "transaction_date": "2024-03-10", "description": "Aluguel", "category": "aluguel_sala", "status": "paid"},
            {"type": "income", "amount": 50, "transaction_date": "2024-03-20", "description": "Retorno", "status": "overdue"},
            {"type": "income", "amount": 80, "transaction_date": "2024-04-02", "description": "Abril"},
        ):
            resp = self.client.post("/api/billing/transactions", json=payload, headers=auth)
            self.assertEqual(resp.status_code, 201, resp.text)
            created.append(resp.json())

        self.assertEqual(created[0]["status"], "paid")
        self.assertEqual(created[3]["status"], "pending")
        self.assertEqual(created[3]["due_date"], "2024-04-02")
        self.assertEqual(created[0]["patient_name"], "Juliana Lima")

        resp = self.client.get("/api/billing/summary", params={"year": 2024, "month": 3}, headers=auth)
        self.assertEqual(
            resp.json(),
            {"year": 2024, "month": 3, "income": 350, "net_income": 350, "expenses": 100, "net_result": 250, "overdue": 50},
        )

        resp = self.client.get(
            "/api/billing/transactions",
            params={"year": 2024, "month": 3, "page": 1, "page_size": 2},
            headers=auth,
        )
        body = resp.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual([t["transaction_date"] for t in body["items"]], ["2024-03-20", "2024-03-10"])

        resp = self.client.get("/api/billing/transactions", params={"sort": "password_hash"}, headers=auth)
        self.assertEqual(resp.status_code, 400)

        resp = self.client.get("/api/billing/expenses/distribution", params={"year": 2024, "month": 3}, headers=auth)
        self.assertEqual(resp.json()["items"], [{"name": "Aluguel sala", "value": 100}])

        resp = self.client.get("/api/billing/cash-flow", params={"year": 2024, "month": 3, "aggregation": "week"}, headers=auth)
        self.assertEqual(sum(p["income"] for p in resp.json()["items"]), 350)

        pending = self.client.get("/api/billing/pending", headers=auth).json()["items"]
        self.assertIn(created[3]["id"], [t["id"] for t in pending])

        resp = self.client.post(f"/api/billing/transactions/{created[3]['id']}/status", json={"status": "paid"}, headers=auth)
        self.assertEqual(resp.json()["status"], "paid")

        resp = self.client.get(f"/api/billing/transactions/{created[0]['id']}/receipt", headers=auth)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "application/pdf")
        self.assertTrue(resp.content.startswith(b"%PDF"))

        resp = self.client.get(f"/api/billing/transactions/{created[1]['id']}/receipt", headers=auth)
        self.assertEqual(resp.status_code, 400)
        resp = self.client.get(f"/api/billing/transactions/{created[0]['id']}", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 404)

    # ---- diary / anthropometry / activity ----

    def test_diary_audit_and_activity_feed(self) -> None:
        auth = self._auth(self.nutri_token)
        patient_id = self._invite("feed@example.com", "Fernanda Costa")

        resp = self.client.post(
            "/api/diary/meals",
            json={
                "patient_id": patient_id,
                "meal_type": "lunch",
                "meal_date": date.today().isoformat(),
                "items": [
                    {"name": "Arroz", "quantity": 100, "calories": 300},
                    {"name": "Frango", "quantity": 120, "calories": 200, "protein": 30},
                ],
            },
            headers=auth,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        meal = resp.json()
        self.assertEqual(meal["total_calories"], 500)
        self.assertEqual(len(meal["items"]), 2)

        resp = self.client.patch(f"/api/diary/meals/{meal['id']}", json={"notes": "sem sal"}, headers=auth)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.delete(f"/api/diary/meals/{meal['id']}", headers=auth)
        self.assertEqual(resp.status_code, 200)

        audit = self.client.get(f"/api/diary/{patient_id}/audit", headers=auth).json()["items"]
        self.assertEqual(sorted(a["action"] for a in audit), ["create", "delete", "update"])
        update = next(a for a in audit if a["action"] == "update")
        self.assertIn("notes", [c["field"] for c in update["changes"]])

        resp = self.client.post("/api/anthropometry", json={"patient_id": patient_id, "weight": 72.5}, headers=auth)
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertEqual(resp.json()["bmi"], 25.1)

        resp = self.client.get("/api/activity", params={"q": "FERNANDA"}, headers=auth)
        self.assertEqual(resp.status_code, 200)
        feed = resp.json()
        self.assertEqual([i["type"] for i in feed["items"]], ["weight", "delete", "edit", "meal"])
        self.assertEqual(feed["items"][0]["detail"], "72.5 kg")
        self.assertEqual(feed["items"][-1]["description"], "registered lunch")
        self.assertEqual(feed["items"][-1]["detail"], "500 kcal")
        self.assertEqual(feed["truncated_sources"], [])

        resp = self.client.get("/api/activity", params={"category": "weight"}, headers=auth)
        self.assertTrue(resp.json()["items"])
        self.assertTrue(all(i["type"] == "weight" for i in resp.json()["items"]))

        # The feed only covers the caller's roster.
        resp = self.client.get("/api/activity", params={"q": "fernanda"}, headers=self._auth(self.other_token))
        self.assertEqual(resp.json()["items"], [])

    def test_activity_websocket_pushes_roster_changes(self) -> None:
        token, _ = self._register("painel@example.com", "Dra. Painel")
        auth = self._auth(token)
        patient_id = self._invite("helena@example.com", "Helena Prado", token=token)

        with self.client.websocket_connect(f"/api/ws/activity?token={token}") as ws:
            snapshot = ws.receive_json()
            self.assertEqual(snapshot["type"], "snapshot")
            self.assertEqual(snapshot["items"], [])

            resp = self.client.post("/api/anthropometry", json={"patient_id": patient_id, "weight": 64}, headers=auth)
            self.assertEqual(resp.status_code, 201, resp.text)
            snapshot = ws.receive_json()
            self.assertEqual([i["type"] for i in snapshot["items"]], ["weight"])
            self.assertEqual(snapshot["items"][0]["patient_name"], "Helena Prado")

    def test_diary_adherence_and_summary(self) -> None:
        auth = self._auth(self.nutri_token)
        patient_id = self._invite("adherence@example.com", "Lucas Ferreira")
        today = date.today()
        for offset in (1, 2, 4):
            day = date.fromordinal(today.toordinal() - offset).isoformat()
            self.client.post(
                "/api/diary/meals",
                json={"patient_id": patient_id, "meal_type": "breakfast", "meal_date": day, "items": [{"name": "Pão", "quantity": 50, "calories": 150}]},
                headers=auth,
            )

        resp = self.client.get(f"/api/diary/{patient_id}/adherence", params={"days": 10}, headers=auth)
        body = resp.json()
        self.assertEqual(body["days_with_records"], 3)
        self.assertEqual(body["adherence_percentage"], 30)
        # Empty today does not break the streak: yesterday and the day before count.
        self.assertEqual(body["current_streak"], 2)

    # ---- goals ----

    def test_goal_lifecycle_endpoints(self) -> None:
        auth = self._auth(self.nutri_token)
        patient_id = self._invite("metas@example.com", "Marina Souza")

        resp = self.client.get(
            "/api/goals/deadline",
            params={"initial_weight": 80, "target_weight": 75, "start_date": "2024-01-01"},
            headers=auth,
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["min_days"], 39)

        start = date.today()
        resp = self.client.post(
            "/api/goals",
            json={
                "patient_id": patient_id,
                "initial_weight": 80,
                "target_weight": 75,
                "start_date": start.isoformat(),
                "target_date": (start + timedelta(days=60)).isoformat(),
                "energy_expenditure": 2500,
            },
            headers=auth,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        goal = resp.json()
        self.assertEqual(goal["title"], "Perder 5.0kg")
        self.assertEqual([w["type"] for w in goal["warnings"]], ["missing_data"])
        self.assertEqual(goal["days_remaining"], 60)
        self.assertEqual(goal["progress_status"], "on_track")

        resp = self.client.get(f"/api/goals/{goal['id']}", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 403)

        resp = self.client.post(f"/api/goals/{goal['id']}/progress", json={"current_weight": 77.5}, headers=auth)
        self.assertEqual(resp.json()["progress_percentage"], 50)
        self.assertEqual(resp.json()["progress_status"], "ahead")

        self.assertEqual(self.client.post(f"/api/goals/{goal['id']}/pause", headers=auth).json()["status"], "paused")
        resp = self.client.post(f"/api/goals/{goal['id']}/progress", json={"current_weight": 77}, headers=auth)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(self.client.post(f"/api/goals/{goal['id']}/resume", headers=auth).json()["status"], "active")

        resp = self.client.get(f"/api/goals/patient/{patient_id}/active", headers=auth)
        self.assertEqual(resp.json()["id"], goal["id"])
        resp = self.client.get(f"/api/goals/patient/{patient_id}", params={"status": "bogus"}, headers=auth)
        self.assertEqual(resp.status_code, 400)

        self.assertEqual(self.client.post(f"/api/goals/{goal['id']}/cancel", headers=auth).json()["status"], "cancelled")
        self.assertEqual(self.client.get(f"/api/goals/patient/{patient_id}/active", headers=auth).status_code, 404)

        self.assertEqual(self.client.delete(f"/api/goals/{goal['id']}", headers=auth).status_code, 200)
        self.assertEqual(self.client.get(f"/api/goals/{goal['id']}", headers=auth).status_code, 404)

    # ---- demo data ----

    def test_demo_seed_and_teardown(self) -> None:
        token, _ = self._register("demo-nutri@example.com", "Demo")
        auth = self._auth(token)

        ghost = self.client.post("/api/demo/patients", headers=auth)
        self.assertEqual(ghost.status_code, 201, ghost.text)
        ghost_id = ghost.json()["id"]
        self.assertTrue(ghost.json()["email"].endswith("@demo.nutriclinic.local"))

        # Nothing else in this suite adds foods before this point.
        resp = self.client.post(f"/api/demo/patients/{ghost_id}/diary", headers=auth)
        self.assertEqual(resp.status_code, 400)
        self.assertIn("No foods", resp.json()["detail"])

        resp = self.client.post("/api/demo/seed", params={"patients": 2, "days": 2, "weeks": 3}, headers=auth)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(len(resp.json()["patient_ids"]), 2)
        self.assertEqual(self.client.post("/api/demo/foods", headers=auth).json(), {"added": 0})

        resp = self.client.post(f"/api/demo/patients/{ghost_id}/diary", params={"day": "2024-01-15"}, headers=auth)
        self.assertEqual(resp.json()["total_meals"], 4)

        real_id = self._invite("real@example.com", "Maria Santos", token=token)
        resp = self.client.post(f"/api/demo/patients/{real_id}/weights", headers=auth)
        self.assertEqual(resp.status_code, 400)

        resp = self.client.delete("/api/demo", headers=auth)
        deleted = resp.json()["deleted"]
        self.assertEqual(deleted["profiles"], 3)
        self.assertEqual(deleted["meals"], 2 * 2 * 4 + 4)
        self.assertEqual(deleted["growth_records"], 2 * 3)

        roster = self.client.get("/api/patients", headers=auth).json()["items"]
        self.assertEqual([p["id"] for p in roster], [real_id])

    # ---- meal plans / labs / recommendations ----

    def test_meal_plan_activation_and_pdf(self) -> None:
        auth = self._auth(self.nutri_token)
        patient_id = self._invite("plan@example.com", "Rafael Pereira")
        plan = {
            "patient_id": patient_id,
            "name": "Plano A",
            "meals": [{"name": "Café", "foods": [{"name": "Aveia", "quantity": 40, "calories": 157, "protein": 5.6}]}],
        }
        first = self.client.post("/api/meal-plans", json=plan, headers=auth).json()
        self.assertTrue(first["is_active"])
        self.assertEqual(first["daily_calories"], 157)
        second = self.client.post("/api/meal-plans", json={**plan, "name": "Plano B"}, headers=auth).json()

        plans = self.client.get(f"/api/meal-plans/patient/{patient_id}", headers=auth).json()["items"]
        self.assertEqual({p["name"]: p["is_active"] for p in plans}, {"Plano A": False, "Plano B": True})

        resp = self.client.post(f"/api/meal-plans/{first['id']}/activate", headers=auth)
        self.assertTrue(resp.json()["is_active"])
        active = self.client.get(f"/api/meal-plans/patient/{patient_id}", params={"only_active": True}, headers=auth).json()["items"]
        self.assertEqual([p["id"] for p in active], [first["id"]])

        assigned = self._store().table("notifications").eq("user_id", patient_id).eq("type", "meal_plan_assigned").count()
        self.assertEqual(assigned, 3)

        resp = self.client.get(f"/api/meal-plans/{first['id']}/pdf", headers=auth)
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.content.startswith(b"%PDF"))

        resp = self.client.post(f"/api/meal-plans/{second['id']}/archive", headers=auth)
        self.assertEqual(resp.json()["status"], "archived")
        resp = self.client.get(f"/api/meal-plans/{second['id']}", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 403)

    def test_lab_results_and_recommendations(self) -> None:
        auth = self._auth(self.nutri_token)
        patient_id = self._invite("labs@example.com", "Camila Rodrigues")

        resp = self.client.post(
            "/api/labs/results",
            json={"patient_id": patient_id, "test_name": "Glicose", "test_value": "7.5", "reference_min": 4, "reference_max": 6, "test_date": "2024-02-01"},
            headers=auth,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        result = resp.json()
        self.assertEqual(result["status"], "high")
        self.assertEqual([r["id"] for r in self.client.get(f"/api/labs/{patient_id}/abnormal", headers=auth).json()["items"]], [result["id"]])

        resp = self.client.patch(f"/api/labs/results/{result['id']}", json={"test_value": 5}, headers=auth)
        self.assertEqual(resp.json()["status"], "normal")
        self.assertEqual(self.client.get(f"/api/labs/{patient_id}/abnormal", headers=auth).json()["items"], [])

        resp = self.client.post(
            "/api/recommendations",
            json={"patient_id": patient_id, "recommendation_key": "fiber", "title": "Aumentar fibras", "metadata": {"origin": "lab"}},
            headers=auth,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        rec = resp.json()
        self.assertEqual(rec["status"], "pending")
        self.assertEqual(rec["source_module"], "copilot_v1")

        resp = self.client.post(f"/api/recommendations/{rec['id']}/apply", headers=auth)
        applied = resp.json()
        self.assertEqual(applied["status"], "applied")
        self.assertEqual(applied["accepted_by"], self.nutri["id"])
        self.assertIsNotNone(applied["accepted_at"])
        self.assertIsNotNone(applied["applied_at"])

        resp = self.client.post(
            f"/api/recommendations/{rec['id']}/status",
            json={"status": "bogus", "metadata": {"note": "x"}},
            headers=auth,
        )
        self.assertEqual(resp.json()["status"], "pending")
        self.assertEqual(resp.json()["metadata"], {"origin": "lab", "note": "x"})

        resp = self.client.post(f"/api/recommendations/{rec['id']}/accept", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 404)

    # ---- notifications ----

    def test_notifications_api_and_websocket(self) -> None:
        token, user = self._register("inbox@example.com", "Inbox")
        auth = self._auth(token)

        resp = self.client.post("/api/notifications", json={"user_id": user["id"], "content": {"message": "oi"}}, headers=auth)
        self.assertEqual(resp.status_code, 201)
        first_id = resp.json()["id"]
        self.assertEqual(self.client.get("/api/notifications/unread-count", headers=auth).json(), {"unread_count": 1})

        with self.client.websocket_connect(f"/api/ws/notifications?token={token}") as ws:
            snapshot = ws.receive_json()
            self.assertEqual(snapshot["type"], "snapshot")
            self.assertEqual(snapshot["unread_count"], 1)

            self.client.post("/api/notifications", json={"user_id": user["id"], "type": "new_message"}, headers=auth)
            snapshot = ws.receive_json()
            self.assertEqual(snapshot["unread_count"], 2)
            self.assertEqual(snapshot["items"][0]["type"], "new_message")

            ws.send_json({"type": "refresh"})
            self.assertEqual(ws.receive_json()["unread_count"], 2)

        resp = self.client.post(f"/api/notifications/{first_id}/read", headers=auth)
        self.assertTrue(resp.json()["is_read"])
        resp = self.client.post(f"/api/notifications/{first_id}/read", headers=self._auth(self.other_token))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.post("/api/notifications/read-all", headers=auth).json(), {"updated": 1})
        self.assertEqual(self.client.delete("/api/notifications/read", headers=auth).json(), {"updated": 2})
        self.assertEqual(self.client.get("/api/notifications", headers=auth).json()["items"], [])

    def test_websocket_requires_token(self) -> None:
        with self.assertRaises(WebSocketDisconnect) as ctx:
            with self.client.websocket_connect("/api/ws/notifications?token=bogus") as ws:
                ws.receive_json()
        self.assertEqual(ctx.exception.code, 4401)

    # ---- avatars ----

    def test_avatar_upload_replaces_previous_file(self) -> None:
        token, _ = self._register("avatar@example.com", "Avatar")
        auth = self._auth(token)
        png = b"\x89PNG\r\n\x1a\n" + b"0" * 32

        first = self.client.post("/api/profile/avatar", files={"file": ("me.png", png, "image/png")}, headers=auth)
        self.assertEqual(first.status_code, 200, first.text)
        second = self.client.post("/api/profile/avatar", files={"file": ("me.png", png, "image/png")}, headers=auth)
        url = second.json()["avatar_url"]
        self.assertTrue(url.startswith("/storage/avatars/"))
        self.assertNotEqual(url, first.json()["avatar_url"])

        self.assertEqual(self.client.get(url).status_code, 200)
        self.assertEqual(self.client.get(first.json()["avatar_url"]).status_code, 404)
        self.assertEqual(self.client.get("/api/auth/me", headers=auth).json()["avatar_url"], url)

        resp = self.client.post("/api/profile/avatar", files={"file": ("x.txt", b"hi", "text/plain")}, headers=auth)
        self.assertEqual(resp.status_code, 400)


if __name__ == "__main__":
    unittest.main()
