# -*- coding: utf-8 -*-
"""
Demo data seeding

Ghost patients are ordinary profiles whose email ends with the reserved demo
domain (``settings.demo_email_domain``); teardown finds them by that suffix
alone, so real patients are never touched.
"""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from ..anthropometry.storage import create_record
from ..config import settings
from ..diary.storage import create_food, create_meal
from ..errors import DemoSeedError, StoreError
from ..patients.storage import create_patient_profile, get_patient
from ..store import get_store

logger = logging.getLogger(__name__)

RANDOM_NAMES = [
    "Ana Silva", "Carlos Souza", "Maria Santos", "João Oliveira", "Fernanda Costa",
    "Pedro Almeida", "Juliana Lima", "Rafael Pereira", "Camila Rodrigues", "Lucas Ferreira",
    "Beatriz Gomes", "Gabriel Martins", "Isabela Ribeiro", "Thiago Carvalho", "Larissa Araújo",
]

GENDERS = ["male", "female", "other"]

GOALS = ["Perder peso", "Ganhar massa", "Manter peso", "Melhorar saúde"]

MEAL_SLOTS = [
    ("breakfast", "08:00:00", "Café da Manhã"),
    ("lunch", "12:30:00", "Almoço"),
    ("snack", "16:00:00", "Lanche"),
    ("dinner", "19:30:00", "Jantar"),
]

# name, kcal, protein, carbs, fat per 100 g
STARTER_FOODS = [
    ("Arroz branco cozido", 128, 2.5, 28.1, 0.2),
    ("Feijão carioca cozido", 76, 4.8, 13.6, 0.5),
    ("Peito de frango grelhado", 159, 32.0, 0.0, 2.5),
    ("Ovo cozido", 146, 13.3, 0.6, 9.5),
    ("Pão francês", 300, 8.0, 58.6, 3.1),
    ("Banana prata", 98, 1.3, 26.0, 0.1),
    ("Maçã", 56, 0.3, 15.2, 0.0),
    ("Iogurte natural", 51, 4.1, 1.9, 3.0),
    ("Aveia em flocos", 394, 13.9, 66.6, 8.5),
    ("Brócolis cozido", 25, 2.1, 4.4, 0.5),
]

DEMO_TABLES = (
    "meal_audit_log",
    "growth_records",
    "appointments",
    "notifications",
    "lab_results",
    "meal_plans",
    "patient_goals",
    "clinical_recommendations",
    "financial_transactions",
)


def _rng(rng: Optional[random.Random]) -> random.Random:
    return rng or random.Random()


def is_demo_email(email: Optional[str]) -> bool:
    return bool(email) and email.lower().endswith(f"@{settings.demo_email_domain}")


def ensure_food_bank() -> int:
    """Insert the starter foods when the food bank is empty. Returns how many were added."""
    if get_store().table("foods").limit(1).execute():
        return 0
    for name, kcal, protein, carbs, fat in STARTER_FOODS:
        create_food({"name": name, "calories": kcal, "protein": protein, "carbs": carbs, "fat": fat, "base_qty": 100})
    logger.info("Food bank seeded with %d foods", len(STARTER_FOODS))
    return len(STARTER_FOODS)


def _unused_demo_email(rng: random.Random) -> str:
    store = get_store()
    for _ in range(20):
        email = f"paciente.{rng.randrange(10000)}@{settings.demo_email_domain}"
        if not store.table("profiles").select("id").eq("email", email).first():
            return email
    raise DemoSeedError("Could not find a free demo email")


def create_ghost_patient(nutritionist_id: str, *, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Create a random demo patient attached to ``nutritionist_id``."""
    if not nutritionist_id:
        raise DemoSeedError("nutritionist_id is required")
    rng = _rng(rng)
    today = date.today()
    age = 18 + rng.randrange(47)
    birth = date(today.year - age, 1 + rng.randrange(12), 1 + rng.randrange(28))

    patient = create_patient_profile(
        nutritionist_id=nutritionist_id,
        email=_unused_demo_email(rng),
        name=rng.choice(RANDOM_NAMES),
        fields={
            "gender": rng.choice(GENDERS),
            "birth_date": birth.isoformat(),
            "height_cm": 150 + rng.randrange(50),
            "weight_kg": 50 + rng.randrange(50),
            "goal": rng.choice(GOALS),
        },
    )
    logger.info("Ghost patient %s created for %s", patient["id"], nutritionist_id)
    return patient


def _food_line(food: Dict[str, Any], quantity: int) -> Dict[str, Any]:
    multiplier = quantity / float(food.get("base_qty") or 100)
    return {
        "food_id": food["id"],
        "name": food["name"],
        "quantity": quantity,
        "unit": "gram",
        **{n: round(float(food.get(n) or 0) * multiplier, 2) for n in ("calories", "protein", "carbs", "fat")},
    }


def fill_daily_diary(
    patient_id: str,
    day: Optional[date] = None,
    *,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Log breakfast, lunch, snack and dinner for ``day`` (default today).

    A meal that fails to save is skipped; if none could be saved the whole
    call fails.
    """
    rng = _rng(rng)
    day = day or date.today()
    foods = get_store().table("foods").limit(50).execute()
    if not foods:
        raise DemoSeedError("No foods found in the food bank")

    pool = rng.sample(foods, min(len(foods), 4 + rng.randrange(2)))
    meals: List[Dict[str, Any]] = []
    for meal_type, meal_time, label in MEAL_SLOTS:
        picked = rng.sample(pool, min(len(pool), 1 + rng.randrange(2)))
        items = [_food_line(food, 50 + rng.randrange(150)) for food in picked]
        try:
            meals.append(
                create_meal(
                    patient_id=patient_id,
                    meal_type=meal_type,
                    meal_date=day.isoformat(),
                    meal_time=meal_time,
                    notes=f"Refeição de demonstração - {label}",
                    items=items,
                    created_at=f"{day.isoformat()}T{meal_time}Z",
                )
            )
        except StoreError as exc:
            logger.error("Demo %s for %s not saved: %s", meal_type, patient_id, exc)

    if not meals:
        raise DemoSeedError("Could not create any meal")
    total_items = sum(len(m.get("items") or []) for m in meals)
    logger.info("Diary for %s on %s: %d meals, %d items", patient_id, day, len(meals), total_items)
    return {"meals": meals, "total_meals": len(meals), "total_items": total_items}


def seed_meal_history(
    patient_id: str,
    days: int = 7,
    *,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Fill the diary for the ``days`` days ending today."""
    rng = _rng(rng)
    today = today or date.today()
    total_meals = 0
    for offset in range(days - 1, -1, -1):
        total_meals += fill_daily_diary(patient_id, today - timedelta(days=offset), rng=rng)["total_meals"]
    return {"days": days, "total_meals": total_meals}


def seed_weight_series(
    patient_id: str,
    weeks: int = 8,
    start_weight: Optional[float] = None,
    weekly_delta: float = -0.5,
    *,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """One growth record per week, oldest first, ending today."""
    rng = _rng(rng)
    today = today or date.today()
    if start_weight is None:
        profile = get_patient(patient_id) or {}
        start_weight = float(profile.get("weight_kg") or 75)

    records = []
    for week in range(weeks):
        day = today - timedelta(weeks=weeks - 1 - week)
        weight = round(start_weight + week * weekly_delta + rng.uniform(-0.3, 0.3), 1)
        records.append(
            create_record(
                patient_id=patient_id,
                weight=weight,
                record_date=day.isoformat(),
                notes="Demo",
                created_at=f"{day.isoformat()}T09:00:00Z",
            )
        )
    return records


def seed_demo_practice(
    nutritionist_id: str,
    *,
    patients: int = 3,
    days: int = 7,
    weeks: int = 8,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    rng = _rng(rng)
    ensure_food_bank()
    created = []
    for _ in range(patients):
        patient = create_ghost_patient(nutritionist_id, rng=rng)
        seed_meal_history(patient["id"], days, rng=rng)
        seed_weight_series(patient["id"], weeks, start_weight=patient.get("weight_kg"), rng=rng)
        created.append(patient)
    return {"patients": created, "days": days, "weeks": weeks}


def teardown_demo_data(nutritionist_id: str) -> Dict[str, int]:
    """Delete the nutritionist's ghost patients and everything recorded for them."""
    store = get_store()
    ghosts = [
        p for p in store.table("profiles").eq("nutritionist_id", nutritionist_id).execute()
        if is_demo_email(p.get("email"))
    ]
    ids = [p["id"] for p in ghosts]
    counts: Dict[str, int] = {"profiles": len(ids)}
    if not ids:
        return counts

    meal_ids = [m["id"] for m in store.table("meals").select("id").in_("patient_id", ids).execute()]
    counts["meal_items"] = len(store.table("meal_items").in_("meal_id", meal_ids).delete()) if meal_ids else 0
    counts["meals"] = len(store.table("meals").in_("patient_id", ids).delete())
    for table in DEMO_TABLES:
        column = "user_id" if table == "notifications" else "patient_id"
        counts[table] = len(store.table(table).in_(column, ids).delete())
    store.table("users").in_("id", ids).delete()
    store.table("profiles").in_("id", ids).delete()
    logger.info("Demo teardown for %s: %s", nutritionist_id, counts)
    return counts
