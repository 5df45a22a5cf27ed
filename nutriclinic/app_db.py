# -*- coding: utf-8 -*-
"""App database: SQLite schema and connection helpers for the local store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, FrozenSet, Iterator

# Columns holding JSON documents; encoded on write and decoded on read.
JSON_COLUMNS: Dict[str, FrozenSet[str]] = {
    "meal_audit_log": frozenset({"details"}),
    "notifications": frozenset({"content"}),
    "clinical_recommendations": frozenset({"input_snapshot", "output_snapshot", "metadata"}),
    "meal_plans": frozenset({"payload"}),
    "patient_goals": frozenset({"warnings"}),
}

BOOL_COLUMNS: Dict[str, FrozenSet[str]] = {
    "profiles": frozenset({"is_active"}),
    "notifications": frozenset({"is_read"}),
    "meal_plans": frozenset({"is_active"}),
    "services": frozenset({"is_active"}),
    "patient_goals": frozenset({"is_realistic"}),
}

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        name TEXT,
        email TEXT,
        user_type TEXT NOT NULL,
        nutritionist_id TEXT,
        birth_date TEXT,
        gender TEXT,
        height_cm REAL,
        weight_kg REAL,
        goal TEXT,
        phone TEXT,
        avatar_url TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_profiles_nutritionist ON profiles(nutritionist_id, user_type);",
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        nutritionist_id TEXT NOT NULL,
        patient_id TEXT NOT NULL,
        appointment_time TEXT NOT NULL,
        duration_minutes INTEGER NOT NULL DEFAULT 60,
        appointment_type TEXT NOT NULL,
        status TEXT NOT NULL,
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_appointments_nutritionist_time ON appointments(nutritionist_id, appointment_time);",
    """
    CREATE TABLE IF NOT EXISTS foods (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        calories REAL,
        protein REAL,
        carbs REAL,
        fat REAL,
        base_qty REAL NOT NULL DEFAULT 100,
        created_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS meals (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        meal_date TEXT NOT NULL,
        meal_time TEXT,
        meal_type TEXT NOT NULL,
        notes TEXT,
        total_calories REAL NOT NULL DEFAULT 0,
        total_protein REAL NOT NULL DEFAULT 0,
        total_carbs REAL NOT NULL DEFAULT 0,
        total_fat REAL NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_meals_patient_date ON meals(patient_id, meal_date);",
    """
    CREATE TABLE IF NOT EXISTS meal_items (
        id TEXT PRIMARY KEY,
        meal_id TEXT NOT NULL,
        food_id TEXT,
        name TEXT NOT NULL,
        quantity REAL NOT NULL DEFAULT 0,
        unit TEXT NOT NULL DEFAULT 'gram',
        calories REAL NOT NULL DEFAULT 0,
        protein REAL NOT NULL DEFAULT 0,
        carbs REAL NOT NULL DEFAULT 0,
        fat REAL NOT NULL DEFAULT 0,
        created_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_meal_items_meal ON meal_items(meal_id);",
    """
    CREATE TABLE IF NOT EXISTS meal_audit_log (
        id TEXT PRIMARY KEY,
        meal_id TEXT,
        patient_id TEXT NOT NULL,
        action TEXT NOT NULL,
        meal_type TEXT,
        meal_date TEXT,
        meal_time TEXT,
        details TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_meal_audit_patient_created ON meal_audit_log(patient_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS growth_records (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        weight REAL,
        height REAL,
        body_fat REAL,
        waist REAL,
        record_date TEXT,
        notes TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_growth_patient_created ON growth_records(patient_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        type TEXT NOT NULL,
        content TEXT,
        is_read INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_notifications_user_created ON notifications(user_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS clinical_recommendations (
        id TEXT PRIMARY KEY,
        nutritionist_id TEXT NOT NULL,
        patient_id TEXT NOT NULL,
        recommendation_key TEXT,
        source_module TEXT,
        title TEXT NOT NULL,
        recommendation_text TEXT,
        rationale TEXT,
        confidence_score REAL,
        status TEXT NOT NULL,
        input_snapshot TEXT,
        output_snapshot TEXT,
        metadata TEXT,
        accepted_by TEXT,
        accepted_at TEXT,
        applied_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS lab_results (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        test_name TEXT NOT NULL,
        test_value TEXT,
        test_unit TEXT,
        reference_min REAL,
        reference_max REAL,
        status TEXT NOT NULL,
        test_date TEXT NOT NULL,
        notes TEXT,
        pdf_path TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_lab_results_patient_date ON lab_results(patient_id, test_date DESC);",
    """
    CREATE TABLE IF NOT EXISTS meal_plans (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        nutritionist_id TEXT NOT NULL,
        name TEXT NOT NULL,
        status TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 0,
        start_date TEXT,
        end_date TEXT,
        payload TEXT,
        daily_calories REAL NOT NULL DEFAULT 0,
        daily_protein REAL NOT NULL DEFAULT 0,
        daily_carbs REAL NOT NULL DEFAULT 0,
        daily_fat REAL NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_meal_plans_patient ON meal_plans(patient_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS patient_goals (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        nutritionist_id TEXT NOT NULL,
        goal_type TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        initial_weight REAL NOT NULL,
        target_weight REAL NOT NULL,
        current_weight REAL,
        progress_percentage REAL NOT NULL DEFAULT 0,
        start_date TEXT NOT NULL,
        target_date TEXT NOT NULL,
        completion_date TEXT,
        status TEXT NOT NULL,
        is_realistic INTEGER NOT NULL DEFAULT 1,
        viability_score INTEGER,
        viability_notes TEXT,
        warnings TEXT,
        required_daily_deficit INTEGER,
        daily_calorie_goal INTEGER,
        meal_plan_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_patient_goals_patient ON patient_goals(patient_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS services (
        id TEXT PRIMARY KEY,
        nutritionist_id TEXT NOT NULL,
        name TEXT NOT NULL,
        price REAL NOT NULL,
        category TEXT,
        description TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS financial_transactions (
        id TEXT PRIMARY KEY,
        nutritionist_id TEXT NOT NULL,
        patient_id TEXT,
        type TEXT NOT NULL,
        category TEXT,
        description TEXT,
        amount REAL NOT NULL,
        transaction_date TEXT NOT NULL,
        due_date TEXT,
        status TEXT NOT NULL,
        service_id TEXT,
        appointment_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_transactions_nutritionist_date ON financial_transactions(nutritionist_id, transaction_date);",
)


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        for statement in _SCHEMA:
            cur.execute(statement)
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
