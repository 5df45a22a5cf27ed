# -*- coding: utf-8 -*-
"""
CLI tool for demo data.

Usage:
    python -m nutriclinic.demo.cli foods
    python -m nutriclinic.demo.cli seed <nutritionist> [--patients 3] [--days 7] [--weeks 8]
    python -m nutriclinic.demo.cli ghost <nutritionist>
    python -m nutriclinic.demo.cli diary <patient_id> [--date YYYY-MM-DD]
    python -m nutriclinic.demo.cli weights <patient_id> [--weeks 8] [--delta -0.5]
    python -m nutriclinic.demo.cli teardown <nutritionist>

``<nutritionist>`` is a user id or an email address.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date

from ..config import settings
from ..errors import NutriclinicError


def resolve_nutritionist(value: str) -> str | None:
    """Map an email or id to the nutritionist's user id."""
    from ..auth.storage import get_user_by_email, get_user_by_id

    user = get_user_by_email(value) if "@" in value else get_user_by_id(value)
    if not user or user.get("role") not in ("nutritionist", "super_admin"):
        return None
    return user["id"]


def cmd_foods(args: argparse.Namespace) -> int:
    """Seed the food bank."""
    from .seeding import ensure_food_bank

    added = ensure_food_bank()
    print(f"Added {added} foods" if added else "Food bank already has foods")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    """Create ghost patients with diaries and weight series."""
    from .seeding import seed_demo_practice

    nutritionist_id = resolve_nutritionist(args.nutritionist)
    if not nutritionist_id:
        print(f"Error: nutritionist not found: {args.nutritionist}")
        return 1

    result = seed_demo_practice(
        nutritionist_id,
        patients=args.patients,
        days=args.days,
        weeks=args.weeks,
    )
    for patient in result["patients"]:
        print(f"  {patient['id']}  {patient['name']}  <{patient['email']}>")
    print(f"Created {len(result['patients'])} demo patients")
    return 0


def cmd_ghost(args: argparse.Namespace) -> int:
    """Create one ghost patient."""
    from .seeding import create_ghost_patient

    nutritionist_id = resolve_nutritionist(args.nutritionist)
    if not nutritionist_id:
        print(f"Error: nutritionist not found: {args.nutritionist}")
        return 1

    patient = create_ghost_patient(nutritionist_id)
    print(f"{patient['id']}  {patient['name']}  <{patient['email']}>")
    return 0


def cmd_diary(args: argparse.Namespace) -> int:
    """Fill one day of a patient's diary."""
    from .seeding import fill_daily_diary

    day = date.fromisoformat(args.date) if args.date else None
    result = fill_daily_diary(args.patient_id, day)
    print(f"Created {result['total_meals']} meals ({result['total_items']} items)")
    return 0


def cmd_weights(args: argparse.Namespace) -> int:
    """Add a weekly weight series."""
    from .seeding import seed_weight_series

    records = seed_weight_series(args.patient_id, args.weeks, args.start, args.delta)
    for record in records:
        print(f"  {record['record_date']}  {record['weight']} kg")
    return 0


def cmd_teardown(args: argparse.Namespace) -> int:
    """Delete every ghost patient of a nutritionist."""
    from .seeding import teardown_demo_data

    nutritionist_id = resolve_nutritionist(args.nutritionist)
    if not nutritionist_id:
        print(f"Error: nutritionist not found: {args.nutritionist}")
        return 1

    if not args.yes:
        confirm = input(f"Delete all @{settings.demo_email_domain} patients? [y/N] ")
        if confirm.lower() != "y":
            print("Cancelled.")
            return 0

    counts = teardown_demo_data(nutritionist_id)
    for table, count in counts.items():
        print(f"  {table}: {count}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Nutriclinic demo data CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("foods", help="Seed the food bank when empty")

    seed_parser = subparsers.add_parser("seed", help="Ghost patients with diaries and weights")
    seed_parser.add_argument("nutritionist", help="Nutritionist id or email")
    seed_parser.add_argument("--patients", type=int, default=3, help="Number of patients (default: 3)")
    seed_parser.add_argument("--days", type=int, default=7, help="Diary days per patient (default: 7)")
    seed_parser.add_argument("--weeks", type=int, default=8, help="Weight records per patient (default: 8)")

    ghost_parser = subparsers.add_parser("ghost", help="Create one ghost patient")
    ghost_parser.add_argument("nutritionist", help="Nutritionist id or email")

    diary_parser = subparsers.add_parser("diary", help="Fill one day of the diary")
    diary_parser.add_argument("patient_id")
    diary_parser.add_argument("--date", help="YYYY-MM-DD (default: today)")

    weights_parser = subparsers.add_parser("weights", help="Weekly weight series")
    weights_parser.add_argument("patient_id")
    weights_parser.add_argument("--weeks", type=int, default=8, help="Number of weeks (default: 8)")
    weights_parser.add_argument("--start", type=float, default=None, help="First weight (default: profile weight)")
    weights_parser.add_argument("--delta", type=float, default=-0.5, help="Weekly change in kg (default: -0.5)")

    teardown_parser = subparsers.add_parser("teardown", help="Delete demo patients")
    teardown_parser.add_argument("nutritionist", help="Nutritionist id or email")
    teardown_parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Skip confirmation",
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(level=logging.INFO if args.verbose else settings.log_level)

    commands = {
        "foods": cmd_foods,
        "seed": cmd_seed,
        "ghost": cmd_ghost,
        "diary": cmd_diary,
        "weights": cmd_weights,
        "teardown": cmd_teardown,
    }

    try:
        return commands[args.command](args)
    except NutriclinicError as exc:
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
