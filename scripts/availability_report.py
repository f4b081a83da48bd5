"""Print the remaining bookable slots per month of the active school year.

A slot is counted once per day and band (each morning hour, and the
afternoon), whatever the number of animations that could fill it.

Run with: python scripts/availability_report.py
Seeded:   python scripts/availability_report.py --seed data/seed.json
Detailed: python scripts/availability_report.py --by-animation

Exit codes:
  0 = success (report on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import sys
from collections import Counter

from config import add_seed_argument, open_service

from src.booking.availability import count_by_month
from src.booking.dates import MONTH_NAMES_FR, school_year_months, today


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Remaining bookable slots per month for the active school year.",
    )
    add_seed_argument(parser)
    parser.add_argument(
        "--by-animation",
        action="store_true",
        help="Also list the number of open (date, hour) slots per animation.",
    )
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    service = await open_service(args.seed)
    try:
        reference = today()
        slots = service.available_slots(reference)
        months = school_year_months(service.settings.active_year, reference)
        counts = count_by_month(slots, months)

        print("=" * 60)
        print(f"AVAILABILITY REPORT {service.settings.active_year}")
        print("=" * 60)
        for (year, month), count in counts.items():
            label = f"{MONTH_NAMES_FR[month].capitalize()} {year}"
            print(f"  {label:<20} {count:>4}")
        print("-" * 60)
        print(f"  {'Total':<20} {sum(counts.values()):>4}")

        if args.by_animation:
            per_animation = Counter(slot.animation.title for slot in slots)
            print()
            print("Open slots per animation:")
            for animation in service.animations:
                print(f"  {animation.title:<40} {per_animation.get(animation.title, 0):>4}")
    finally:
        service.stop()
    return 0


if __name__ == "__main__":
    args = _parse_args()
    try:
        sys.exit(asyncio.run(main(args)))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
