"""Generate random test bookings over the rest of the school year.

Dry-run by default: the generated bookings are printed, nothing is saved.
With --execute they are written to the store one by one; a failed write is
reported and the others are still attempted.

Run with: python scripts/generate_bookings.py --count 20
Months:   python scripts/generate_bookings.py --count 10 --months 11,12
Commit:   python scripts/generate_bookings.py --count 20 --execute

Exit codes:
  0 = requested number generated (and saved with --execute)
  1 = error
  2 = fewer bookings than requested (pool exhausted or failed writes)
"""

import argparse
import asyncio
import random
import sys

from config import add_seed_argument, open_service, parse_months

from src.booking.dates import format_date_fr


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate random bookings for the active school year",
    )
    add_seed_argument(parser)
    parser.add_argument("--count", type=int, required=True, help="Bookings to generate")
    parser.add_argument(
        "--months",
        default=None,
        help="Comma-separated calendar months to draw from, e.g. 10,11,3 (default: all)",
    )
    parser.add_argument(
        "--random-seed",
        type=int,
        default=None,
        help="Seed the random generator for a reproducible run",
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=True,
        help="Print what would be created without saving (default)",
    )
    mode_group.add_argument(
        "--execute",
        action="store_true",
        help="Save the generated bookings",
    )
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    is_dry_run = not args.execute
    mode_label = "DRY-RUN" if is_dry_run else "EXECUTE"
    months = parse_months(args.months)
    rng = random.Random(args.random_seed) if args.random_seed is not None else None

    service = await open_service(args.seed)
    try:
        result = await service.generate_random_bookings(args.count, months=months, rng=rng)

        print("=" * 60)
        print(f"RANDOM BOOKINGS [{mode_label}]")
        print("=" * 60)
        for booking in sorted(result.bookings, key=lambda b: (b.date, b.time)):
            print(
                f"  {format_date_fr(booking.date_key)} {booking.time:>2}h  "
                f"{booking.animation_title:<30} {booking.school_name} ({booking.commune})"
            )
        print()
        print(result.message)

        shortfall = result.is_partial
        if not is_dry_run:
            saved, failures = await service.commit_generated(result)
            print(f"Saved {saved}/{result.produced} bookings.")
            for booking_id, error in failures:
                print(f"  FAILED {booking_id}: {error}")
            shortfall = shortfall or bool(failures)
        else:
            print("Dry run: nothing saved. Re-run with --execute to save.")
    finally:
        service.stop()
    return 2 if shortfall else 0


if __name__ == "__main__":
    args = _parse_args()
    try:
        sys.exit(asyncio.run(main(args)))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
