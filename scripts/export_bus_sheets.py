"""Export bus order sheets (.docx) for the bookings that need a bus.

Run with: python scripts/export_bus_sheets.py --month 11
Pending:  python scripts/export_bus_sheets.py --month 11 --pending-only
Output:   python scripts/export_bus_sheets.py --output data/bus-novembre.docx
"""

import argparse
import asyncio
import sys

from config import PROJECT_ROOT, add_seed_argument, open_service

from src.booking.bus_sheets import save_bus_sheets
from src.booking.dates import MONTH_NAMES_FR


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export bus order sheets to Word")
    add_seed_argument(parser)
    parser.add_argument(
        "--month",
        type=int,
        default=None,
        choices=range(1, 13),
        metavar="1-12",
        help="Only bookings of this calendar month (default: all)",
    )
    parser.add_argument(
        "--pending-only",
        action="store_true",
        help="Only bookings whose bus order is still pending",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output .docx path (default: data/bus-sheets-<month>.docx)",
    )
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    service = await open_service(args.seed)
    try:
        bookings = [b for b in service.bookings if not b.no_bus_required]
        if args.month is not None:
            bookings = [b for b in bookings if b.date.month == args.month]
        if args.pending_only:
            bookings = [b for b in bookings if b.effective_bus_status == "pending"]
        bookings.sort(key=lambda b: (b.date, b.time))
    finally:
        service.stop()

    if not bookings:
        print("No bookings need a bus for this selection.")
        return 0

    suffix = MONTH_NAMES_FR[args.month] if args.month is not None else "all"
    output = args.output or f"data/bus-sheets-{suffix}.docx"
    path = save_bus_sheets(bookings, PROJECT_ROOT / output)
    print(f"{len(bookings)} bus sheet(s) -> {path}")
    return 0


if __name__ == "__main__":
    args = _parse_args()
    try:
        sys.exit(asyncio.run(main(args)))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
