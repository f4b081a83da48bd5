"""
Shared bootstrap for the booking scripts.

Loads .env, configures logging and builds a started BookingService, either
over the configured store backend or over a JSON seed file.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.booking.config import get_config  # noqa: E402
from src.booking.logging import setup_logging  # noqa: E402
from src.booking.notifications import EmailNotifier  # noqa: E402
from src.booking.service import BookingService  # noqa: E402
from src.booking.store import InMemoryStore, create_store  # noqa: E402

APP_URL = os.environ.get("BOOKING_APP_URL", "")


def add_seed_argument(parser) -> None:
    parser.add_argument(
        "--seed",
        default=None,
        help="JSON file {collection: {id: document}} to use instead of the configured store",
    )


async def open_service(seed: str | None = None) -> BookingService:
    """Build a BookingService and wait for its first snapshots."""
    config = get_config()
    setup_logging(
        json_output=config.log_json,
        log_level=config.log_level,
        script=Path(sys.argv[0]).stem,
        store="seed" if seed else config.store_backend,
    )

    if seed:
        seed_path = Path(seed)
        if not seed_path.is_absolute():
            seed_path = PROJECT_ROOT / seed_path
        store = InMemoryStore.from_json(seed_path)
    else:
        store = create_store(config)

    service = BookingService(store, notifier=EmailNotifier(config, app_url=APP_URL), config=config)
    service.start()
    # REST-backed stores only deliver snapshots on refresh
    refresh = getattr(store, "refresh", None)
    if refresh is not None:
        await refresh()
    return service


def parse_months(text: str | None) -> list[int] | None:
    """'10,11,3' -> [10, 11, 3]; None or '' -> None (all months)."""
    if not text:
        return None
    months = [int(part) for part in text.split(",") if part.strip()]
    bad = [m for m in months if not 1 <= m <= 12]
    if bad:
        raise ValueError(f"Invalid month(s): {bad}")
    return months
