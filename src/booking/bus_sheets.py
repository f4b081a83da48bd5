"""Bus order sheets as a Word document.

Each booking becomes one block titled "Fiche de commande de bus - <MOIS>"
followed by the fields the bus company needs. Blocks are laid out three per
page, separated by a rule, with a page break before every fourth block.
"""

from pathlib import Path
from typing import Iterable

import docx
from docx.shared import Pt

from src.booking.dates import MONTH_NAMES_FR
from src.booking.logging import get_logger
from src.booking.models import Booking

log = get_logger(__name__)

SHEETS_PER_PAGE = 3
TITLE_PREFIX = "Fiche de commande de bus - "
SEPARATOR = "_" * 60


def bus_sheet_fields(booking: Booking) -> list[tuple[str, str]]:
    """Labelled rows of one bus sheet block."""
    day = booking.date.strftime("%d/%m/%Y")
    return [
        ("Commune", booking.commune),
        ("Nom de l'école", booking.school_name),
        ("Nombre d'enfants", str(booking.student_count)),
        ("Nombre d'adultes", str(booking.adult_count)),
        ("Date et heure de l'animation", f"{day} à {booking.time}h"),
        ("Où et à quelle heure doit passer le bus", booking.bus_info),
    ]


def build_bus_sheets(bookings: Iterable[Booking]) -> docx.Document:
    """Build the bus sheet document for the given bookings, in order."""
    document = docx.Document()
    count = 0
    for index, booking in enumerate(bookings):
        if index and index % SHEETS_PER_PAGE == 0:
            document.add_page_break()
        elif index:
            document.add_paragraph(SEPARATOR)

        title = document.add_paragraph()
        prefix = title.add_run(TITLE_PREFIX)
        prefix.font.size = Pt(14)
        month = title.add_run(MONTH_NAMES_FR[booking.date.month].upper())
        month.bold = True
        month.font.size = Pt(14)

        for label, value in bus_sheet_fields(booking):
            row = document.add_paragraph()
            label_run = row.add_run(f"{label} : ")
            label_run.bold = True
            row.add_run(value)
        count += 1

    log.info("bus_sheets_built", sheets=count)
    return document


def save_bus_sheets(bookings: Iterable[Booking], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    build_bus_sheets(bookings).save(str(path))
    log.info("bus_sheets_saved", path=str(path))
    return path
