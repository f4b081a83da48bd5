"""Formatting helpers for contact fields shown in e-mails, exports and admin edits."""

import re


def format_phone_number(phone: str) -> str:
    """Format a 10-digit French number as XX-XX-XX-XX-XX.

    Anything that does not reduce to exactly 10 digits is returned unchanged.
    """
    if not phone:
        return ""
    digits = re.sub(r"\D", "", str(phone))
    if len(digits) != 10:
        return phone
    return "-".join(digits[i : i + 2] for i in range(0, 10, 2))
