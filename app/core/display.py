# app/core/display.py
"""
DISPLAY MODULE - Values the dashboard cards show next to the raw order data

Purpose:
    1. Power supply sizing from the LED strip length
    2. Deadline parsing, formatting and the "deadline soon" warning
    3. Matching the shipping method to an icon
"""

import re
from datetime import date, datetime
from typing import Optional

# LED strip draws 9 W per metre, power supply gets a 25% margin
WATTS_PER_METRE = 9
POWER_MARGIN = 1.25

SOON_THRESHOLD_DAYS = 2

# Checked in order, first substring match wins
SHIPPING_ICONS = [
    ("delivery", "delivery"),
    ("lieferung", "hands"),
    ("montage", "maintenance"),
    ("selbstabholer", "abholer"),
    ("selbstabholung", "delivery"),
    ("abholer", "delivery"),
    ("versand", "delivery-1"),
]


def calculate_power(led_length: float) -> int:
    """
    Watts the power supply must deliver for a sign.

    Examples:
        4.0 → 45
        12.5 → 141
    """
    if not led_length or led_length < 0:
        return 0
    return round(led_length * WATTS_PER_METRE * POWER_MARGIN)


def parse_deadline(value: Optional[str]) -> Optional[date]:
    """
    Parse a board date to a date object.

    Handles:
        - "2025-03-01" (board date column)
        - "2025-03-01 14:00" / ISO datetimes
        - "01.03.2025" (German format typed into text columns)
        - "01/03/2025"

    Returns None if nothing matches.
    """
    if not value:
        return None

    value = str(value).strip()

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass

    formats = [
        "%Y-%m-%d %H:%M",
        "%d.%m.%Y",
        "%d/%m/%Y",
        "%d-%m-%Y",
    ]
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    # "Deadline: 2025-03-01 (fix)" → pull the date part out
    match = re.search(r"(\d{4}-\d{2}-\d{2}|\d{1,2}\.\d{1,2}\.\d{4})", value)
    if match and match.group(1) != value:
        return parse_deadline(match.group(1))

    return None


def format_deadline(value: Optional[str]) -> str:
    """Format a deadline as DD.MM.YYYY for the card header."""
    if not value:
        return "Kein Datum"

    parsed = parse_deadline(value)
    if parsed is None:
        return "Ungültiges Datum"

    return parsed.strftime("%d.%m.%Y")


def is_deadline_soon(value: Optional[str], today: Optional[date] = None) -> bool:
    # Overdue orders count as soon too
    parsed = parse_deadline(value)
    if parsed is None:
        return False

    today = today or date.today()
    return (parsed - today).days < SOON_THRESHOLD_DAYS


def shipping_icon(versandart: Optional[str]) -> Optional[str]:
    if not versandart:
        return None

    versandart = versandart.lower()
    for key, icon in SHIPPING_ICONS:
        if key in versandart:
            return icon
    return None
