# conciliation/core/normalizers.py

"""
Normalization utilities for raw spreadsheet cells.

Converts inconsistently formatted values into canonical ones. None of these
functions raise: unrecognized input falls back to a neutral value or passes
through unchanged.
"""

from datetime import date, datetime, timedelta
from typing import Any
import logging
import math
import re

from conciliation.config import get_settings
from conciliation.models import LOCAL, USD, USD_CABLE

settings = get_settings()
logger = logging.getLogger(__name__)

# Day zero of spreadsheet date serials (serial 25569 is 1970-01-01)
SERIAL_EPOCH = datetime(1899, 12, 30)

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

CURRENCY_LABELS = {
    "Pesos": LOCAL,
    "Dolar MEP (Local)": USD,
    "Dolar Cable (Exterior)": USD_CABLE,
}

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_TEXT_DATE = re.compile(r"^([A-Za-z]{3})\s+(\d{1,2})\s+(\d{4})")
_SERIAL = re.compile(r"^\d+(\.\d+)?$")
_TAX_ID = re.compile(r"(?<!\d)(\d{11})(?!\d)|(?<!\d)(\d{2})-(\d{8})-(\d)(?!\d)")


def _is_missing(raw: Any) -> bool:
    # Blank cells from pandas-built grids arrive as float NaN
    return raw is None or (isinstance(raw, float) and math.isnan(raw))


def _format_date(d: date) -> str:
    return f"{d.day:02d}/{d.month:02d}/{d.year}"


def _from_serial(serial: float) -> str:
    # The fractional part is the time of day; only whole days move the date
    try:
        return _format_date(SERIAL_EPOCH + timedelta(days=int(serial)))
    except (OverflowError, ValueError):
        logger.debug(f"Date serial {serial!r} out of range, keeping it as is")
        return str(serial)


def parse_date(raw: Any) -> str:
    """
    Normalize a date cell to DD/MM/YYYY.

    Handles:
    - D/M/YYYY strings (zero-padded)
    - "Jun 27 2025 12:00AM" style text
    - Spreadsheet serial numbers, with or without a time fraction
    - date and datetime objects
    """
    if _is_missing(raw) or isinstance(raw, bool):
        return ""

    if isinstance(raw, datetime):
        return _format_date(raw.date())

    if isinstance(raw, date):
        return _format_date(raw)

    if isinstance(raw, (int, float)):
        if raw <= 0:
            return str(raw)
        return _from_serial(raw)

    text = str(raw).strip()
    if not text:
        return ""

    match = _SLASH_DATE.match(text)
    if match:
        day, month, year = match.groups()
        return f"{int(day):02d}/{int(month):02d}/{year}"

    match = _TEXT_DATE.match(text)
    if match:
        month = MONTHS.get(match.group(1).lower())
        if month:
            return f"{int(match.group(2)):02d}/{month:02d}/{match.group(3)}"

    if _SERIAL.match(text):
        return _from_serial(float(text))

    logger.debug(f"Unrecognized date {text!r}, keeping it as is")
    return text


def parse_amount(raw: Any) -> float:
    """
    Normalize an amount cell to float.

    Strips a leading "$" or "US$", drops everything but digits, dot, comma and
    minus, then treats commas as thousands separators. Returns 0.0 when the
    value cannot be parsed.
    """
    if _is_missing(raw) or isinstance(raw, bool):
        return 0.0

    if isinstance(raw, (int, float)):
        return float(raw)

    text = str(raw).strip()
    for symbol in ("US$", "$"):
        if text.startswith(symbol):
            text = text[len(symbol):]
            break

    cleaned = re.sub(r"[^\d.,-]", "", text).replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_currency(raw: Any) -> str:
    """
    Map a currency label to LOCAL, USD or USD_CABLE.

    Exact labels win, then substring rules. Anything else is returned
    unchanged and acts as its own bucket when matching.
    """
    if _is_missing(raw):
        return ""

    label = str(raw).strip()
    if label in CURRENCY_LABELS:
        return CURRENCY_LABELS[label]

    lowered = label.lower()
    if "usd" in lowered or "dolar" in lowered:
        return USD
    if "peso" in lowered or "$" in lowered:
        return LOCAL

    return label


def infer_file_currency(file_name: str) -> str:
    """Currency of a ledger export, from its file name."""
    name = (file_name or "").lower()
    if "usd" in name or "dolar" in name:
        return USD
    return LOCAL


def clean_tax_id(raw: Any) -> str:
    """Remove hyphens and whitespace from a tax id."""
    if _is_missing(raw):
        return ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return re.sub(r"[-\s]", "", str(raw))


def extract_tax_id(text: str | None) -> str:
    """
    Find a tax id inside free text.

    Accepts an 11 digit run or the hyphenated 2-8-1 form. Returns the digits
    only, or "" when nothing is found.
    """
    if not text:
        return ""

    match = _TAX_ID.search(str(text))
    if not match:
        return ""
    if match.group(1):
        return match.group(1)
    return "".join(match.group(2, 3, 4))


def detect_special_flag(text: str | None) -> bool:
    """True when the text carries the restricted-counterparty marker."""
    if not text:
        return False
    return settings.restricted_marker in str(text)


def cell_text(raw: Any) -> str:
    """Cell value as stripped text; None and NaN become ""."""
    if _is_missing(raw):
        return ""
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()
