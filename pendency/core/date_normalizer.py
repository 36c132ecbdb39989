# pendency/core/date_normalizer.py

from datetime import date, datetime, timedelta
from typing import Optional

from pendency.config import (
    SERIAL_DATE_THRESHOLD,
    SERIAL_EPOCH_OFFSET_DAYS,
    SECONDS_PER_DAY,
)


# Tried in this order; the first that echoes back exactly wins
DATE_FORMATS = (
    "%d/%m/%Y",   # dd/mm/yyyy and d/m/yyyy
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d/%m/%y",
)

TIMESTAMP_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)

EPOCH_ZERO = datetime(1970, 1, 1)


def _parse_with_formats(text: str) -> Optional[date]:
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue

        # Guard against silent rollover (31 in a 30-day month, etc.)
        if parsed.strftime(fmt) != _zero_pad(text, fmt):
            continue
        return parsed.date()
    return None


def _zero_pad(text: str, fmt: str) -> str:
    """Re-pad d/m style input so it can be compared with strftime output."""
    separator = "/" if "/" in fmt else "-"
    parts = text.split(separator)
    widths = [4 if token == "%Y" else 2 for token in fmt.split(separator)]
    if len(parts) != len(widths):
        return text
    return separator.join(part.zfill(width) for part, width in zip(parts, widths))


def _parse_iso(text: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _parse_serial(text: str) -> Optional[date]:
    """Legacy spreadsheet day-serial (e.g. '45000')."""
    try:
        serial = float(text.replace(",", "."))
    except ValueError:
        return None

    if serial <= SERIAL_DATE_THRESHOLD:
        return None

    seconds = (serial - SERIAL_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY
    return (EPOCH_ZERO + timedelta(seconds=seconds)).date()


def normalize_date(value) -> Optional[date]:
    """
    Parse a date of unknown encoding into a calendar day.

    Accepts dd/mm/yyyy, d/m/yyyy, yyyy-mm-dd, dd-mm-yyyy, d/m/yy, ISO
    strings and legacy spreadsheet serial numbers.

    Returns:
        date, or None when unparseable. Never raises.
    """
    try:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        if not text:
            return None

        # "05/03/2024 10:30" -> date part only
        head = text.split()[0]

        return (
            _parse_with_formats(head)
            or _parse_iso(text)
            or _parse_serial(text)
        )
    except Exception:
        return None


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    Parse a note timestamp (dd/mm/yyyy[ hh:mm[:ss]]).

    Malformed values sort as the oldest possible entry (epoch zero).
    """
    text = (value or "").strip().replace(",", "")
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return EPOCH_ZERO


def format_timestamp(moment: datetime) -> str:
    """pt-BR timestamp used for locally created ledger entries."""
    return moment.strftime("%d/%m/%Y %H:%M:%S")
