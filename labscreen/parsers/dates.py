from datetime import date
from typing import Literal, Optional

DateFormat = Literal["DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD"]


def format_date(raw: Optional[str], include_time: bool = False, fmt: DateFormat = "DD/MM/YYYY") -> str:
    """
    Format a positional HL7 timestamp ``YYYYMMDD[HHMMSS]`` for display.

    ``19850615`` -> ``15/06/1985``; with ``include_time`` and at least 14
    characters, ``19850615143000`` -> ``15/06/1985 14:30:00``. Empty input
    gives an empty string; anything shorter than a full date is returned as is.
    """
    raw = (raw or "").strip()
    if not raw:
        return ""
    if len(raw) < 8:
        return raw

    year, month, day = raw[0:4], raw[4:6], raw[6:8]
    if fmt == "MM/DD/YYYY":
        out = f"{month}/{day}/{year}"
    elif fmt == "YYYY-MM-DD":
        out = f"{year}-{month}-{day}"
    else:
        out = f"{day}/{month}/{year}"

    if include_time and len(raw) >= 14:
        out = f"{out} {raw[8:10]}:{raw[10:12]}:{raw[12:14]}"
    return out


def calculate_age(raw: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Whole years since an 8-digit ``YYYYMMDD`` date of birth, or None if it is unusable."""
    raw = (raw or "").strip()
    if len(raw) != 8 or not raw.isdigit():
        return None
    try:
        dob = date(int(raw[0:4]), int(raw[4:6]), int(raw[6:8]))
    except ValueError:
        return None

    today = today or date.today()
    if dob > today:
        return None
    age = today.year - dob.year
    # last birthday not reached yet this year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age
