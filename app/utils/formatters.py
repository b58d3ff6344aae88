"""
Mask-as-you-type formatters for intake form fields.

All functions are pure string transforms; they accept whatever the user typed
and return the value that should be stored in the draft.
"""
import re

_NON_DIGIT = re.compile(r"\D")


def _digits(value: str, limit: int) -> str:
    return _NON_DIGIT.sub("", value or "")[:limit]


def format_ssn(value: str) -> str:
    """Format up to 9 digits as ``XXX-XX-XXXX``, progressively."""
    digits = _digits(value, 9)
    if len(digits) <= 3:
        return digits
    if len(digits) <= 5:
        return f"{digits[:3]}-{digits[3:]}"
    return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"


def format_phone(value: str) -> str:
    """Format up to 10 digits as ``(XXX) XXX-XXXX``, progressively."""
    digits = _digits(value, 10)
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def format_zip(value: str) -> str:
    """Keep the first 5 digits of a ZIP code."""
    return _digits(value, 5)


def format_date_input(value: str) -> str:
    """
    Mask a date typed as MM/DD/YYYY.

    Slashes are inserted after the month and the day when the user types
    digits only; the result never exceeds 10 characters.
    """
    text = value or ""
    digits = _NON_DIGIT.sub("", text)
    if len(digits) >= 2 and "/" not in text:
        text = digits[:2] + "/" + digits[2:]
    if len(digits) >= 4 and len(text.split("/")) < 3:
        parts = text.split("/")
        if len(parts) == 2 and len(parts[1]) >= 2:
            text = parts[0] + "/" + parts[1][:2] + "/" + parts[1][2:]
    return text[:10]


def date_to_storage(display: str) -> str:
    """
    Convert ``M/D/YYYY`` to ``YYYY-MM-DD``.

    Returns an empty string until the input has three parts and a 4-digit year.
    """
    if not display:
        return ""
    cleaned = re.sub(r"[^\d/]", "", display)
    parts = cleaned.split("/")
    if len(parts) == 3:
        month, day, year = parts
        if month and day and len(year) == 4:
            return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return ""


def date_to_display(iso_date: str) -> str:
    """Convert ``YYYY-MM-DD`` to ``MM/DD/YYYY``; other input is returned unchanged."""
    if not iso_date:
        return ""
    parts = iso_date.split("-")
    if len(parts) != 3:
        return iso_date
    year, month, day = parts
    return f"{month}/{day}/{year}"


def mask_ssn(ssn: str) -> str:
    """Show only the last four digits of an SSN."""
    if not ssn:
        return "-"
    return f"***-**-{ssn[-4:]}"


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
