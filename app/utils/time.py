"""Time and datetime utilities."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

MONTH_NAMES = {
    "pt": (
        "janeiro", "fevereiro", "março", "abril", "maio", "junho",
        "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
    ),
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
}


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime.

    Naive values are taken to be UTC already; SQLite hands back naive
    datetimes for ``DateTime(timezone=True)`` columns.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def truncate_to_hour(dt: datetime) -> datetime:
    """Start of the UTC hour containing ``dt``.

    Offsets that are not whole hours (+05:30, +05:45) still land on the
    same grid as every other timestamp.
    """
    return ensure_utc(dt).replace(minute=0, second=0, microsecond=0)



def format_display_date(
    dt: datetime,
    locale: str = "pt",
    tz_name: str = "UTC",
) -> str:
    """Render a date for humans in notifications and emails.

    Args:
        dt: Datetime to render
        locale: "pt" or "en"
        tz_name: IANA time zone the reader expects

    Returns:
        e.g. "dia 10 de junho, às 14:00h" or "June 10, at 14:00"
    """
    local = ensure_utc(dt).astimezone(ZoneInfo(tz_name))
    months = MONTH_NAMES.get(locale)
    if months is None:
        raise ValueError(f"Unsupported display locale: {locale}")

    month = months[local.month - 1]
    clock = f"{local.hour}:{local.minute:02d}"

    if locale == "pt":
        return f"dia {local.day:02d} de {month}, às {clock}h"
    return f"{month} {local.day}, at {clock}"
