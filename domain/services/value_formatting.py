from __future__ import annotations

import html
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from domain.models import LINE_BREAK

_MONTHS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def escape_text(value: object) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def escape_multiline(value: object) -> str:
    text = escape_text(value)
    if not text:
        return text
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return normalized.replace("\n", LINE_BREAK)


def format_number(value: object, scale: int = 2) -> str:
    if value is None or isinstance(value, bool):
        return ""
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ""
    if not number.is_finite():
        return ""
    digits = max(0, int(scale))
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, number.adjusted() + digits + 2)
        try:
            rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return ""
    if rounded == 0:
        rounded = abs(rounded)
    return f"{rounded:f}"


def format_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return f"{_MONTHS[value.month - 1]} {value.day:02d}, {value.year:04d}"


def format_datetime(
    value: datetime | None,
    offset_hours: float = 0.0,
    convert: bool = False,
) -> str:
    if value is None:
        return ""
    moment = value
    if convert:
        try:
            moment = shift_datetime(value, offset_hours)
        except (OverflowError, ValueError):
            # Out of the representable range, keep the stored wall-clock time.
            moment = value
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{format_date(moment)}, {hour:02d}:{moment.minute:02d} {meridiem}"


def shift_datetime(value: datetime, offset_hours: float) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value + timedelta(hours=float(offset_hours or 0.0))


def parse_date(value: object) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
