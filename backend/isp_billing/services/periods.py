"""
Utility per intervalli di date (giorni e mesi)
Progetto: ISP Billing (Gestionale ISP)

Le date/ora dei pagamenti sono memorizzate in UTC; gli intervalli
restituiti qui sono semiaperti [inizio, fine).
"""

from datetime import date, datetime, time, timedelta, timezone


def today() -> date:
    return datetime.now(timezone.utc).date()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Primo giorno del mese e primo giorno del mese successivo."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def as_utc_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_range(day: date) -> tuple[datetime, datetime]:
    start = as_utc_start(day)
    return start, start + timedelta(days=1)


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    start, end = month_bounds(year, month)
    return as_utc_start(start), as_utc_start(end)


def date_range(start: date, end: date) -> tuple[datetime, datetime]:
    """Intervallo che include entrambi gli estremi."""
    return as_utc_start(start), as_utc_start(end) + timedelta(days=1)


def to_date(value: datetime) -> date:
    """Giorno UTC di una data/ora (naive = già UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()
