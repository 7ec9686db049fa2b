from datetime import date, datetime, time, timedelta, timezone


def utcnow():
    return datetime.now(timezone.utc)


def ensure_utc(value):
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value_text = value.strip()
        if not value_text:
            return None
        try:
            return date.fromisoformat(value_text[:10])
        except ValueError:
            return None
    return None


def parse_datetime(value, *, end_of_day=False):
    """
    Parse an ISO-8601 date or date-time into an aware UTC datetime.

    Date-only values resolve to the start of that day, or to its last
    microsecond when ``end_of_day`` is set, so ``endDate=2024-05-01``
    covers all of May 1st. Returns ``None`` for blank input and raises
    ``ValueError`` for text that is not ISO-8601.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return _bound_of_day(value, end_of_day)
    value_text = str(value).strip()
    if not value_text:
        return None
    if len(value_text) == 10:
        return _bound_of_day(date.fromisoformat(value_text), end_of_day)
    if value_text.endswith("Z"):
        value_text = value_text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value_text))


def _bound_of_day(day, end_of_day):
    bound = time.max if end_of_day else time.min
    return datetime.combine(day, bound, tzinfo=timezone.utc)


def resolve_window(start, end, default_days, *, now=None):
    """Return ``(start, end)`` with the trailing ``default_days`` window as fallback."""
    now = ensure_utc(now) if now is not None else utcnow()
    end_dt = parse_datetime(end, end_of_day=True) or now
    start_dt = parse_datetime(start)
    if start_dt is None:
        start_dt = end_dt - timedelta(days=default_days)
    if start_dt > end_dt:
        raise ValueError("startDate must not be after endDate.")
    return start_dt, end_dt


def week_start(day):
    return day - timedelta(days=day.weekday())


def month_start(day):
    return day.replace(day=1)
