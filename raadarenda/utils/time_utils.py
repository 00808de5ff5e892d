from datetime import date, datetime, timezone


def utcnow():
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value):
    """Parse 'YYYY-MM-DD' or an ISO datetime string into a date. Returns None on bad input."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def format_datetime(value):
    return value.strftime('%Y-%m-%dT%H:%M:%SZ') if value else None


def format_date(value):
    return value.isoformat() if value else None
