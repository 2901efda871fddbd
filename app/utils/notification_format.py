# app/utils/notification_format.py
"""Human-readable strings for contest-alert notifications."""
from datetime import datetime
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Kolkata"


def format_duration(minutes: int) -> str:
    """61 -> '1 hours 1 minutes'. The unit is always plural."""
    hours, rest = divmod(int(minutes), 60)
    return f"{hours} hours {rest} minutes"


def format_start_time(unix_seconds: int, timezone: str = DEFAULT_TIMEZONE) -> str:
    """Render a unix timestamp in `timezone`, e.g. '1/1/2023, 5:30:00 am'."""
    moment = datetime.fromtimestamp(int(unix_seconds), tz=ZoneInfo(timezone))
    hour = moment.hour % 12 or 12
    meridiem = "am" if moment.hour < 12 else "pm"
    return f"{moment.day}/{moment.month}/{moment.year}, {hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
