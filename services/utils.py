# services/utils.py

import uuid
import urllib.parse
from datetime import datetime
from pytz import timezone, utc

from services.exceptions import ValidationError

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


def utcnow():
    """Naive UTC now, matching how slot and booking times are stored."""
    return datetime.now(utc).replace(tzinfo=None)


def to_local(dt, tz_name):
    """Render a stored naive-UTC datetime in the venue's timezone."""
    return utc.localize(dt).astimezone(timezone(tz_name))


def missing_fields(data, required_fields):
    return [field for field in required_fields if data.get(field) in (None, '')]


def parse_int(value, field_name):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}")


def parse_uuid(value, field_name):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}")


def build_google_calendar_link(title, start_time, end_time, details='', location=''):
    """Google Calendar 'add event' template link. Times are naive UTC."""
    fmt = '%Y%m%dT%H%M%SZ'
    params = {
        'action': 'TEMPLATE',
        'text': title,
        'dates': f"{start_time.strftime(fmt)}/{end_time.strftime(fmt)}",
        'details': details,
        'location': location,
    }
    return f"{GOOGLE_CALENDAR_URL}?{urllib.parse.urlencode(params)}"
