"""
Timestamp parsing for CIF responses

The remote has emitted several timestamp shapes over time. All of them go
through parse_timestamp so every date field is handled the same way.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from cifclient.exceptions import DateParseError

# Tried in order; the first match wins
TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%fZ",   # 2020-02-10T17:51:55.734794Z
    "%Y-%m-%dT%H:%M:%SZ",      # 2020-02-10T17:51:55Z
    "%m/%d/%Y %H:%M:%S",       # 02/10/2020 17:51:55[Z]
)

OUTPUT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_timestamp(value: Any, field: Optional[str] = None) -> datetime:
    """
    Parse a server timestamp into an aware UTC datetime

    Args:
        value: Timestamp string or datetime
        field: Source field name, used in the error message

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateParseError: If value matches none of TIMESTAMP_FORMATS
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if not isinstance(value, str):
        raise DateParseError(value, field)

    text = value.strip()
    for fmt in TIMESTAMP_FORMATS:
        candidate = text
        # The locale format is seen both with and without a Z suffix
        if not fmt.endswith('Z') and candidate.endswith('Z'):
            candidate = candidate[:-1]
        try:
            return datetime.strptime(candidate, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    raise DateParseError(value, field)


def parse_epoch(value: Any, field: Optional[str] = None) -> datetime:
    """
    Convert Unix epoch seconds to an aware datetime in local time

    Raises:
        DateParseError: If value is not numeric
    """
    if isinstance(value, bool):
        raise DateParseError(value, field)

    try:
        seconds = float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise DateParseError(value, field) from e


def format_timestamp(value: datetime) -> str:
    """Render a datetime as yyyy-MM-ddTHH:mm:ssZ in UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(OUTPUT_FORMAT)
