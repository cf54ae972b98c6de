# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""Timestamp validation, parsing and display helpers"""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

TIMESTAMP_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}')
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}')
UNIX_SECONDS_PATTERN = re.compile(r'^\d{10}$')
UNIX_MILLIS_PATTERN = re.compile(r'^\d{13}$')
UUID_PATTERN = re.compile(
    r'^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$', re.IGNORECASE
)

# Extra layouts tried after ISO 8601 and RFC 2822
_FALLBACK_FORMATS = (
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
    '%b %d %Y %H:%M:%S',
    '%b %d %Y',
    '%d %b %Y %H:%M:%S',
    '%d %b %Y',
)


class _UnknownTime(datetime):
    """Epoch instant marking an unknown time"""

    def __repr__(self):
        return 'UNKNOWN_TIME'


# Returned for anything unparseable. Compares equal to the epoch but is
# told apart from a real epoch timestamp with is_unknown().
UNKNOWN_TIME: datetime = _UnknownTime(1970, 1, 1, tzinfo=timezone.utc)


def is_unknown(ts: Optional[datetime]) -> bool:
    return ts is None or ts is UNKNOWN_TIME


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def parse_iso_timestamp(ts_str: str) -> datetime:
    """Parse ISO 8601 format timestamp (timezone-aware)"""
    # Python 3.11+ fromisoformat can parse 'Z' directly
    # For 3.10 and earlier, need to convert 'Z' to '+00:00'
    if ts_str.endswith('Z'):
        ts_str = ts_str[:-1] + '+00:00'
    return _as_utc(datetime.fromisoformat(ts_str))


def _parse_generic(ts_str: str) -> Optional[datetime]:
    try:
        return parse_iso_timestamp(ts_str)
    except ValueError:
        pass
    try:
        return _as_utc(parsedate_to_datetime(ts_str))
    except (TypeError, ValueError, IndexError):
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return _as_utc(datetime.strptime(ts_str, fmt))
        except ValueError:
            continue
    return None


def is_valid_timestamp(timestamp: Optional[str]) -> bool:
    """
    Check whether a string looks like a timestamp

    UUIDs are rejected; ISO date-times, bare dates and 10/13 digit Unix
    times are accepted by shape; anything else must parse.
    """
    if not isinstance(timestamp, str) or not timestamp.strip():
        return False
    if UUID_PATTERN.match(timestamp):
        return False
    if TIMESTAMP_PATTERN.match(timestamp) or DATE_PATTERN.match(timestamp):
        return True
    if UNIX_SECONDS_PATTERN.match(timestamp) or UNIX_MILLIS_PATTERN.match(timestamp):
        return True
    return _parse_generic(timestamp.strip()) is not None


def parse_timestamp(timestamp: Optional[str]) -> datetime:
    """
    Parse a timestamp string into an aware datetime

    Returns:
        Parsed time, or UNKNOWN_TIME when the string cannot be parsed
    """
    if not isinstance(timestamp, str) or not timestamp.strip():
        return UNKNOWN_TIME
    timestamp = timestamp.strip()

    try:
        if TIMESTAMP_PATTERN.match(timestamp):
            return parse_iso_timestamp(timestamp)
        if DATE_PATTERN.match(timestamp):
            return parse_iso_timestamp(timestamp[:10])
        if UNIX_SECONDS_PATTERN.match(timestamp):
            return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        if UNIX_MILLIS_PATTERN.match(timestamp):
            return datetime.fromtimestamp(int(timestamp) / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return UNKNOWN_TIME

    parsed = _parse_generic(timestamp)
    return parsed if parsed is not None else UNKNOWN_TIME


def clean_summary(text: str) -> str:
    """Collapse whitespace and drop trailing periods"""
    if not text:
        return text
    cleaned = re.sub(r'\s+', ' ', text).strip()
    return re.sub(r'\.+$', '', cleaned)


def truncate(text: str, length: int) -> str:
    """Cut text to length characters, ending with '...'"""
    if not text or len(text) <= length:
        return text
    return text[:length - 3] + '...'


def to_local_time(ts: datetime) -> datetime:
    """Convert UTC timestamp to local time"""
    local_tz = datetime.now().astimezone().tzinfo
    return ts.astimezone(local_tz)


def format_local_timestamp(ts: datetime, include_seconds: bool = False) -> str:
    """Convert timestamp to local time and format as display string"""
    local_ts = to_local_time(ts)
    if include_seconds:
        return local_ts.strftime('%Y-%m-%dT%H:%M:%S')
    return local_ts.strftime('%Y-%m-%dT%H:%M')


def format_timestamp(timestamp: Optional[str]) -> str:
    """Local display form of a timestamp string, 'Unknown' if unparseable"""
    ts = parse_timestamp(timestamp)
    if is_unknown(ts):
        return 'Unknown'
    return format_local_timestamp(ts, include_seconds=True)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_relative_time(ts: datetime, now: Optional[datetime] = None) -> str:
    """Human readable age such as '5 minutes ago'"""
    now = now or datetime.now(timezone.utc)
    diff = int((now - _as_utc(ts)).total_seconds())

    if diff < 60:
        return _plural(diff, 'second')
    if diff < 3600:
        return _plural(diff // 60, 'minute')
    if diff < 86400:
        return _plural(diff // 3600, 'hour')
    if diff < 604800:
        return _plural(diff // 86400, 'day')
    if diff < 2419200:
        return _plural(diff // 604800, 'week')
    return _plural(diff // 2419200, 'month')
