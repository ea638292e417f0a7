"""Conversion of free-form recipe durations into minutes for numeric store fields."""

import re
from typing import Optional

ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:\d+(?:\.\d+)?S)?)?$",
    re.IGNORECASE,
)
LEADING_INTEGER = re.compile(r"^\s*(\d+)")


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """
    Parse a duration string into whole minutes.

    ``PT1H30M`` -> 90, ``45 min`` -> 45. Anything unrecognised gives None
    instead of raising.
    """
    if not value:
        return None
    text = value.strip()

    match = ISO_DURATION.match(text)
    if match and text.upper() != "P":
        days = int(match.group("days") or 0)
        hours = int(match.group("hours") or 0)
        minutes = int(match.group("minutes") or 0)
        return days * 24 * 60 + hours * 60 + minutes

    if "min" in text.lower():
        prefix = LEADING_INTEGER.match(text)
        return int(prefix.group(1)) if prefix else None

    return None
