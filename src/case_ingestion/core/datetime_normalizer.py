# ============================================================================
# src/case_ingestion/core/datetime_normalizer.py
# ============================================================================
"""
HL7 v2 DT / TS normalization

Positional YYYYMMDD[HH[MM[SS]]] strings are cut at fixed offsets. Each
piece is parsed on its own; a piece that is not numeric becomes 0 and
the rest of the value is kept. Inputs shorter than 8 characters mean
"no value" (None). No timezone is attached.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


@dataclass(frozen=True)
class HL7Timestamp:
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    has_time: bool = False

    def is_calendar_valid(self) -> bool:
        """True when the pieces form a real calendar date/time."""
        try:
            datetime(self.year, self.month, self.day, self.hour, self.minute, self.second)
        except ValueError:
            return False
        return True

    def isoformat(self) -> str:
        text = f"{self.year:04d}-{self.month:02d}-{self.day:02d}"
        if self.has_time:
            text += f"T{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        return text

    def to_python(self) -> Optional[Union[date, datetime]]:
        """
        ``datetime`` for timestamps, ``date`` for dates, None when a piece
        fell back to 0 and the result is not a real calendar value.
        """
        if not self.is_calendar_valid():
            return None
        if self.has_time:
            return datetime(self.year, self.month, self.day, self.hour, self.minute, self.second)
        return date(self.year, self.month, self.day)


def parse_hl7_date(value: str) -> Optional[HL7Timestamp]:
    """
    Parse the date part of an HL7 v2 DT/TS value.

    Args:
        value: e.g. "19900101" or "20230615143000"

    Returns:
        Date-only HL7Timestamp, or None if shorter than 8 characters
    """
    value = (value or "").strip()
    if len(value) < 8:
        return None

    return HL7Timestamp(
        year=_to_int(value[0:4]),
        month=_to_int(value[4:6]),
        day=_to_int(value[6:8]),
    )


def parse_hl7_datetime(value: str) -> Optional[HL7Timestamp]:
    """
    Parse an HL7 v2 TS value; missing hour/minute/second default to 00.

    Args:
        value: e.g. "20230615143000", "202306151430" or "20230615"

    Returns:
        HL7Timestamp with has_time=True, or None if shorter than 8 characters
    """
    value = (value or "").strip()
    if len(value) < 8:
        return None

    return HL7Timestamp(
        year=_to_int(value[0:4]),
        month=_to_int(value[4:6]),
        day=_to_int(value[6:8]),
        hour=_to_int(value[8:10]) if len(value) > 8 else 0,
        minute=_to_int(value[10:12]) if len(value) > 10 else 0,
        second=_to_int(value[12:14]) if len(value) > 12 else 0,
        has_time=True,
    )
