"""
Date Normalization
==================

Resolves date tokens found in statement text to UTC datetimes.

FORMAT ORDER (first that parses wins):
======================================
1. yyyy-MM-ddTHH:mm:ss[.fff][Z|±HH:MM] (offsets converted to UTC)
2. yyyy-MM-dd
3. dd/MM/yyyy
4. MM/dd/yyyy
5. dd MonthName yyyy / dd MonName yyyy
6. MonthName dd, yyyy / MonName dd, yyyy

Ambiguous slash dates therefore resolve day-first; "12/31/2023" only parses
month-first. Unresolvable tokens yield None, never an exception.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Pattern, Tuple
import re

from ..rules import RuleTable, DEFAULT_RULES


# Tried after ISO instants, which are parsed with datetime.fromisoformat
DATE_FORMATS: Tuple[Tuple[str, str], ...] = (
    ("iso_date", "%Y-%m-%d"),
    ("day_first", "%d/%m/%Y"),
    ("month_first", "%m/%d/%Y"),
    ("day_month_name", "%d %B %Y"),
    ("day_month_abbr", "%d %b %Y"),
    ("month_name_day", "%B %d, %Y"),
    ("month_abbr_day", "%b %d, %Y"),
)

ISO_FORMATS = frozenset({"iso_datetime", "iso_date"})

_ISO_INSTANT = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class NormalizedDate:
    """A date token and the instant it resolved to."""
    raw: str
    value: datetime
    format_name: str

    @property
    def is_iso(self) -> bool:
        return self.format_name in ISO_FORMATS


class DateNormalizer:
    """
    Deterministic date normalizer.

    Locates candidate tokens with one combined pattern (so candidates come
    back in text order) and parses them as an ISO instant, then against DATE_FORMATS in order.
    """

    def __init__(self, rules: RuleTable = DEFAULT_RULES):
        self._rules = rules
        self._pattern = self._build_pattern(rules)

    @staticmethod
    def _build_pattern(rules: RuleTable) -> Pattern:
        names = list(rules.month_names) + [m[:3] for m in rules.month_names]
        months = "|".join(names)
        return re.compile(
            r"\b\d{4}-\d{2}-\d{2}"
            r"(?:T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?)?(?![\d-])"
            r"|\b\d{1,2}/\d{1,2}/\d{4}\b"
            rf"|\b\d{{1,2}} (?:{months}) \d{{4}}\b"
            rf"|\b(?:{months}) \d{{1,2}}, \d{{4}}\b",
            re.IGNORECASE,
        )

    def find_tokens(self, text: str) -> List[str]:
        """Candidate date tokens in order of appearance."""
        return [m.group(0) for m in self._pattern.finditer(text)]

    def normalize(self, token: str) -> Optional[NormalizedDate]:
        """Parse one token; None when no format accepts it."""
        cleaned = token.strip()

        instant = _parse_iso_instant(cleaned)
        if instant is not None:
            return NormalizedDate(raw=token, value=instant, format_name="iso_datetime")

        for format_name, pattern in DATE_FORMATS:
            try:
                parsed = datetime.strptime(cleaned, pattern)
            except ValueError:
                continue
            return NormalizedDate(
                raw=token,
                value=parsed.replace(tzinfo=timezone.utc),
                format_name=format_name,
            )
        return None

    def resolve(self, text: str) -> Optional[NormalizedDate]:
        """First token in the text that normalizes, if any."""
        for token in self.find_tokens(text):
            normalized = self.normalize(token)
            if normalized is not None:
                return normalized
        return None


def _parse_iso_instant(token: str) -> Optional[datetime]:
    """
    ISO datetime with optional fraction and zone, converted to UTC.

    Offsets are applied rather than dropped: 09:00+02:00 is 07:00 UTC.
    Fractions are cut to microseconds before parsing.
    """
    match = _ISO_INSTANT.match(token)
    if match is None:
        return None
    base, fraction, zone = match.groups()

    text = base
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")
    if zone:
        text += "+00:00" if zone.upper() == "Z" else zone

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
