"""
Date token recognition for imported mood logs.

Exports from different tools write the same day in different ways
("27/06/2025", "2025-06-27", "vendredi 27 juin 2025"). Each way is a
dialect: a recognition pattern plus a conversion rule. A DateParser tries
its dialects in a fixed order and the first one whose pattern matches the
whole token decides the outcome, failure included.
"""

import re
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType


FRENCH_MONTHS = MappingProxyType({
    'janvier': 1, 'février': 2, 'fevrier': 2, 'mars': 3, 'avril': 4,
    'mai': 5, 'juin': 6, 'juillet': 7, 'août': 8, 'aout': 8,
    'septembre': 9, 'octobre': 10, 'novembre': 11, 'décembre': 12,
    'decembre': 12,
})

FRENCH_WEEKDAYS = (
    'lundi', 'mardi', 'mercredi', 'jeudi', 'vendredi', 'samedi', 'dimanche',
)


@dataclass(frozen=True)
class DateParseFailure:
    """A token no dialect could turn into a calendar date."""

    token: str
    reason: str

    def __str__(self):
        return f"{self.reason}: '{self.token}'"


def _calendar_date(token, year, month, day):
    try:
        return date(year, month, day)
    except ValueError:
        return DateParseFailure(token, 'impossible calendar date')


class DateDialect:
    """One date grammar. Subclasses set ``pattern`` and implement ``_convert_match``."""

    name = 'dialect'
    pattern = None

    def matches(self, token):
        return self.pattern.fullmatch(token.strip()) is not None

    def search(self, text):
        return self.pattern.search(text)

    def convert(self, token):
        match = self.pattern.fullmatch(token.strip())
        if match is None:
            return DateParseFailure(token, f'not a {self.name} date')
        return self._convert_match(token, match)

    def _convert_match(self, token, match):
        raise NotImplementedError


class DayFirstSlashDialect(DateDialect):
    """``D/M/YYYY`` and ``DD/MM/YYYY``."""

    name = 'day/month/year'
    pattern = re.compile(r'(?<!\d)(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)')

    def _convert_match(self, token, match):
        day, month, year = (int(group) for group in match.groups())
        return _calendar_date(token, year, month, day)


class IsoDialect(DateDialect):
    """``YYYY-M-D`` and ``YYYY-MM-DD``."""

    name = 'year-month-day'
    pattern = re.compile(r'(?<!\d)(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)')

    def _convert_match(self, token, match):
        year, month, day = (int(group) for group in match.groups())
        return _calendar_date(token, year, month, day)


class MonthNameDialect(DateDialect):
    """``<word> D <month name> YYYY``, e.g. ``vendredi 27 juin 2025``.

    The leading word is not checked against real weekday names, so noisy
    exports ("Ven. 27 juin 2025" once the dot is gone, typos) still parse.
    """

    name = 'weekday day month year'
    pattern = re.compile(
        r'(?<!\w)(\w+)\s+(\d{1,2})\s+([^\W\d_]+)\s+(\d{4})(?!\d)'
    )

    def __init__(self, months=FRENCH_MONTHS):
        self.months = months

    def _convert_match(self, token, match):
        _, day, month_name, year = match.groups()
        month = self.months.get(month_name.lower())
        if month is None:
            return DateParseFailure(token, f"unknown month '{month_name}'")
        return _calendar_date(token, int(year), month, int(day))


def default_dialects():
    return (DayFirstSlashDialect(), IsoDialect(), MonthNameDialect())


class DateParser:
    """Resolve date tokens with an ordered, immutable dialect list."""

    def __init__(self, dialects=None):
        self.dialects = tuple(dialects) if dialects is not None else default_dialects()

    def matches(self, token):
        """True when some dialect recognizes the whole token (no conversion)."""
        token = token.strip()
        return any(dialect.matches(token) for dialect in self.dialects)

    def parse(self, token):
        """Return a ``date`` or a ``DateParseFailure``; never raises for bad input."""
        token = (token or '').strip()
        if not token:
            return DateParseFailure(token, 'missing date')
        for dialect in self.dialects:
            if dialect.matches(token):
                return dialect.convert(token)
        return DateParseFailure(token, 'unrecognized date')

    def search(self, text):
        """Leftmost date-like substring of ``text`` as a match object.

        When two dialects match at the same position the earlier one wins.
        """
        best = None
        for dialect in self.dialects:
            match = dialect.search(text)
            if match is not None and (best is None or match.start() < best.start()):
                best = match
        return best


def is_failure(result):
    return isinstance(result, DateParseFailure)
