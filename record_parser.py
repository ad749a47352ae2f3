"""
Turn one record-start line into a CandidateRecord.

Fields are positional: date, score, sleep hours, medication, emotions,
comment. Double quotes protect the delimiter and are dropped from the field
text. Lines with fewer than two fields can still be recovered in repair mode
by scanning them for an embedded date and score.
"""

import re
from dataclasses import dataclass, field

from date_parser import DateParser


DEFAULT_SCORE = 5
DEFAULT_SLEEP_HOURS = 0.0
DEFAULT_MEDICATION = 0.0

FIELD_ORDER = ('date', 'score', 'sleep_hours', 'medication', 'emotions', 'comment')

_INT_RE = re.compile(r'[+-]?\d+')
_FLOAT_RE = re.compile(r'[+-]?(?:\d+(?:[.,]\d+)?|[.,]\d+)')

# Tried in order against the text left once the date is removed
_SCORE_PATTERNS = (
    re.compile(r'(\d+)\s*/\s*10\b'),
    re.compile(r'score\s*[:=]\s*(\d+)', re.IGNORECASE),
    re.compile(r'(\d+)'),
)


@dataclass
class CandidateRecord:
    """A mood record under construction. Only ``comment`` changes after parsing."""

    date_token: str
    score: int = DEFAULT_SCORE
    sleep_hours: float = DEFAULT_SLEEP_HOURS
    medication: float = DEFAULT_MEDICATION
    emotions_raw: str = ''
    comment: str = ''
    line_number: int = 0
    # A quoted comment left open at the end of its line
    quote_open: bool = field(default=False, repr=False)

    def append_continuation(self, text):
        if self.quote_open:
            if text.count('"') % 2:
                self.quote_open = False
            text = text.replace('"', '')
        text = text.strip()
        self.comment = f'{self.comment}\n{text}' if self.comment else text


def split_fields(line, delimiter=','):
    """Split on ``delimiter`` outside double quotes.

    Returns the raw (untrimmed) fields and whether a quote was left open.
    """
    fields = []
    current = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)
    fields.append(''.join(current))
    return fields, in_quotes


def leading_int(text, default=DEFAULT_SCORE):
    match = _INT_RE.match(text.strip())
    return int(match.group()) if match else default


def leading_float(text, default=0.0):
    match = _FLOAT_RE.match(text.strip())
    if match is None:
        return default
    return float(match.group().replace(',', '.'))


class RecordParser:
    def __init__(self, delimiter=',', repair_mode=True, date_parser=None):
        self.delimiter = delimiter
        self.repair_mode = repair_mode
        self.date_parser = date_parser or DateParser()

    def parse(self, line, line_number=0):
        """Return a CandidateRecord, or None when the line cannot be structured."""
        fields, quote_open = split_fields(line, self.delimiter)
        if len(fields) < 2:
            if not self.repair_mode:
                return None
            return self.recover(line, line_number)

        # An unquoted comment may itself contain the delimiter
        if len(fields) > len(FIELD_ORDER):
            fields = fields[:5] + [self.delimiter.join(fields[5:])]
        fields = [f.strip() for f in fields]
        fields += [''] * (len(FIELD_ORDER) - len(fields))
        date_token, score, sleep, medication, emotions, comment = fields

        return CandidateRecord(
            date_token=date_token,
            score=leading_int(score, DEFAULT_SCORE),
            sleep_hours=leading_float(sleep, DEFAULT_SLEEP_HOURS),
            medication=leading_float(medication, DEFAULT_MEDICATION),
            emotions_raw=emotions,
            comment=comment,
            line_number=line_number,
            quote_open=quote_open,
        )

    def recover(self, line, line_number=0):
        """Build a minimal record from free text holding a date and maybe a score."""
        text = line.replace('"', '')
        date_match = self.date_parser.search(text)
        if date_match is None:
            return None

        rest = f'{text[:date_match.start()]} {text[date_match.end():]}'
        score = DEFAULT_SCORE
        for pattern in _SCORE_PATTERNS:
            score_match = pattern.search(rest)
            if score_match is not None:
                score = int(score_match.group(1))
                rest = f'{rest[:score_match.start()]} {rest[score_match.end():]}'
                break

        return CandidateRecord(
            date_token=date_match.group(0).strip(),
            score=score,
            comment=' '.join(rest.split()).strip(' -:;'),
            line_number=line_number,
        )
