"""
Best-effort import of hand-edited mood-log CSV exports.

The document is walked line by line. A line whose leading field looks like a
date opens a new record; any other line is folded into the comment of the
record in progress, so comments can span several physical lines. Records are
then resolved to calendar dates and handed one at a time to a persistence
gateway. Nothing here aborts on a bad line or row: every problem becomes an
ImportDiagnostic and the import carries on.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, time

from date_parser import DateParser, is_failure
from line_classifier import LineClassifier
from record_parser import RecordParser

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 5
PREVIEW_COMMENT_LENGTH = 100

_TAG_SEPARATORS = re.compile(r'[,;]')


class PersistenceError(Exception):
    """Raised by a gateway when a single entry cannot be stored."""


@dataclass(frozen=True)
class RawLine:
    number: int
    text: str


@dataclass(frozen=True)
class ImportDiagnostic:
    line_number: int
    message: str

    def __str__(self):
        return f'Line {self.line_number}: {self.message}'

    def to_dict(self):
        return {'line_number': self.line_number, 'message': self.message}


@dataclass
class NormalizedEntry:
    user_id: object
    mood: int
    note: str
    tags: list
    sleep_hours: float
    medication: float
    emotions: str
    timestamp: datetime
    date_token: str = ''
    line_number: int = 0


@dataclass
class ImportOptions:
    delimiter: str = ','
    skip_header_line: bool = True
    repair_mode: bool = True
    preview_only: bool = False

    def __post_init__(self):
        if self.delimiter in ('tab', '\\t'):
            self.delimiter = '\t'
        if not isinstance(self.delimiter, str) or len(self.delimiter) != 1:
            raise ValueError(f'Delimiter must be a single character, got {self.delimiter!r}')


@dataclass
class ImportResult:
    imported_count: int = 0
    failed_count: int = 0
    total_records: int = 0
    diagnostics: list = field(default_factory=list)

    def to_dict(self, max_errors=None):
        errors = [str(d) for d in self.diagnostics]
        shown = errors if max_errors is None else errors[:max_errors]
        return {
            'imported': self.imported_count,
            'failed': self.failed_count,
            'total': self.total_records,
            'errors': shown,
            'has_more_errors': len(shown) < len(errors),
            'total_errors': len(errors),
        }


@dataclass
class PreviewRecord:
    date: str
    parsed_date: str
    score: int
    comment: str
    line_number: int

    def to_dict(self):
        return {
            'date': self.date,
            'parsed_date': self.parsed_date,
            'score': self.score,
            'comment': self.comment,
            'line_number': self.line_number,
        }


@dataclass
class PreviewResult:
    total_lines: int = 0
    found_records: int = 0
    records: list = field(default_factory=list)
    diagnostics: list = field(default_factory=list)

    def to_dict(self):
        return {
            'total_lines': self.total_lines,
            'found_records': self.found_records,
            'records': [r.to_dict() for r in self.records],
            'errors': [str(d) for d in self.diagnostics],
        }


@dataclass
class ParseOutcome:
    candidates: list
    diagnostics: list
    total_lines: int


def rescale_score(score):
    """Bring a score onto the 0-10 scale.

    Scores above 10 are read as percentages and rounded half up
    (85 -> 9); negative scores become 0.
    """
    if score > 10:
        return min(10, (score + 5) // 10)
    if score < 0:
        return 0
    return score


def split_tags(emotions_raw):
    return [tag.strip() for tag in _TAG_SEPARATORS.split(emotions_raw or '') if tag.strip()]


def _shorten(text, limit=80):
    return text if len(text) <= limit else text[:limit - 3] + '...'


class ImportPipeline:
    def __init__(self, options=None, date_parser=None):
        self.options = options or ImportOptions()
        self.date_parser = date_parser or DateParser()
        self.classifier = LineClassifier(self.options.delimiter, self.date_parser)
        self.record_parser = RecordParser(
            self.options.delimiter, self.options.repair_mode, self.date_parser
        )

    def split_lines(self, document):
        """Non-blank lines with their physical line numbers, header dropped if configured."""
        text = (document or '').replace('\r', '')
        lines = [
            RawLine(number, line)
            for number, line in enumerate(text.split('\n'), start=1)
            if line.strip()
        ]
        if self.options.skip_header_line and lines:
            lines = lines[1:]
        return lines

    def parse(self, document):
        """Group lines into finalized candidate records."""
        lines = self.split_lines(document)
        candidates = []
        diagnostics = []
        current = None

        for line in lines:
            # Inside an open quoted comment every line belongs to it
            if current is not None and current.quote_open:
                current.append_continuation(line.text)
            elif self.classifier.is_record_start(line.text):
                if current is not None:
                    candidates.append(current)
                current = self._parse_record(line, diagnostics)
            elif current is not None:
                current.append_continuation(line.text)
            else:
                diagnostics.append(
                    ImportDiagnostic(line.number, 'no date detected and no prior entry')
                )

        if current is not None:
            candidates.append(current)

        for diagnostic in diagnostics:
            logger.debug('CSV import: %s', diagnostic)
        return ParseOutcome(candidates, diagnostics, len(lines))

    def _parse_record(self, line, diagnostics):
        try:
            record = self.record_parser.parse(line.text.strip(), line.number)
        except Exception:
            logger.exception('Unexpected error parsing line %d', line.number)
            record = None
        if record is None:
            diagnostics.append(
                ImportDiagnostic(line.number, f'could not parse record: {_shorten(line.text.strip())}')
            )
        return record

    def resolve(self, candidates, user_id=None):
        """Resolve dates; returns (entries, diagnostics) with one diagnostic per failed record."""
        entries = []
        diagnostics = []
        for candidate in candidates:
            resolved = self.date_parser.parse(candidate.date_token)
            if is_failure(resolved):
                diagnostic = ImportDiagnostic(candidate.line_number, str(resolved))
                logger.debug('CSV import: %s', diagnostic)
                diagnostics.append(diagnostic)
                continue
            entries.append(NormalizedEntry(
                user_id=user_id,
                mood=rescale_score(candidate.score),
                note=candidate.comment or None,
                tags=split_tags(candidate.emotions_raw),
                sleep_hours=candidate.sleep_hours,
                medication=candidate.medication,
                emotions=candidate.emotions_raw or None,
                timestamp=datetime.combine(resolved, time.min),
                date_token=candidate.date_token,
                line_number=candidate.line_number,
            ))
        return entries, diagnostics

    def preview(self, document, sample_size=PREVIEW_SIZE):
        """Parse and resolve without storing anything."""
        outcome = self.parse(document)
        diagnostics = list(outcome.diagnostics)
        _, date_diagnostics = self.resolve(outcome.candidates)
        diagnostics.extend(date_diagnostics)

        records = []
        for candidate in outcome.candidates[:sample_size]:
            resolved = self.date_parser.parse(candidate.date_token)
            records.append(PreviewRecord(
                date=candidate.date_token,
                parsed_date=None if is_failure(resolved) else resolved.isoformat(),
                score=candidate.score,
                comment=candidate.comment[:PREVIEW_COMMENT_LENGTH],
                line_number=candidate.line_number,
            ))

        return PreviewResult(
            total_lines=outcome.total_lines,
            found_records=len(outcome.candidates),
            records=records,
            diagnostics=sorted(diagnostics, key=lambda d: d.line_number),
        )

    def run(self, document, gateway, user_email):
        """Parse, resolve and store entries one by one through ``gateway``."""
        outcome = self.parse(document)
        result = ImportResult(
            total_records=len(outcome.candidates),
            diagnostics=list(outcome.diagnostics),
        )
        if not outcome.candidates:
            return result

        user = gateway.ensure_user(user_email)
        entries, date_diagnostics = self.resolve(outcome.candidates, user.id)
        result.failed_count += len(date_diagnostics)
        result.diagnostics.extend(date_diagnostics)

        for entry in entries:
            try:
                gateway.insert_mood_entry(entry)
            except PersistenceError as exc:
                logger.warning('Could not store entry from line %d: %s', entry.line_number, exc)
                result.failed_count += 1
                result.diagnostics.append(ImportDiagnostic(
                    entry.line_number,
                    f"could not save entry dated '{entry.date_token}': {exc}",
                ))
            else:
                result.imported_count += 1

        result.diagnostics.sort(key=lambda d: d.line_number)
        logger.info(
            'CSV import finished: %d imported, %d failed, %d records',
            result.imported_count, result.failed_count, result.total_records,
        )
        return result


def run_import(document, options=None, gateway=None, user_email=None, preview_size=PREVIEW_SIZE):
    """Import ``document``, or preview it when ``options.preview_only`` is set."""
    pipeline = ImportPipeline(options)
    if pipeline.options.preview_only:
        return pipeline.preview(document, preview_size)
    if gateway is None:
        raise ValueError('A persistence gateway is required unless previewing')
    return pipeline.run(document, gateway, user_email)
