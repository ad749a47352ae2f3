import re

from date_parser import DateParser, FRENCH_WEEKDAYS


class LineClassifier:
    """Decide whether a raw line opens a new mood record.

    Only the text before the first delimiter is looked at. A line opens a
    record when that prefix is a recognizable date, or when it starts with a
    weekday name even if no full date follows. Whether the record then
    parses is decided later.
    """

    def __init__(self, delimiter=',', date_parser=None, weekdays=FRENCH_WEEKDAYS):
        self.delimiter = delimiter
        self.date_parser = date_parser or DateParser()
        self._weekday_re = re.compile(
            r'(?:%s)\b' % '|'.join(re.escape(day) for day in weekdays),
            re.IGNORECASE,
        )

    def leading_field(self, line):
        return line.split(self.delimiter, 1)[0].strip().strip('"').strip()

    def is_record_start(self, line):
        prefix = self.leading_field(line)
        if not prefix:
            return False
        if self.date_parser.matches(prefix):
            return True
        return self._weekday_re.match(prefix) is not None
