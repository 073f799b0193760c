"""Parser for Heroku log drain lines.

Heroku drains forward syslog frames in a subset of RFC5424:

    83 <40>1 2012-11-30T06:45:29+00:00 host app web.3 - State changed

Only the fixed fields are recognised; structured data is always "-".
See https://tools.ietf.org/html/rfc5424#section-6 and
https://devcenter.heroku.com/articles/log-drains.
"""

import re
from datetime import datetime

from drainmetrics.core.models import LogLine
from drainmetrics.errors import LogDecodeError

# The frame may be preceded by its octet count, so the pattern is searched
# rather than anchored at the start of the line.
LOG_LINE_FORMAT = re.compile(
    r"<(?P<priority>\d+)>(?P<version>1) "
    r"(?P<timestamp>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{6})?\+\d{2}:\d{2}) "
    r"(?P<hostname>[a-z0-9\-_.]+) "
    r"(?P<app_name>[a-z0-9.\-]+) "
    r"(?P<proc_id>[a-z0-9\-_.]+) "
    r"(?P<msg_id>-) "
    r"(?P<message>.*)$"
)

# facility (0-23) * 8 + severity (0-7)
MAX_PRIORITY = 191


class LineParser:
    """Turns raw drain lines into LogLine objects."""

    def __init__(self, pattern: re.Pattern[str] = LOG_LINE_FORMAT) -> None:
        self._pattern = pattern

    def parse(self, line: str) -> LogLine | None:
        """Parse one raw line.

        Args:
            line: A single line of the drain body, without the newline.

        Returns:
            The parsed LogLine, or None if the line is not in drain format.

        Raises:
            LogDecodeError: The line has the drain format but a field
                could not be decoded.
        """
        # @tra: Core.Parser.Mismatch
        match = self._pattern.search(line)
        if match is None:
            return None

        # @tra: Core.Parser.DecodeError
        raw_priority = match["priority"]
        # a PRI longer than three digits is out of range without converting it
        if len(raw_priority) > 3 or int(raw_priority) > MAX_PRIORITY:
            raise LogDecodeError(line, f"priority {raw_priority[:8]} out of range")
        priority = int(raw_priority)

        try:
            timestamp = datetime.fromisoformat(match["timestamp"])
        except ValueError as e:
            raise LogDecodeError(line, f"invalid timestamp: {e}") from e

        return LogLine(
            priority=priority,
            version=int(match["version"]),
            timestamp=timestamp,
            hostname=match["hostname"],
            app_name=match["app_name"],
            proc_id=match["proc_id"],
            message=match["message"],
        )
