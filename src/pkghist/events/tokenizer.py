"""Line tokenizer: splits a raw log line into timestamp, tag and text.

Shape handled::

    [2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)
    [2024-01-15T14:30:45+0100] installed firefox (120.0)

The tokenizer never raises; anything that does not fit returns ``None``.
"""

from __future__ import annotations

import re
from datetime import datetime
from datetime import timezone

from pkghist.config import ParserConfig
from pkghist.events.schemas import TokenizedLine

_LINE_RE = re.compile(
    r"""
    ^\[(?P<ts>[^\]]+)\]
    \s+
    (?:\[(?P<tag>[^\]\s]+)\]\s+)?
    (?P<text>\S.*?)
    \s*$
    """,
    re.VERBOSE,
)

_ISO_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_LEGACY_FORMAT = "%Y-%m-%d %H:%M"

_DEFAULT_CONFIG = ParserConfig()


def parse_timestamp(
    raw: str,
    config: ParserConfig = _DEFAULT_CONFIG,
) -> datetime | None:
    """Parse a bracketed log timestamp into an aware ``datetime``.

    Legacy minute-resolution stamps have no UTC offset; they are only
    accepted when ``config.legacy_utc_offset`` says how to read them.
    """
    try:
        return datetime.strptime(raw, _ISO_FORMAT)
    except ValueError:
        pass
    if config.legacy_utc_offset is None:
        return None
    try:
        naive = datetime.strptime(raw, _LEGACY_FORMAT)
    except ValueError:
        return None
    return naive.replace(tzinfo=timezone(config.legacy_utc_offset))


def tokenize_line(
    line: str | bytes,
    config: ParserConfig = _DEFAULT_CONFIG,
) -> TokenizedLine | None:
    """Tokenize one raw log line, or return ``None`` for non-event noise."""
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError:
            return None

    match = _LINE_RE.match(line)
    if match is None:
        return None

    timestamp = parse_timestamp(match.group("ts").strip(), config)
    if timestamp is None:
        return None

    return TokenizedLine(
        timestamp=timestamp,
        tag=match.group("tag"),
        text=match.group("text"),
    )
