"""Event normalizer: turns tokenized transaction lines into ``PackageEvent``.

Matching rules come from ``ParserConfig``: the subsystem tag decides whether
a line is a transaction at all, the leading verb picks the action, and the
verb's shape decides how the rest of the text is read.  Lines whose text
drifts from the expected shape are skipped, not treated as errors.
"""

from __future__ import annotations

import re

from pkghist.config import ParserConfig
from pkghist.events.schemas import PackageEvent
from pkghist.events.schemas import TokenizedLine
from pkghist.events.tokenizer import tokenize_line

# name (version)
_SINGLE_RE = re.compile(r"^(?P<name>[^\s()]+)\s+\((?P<version>[^\s()]+)\)$")

# name (old -> new)
_TRANSITION_RE = re.compile(
    r"^(?P<name>[^\s()]+)\s+\((?P<old>[^\s()]+)\s+->\s+(?P<new>[^\s()]+)\)$"
)

_DEFAULT_CONFIG = ParserConfig()


def normalize_event(
    tokenized: TokenizedLine,
    config: ParserConfig = _DEFAULT_CONFIG,
) -> PackageEvent | None:
    """Build a ``PackageEvent`` from *tokenized*, or ``None`` if it is not one."""
    if not config.is_transaction_tag(tokenized.tag):
        return None

    verb, _, rest = tokenized.text.partition(" ")
    rule = config.rule_for(verb)
    if rule is None:
        return None
    rest = rest.strip()

    if rule.transition:
        match = _TRANSITION_RE.match(rest)
        if match is None:
            return None
        return PackageEvent(
            package_name=match.group("name"),
            action=rule.action,
            timestamp=tokenized.timestamp,
            version=match.group("new"),
            previous_version=match.group("old"),
        )

    match = _SINGLE_RE.match(rest)
    if match is None:
        return None
    return PackageEvent(
        package_name=match.group("name"),
        action=rule.action,
        timestamp=tokenized.timestamp,
        version=match.group("version"),
    )


def parse_line(
    line: str | bytes,
    config: ParserConfig = _DEFAULT_CONFIG,
) -> PackageEvent | None:
    """Tokenize and normalize one raw line."""
    tokenized = tokenize_line(line, config)
    if tokenized is None:
        return None
    return normalize_event(tokenized, config)
