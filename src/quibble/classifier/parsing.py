"""Parse a raw single-line model reply into an outcome."""

from __future__ import annotations

import re

from quibble.classifier.models import (
    Answer,
    CallFailed,
    Chatter,
    FailureReason,
    NoMatch,
    Outcome,
    Reset,
)
from quibble.common.logging import get_logger

# Longest untagged reply still reported as a short unrecognized reply
MAX_UNTAGGED_REPLY_CHARS = 50

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)
_QUOTES = "\"'`"

# Checked in this order; the first match wins
_TAGS: list[tuple[re.Pattern[str], type]] = [
    (re.compile(r"^[ \t]*NO[ \t]+MATCH\b", re.IGNORECASE | re.MULTILINE), NoMatch),
    (re.compile(r"^[ \t]*RESET\b", re.IGNORECASE | re.MULTILINE), Reset),
    (re.compile(r"^[ \t]*CHATTER\b", re.IGNORECASE | re.MULTILINE), Chatter),
]
_ANSWER_RE = re.compile(r"^[ \t]*ANSWER:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)


def unwrap_reply(raw: str) -> str:
    """Trim a reply and strip code fences and wrapping quotes."""
    text = raw.strip()

    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1).strip()

    while len(text) >= 2 and text[0] in _QUOTES and text[-1] == text[0]:
        text = text[1:-1].strip()

    return text


def parse_reply(raw: str | None) -> Outcome:
    """Map a model reply onto exactly one outcome.

    Untagged replies are reported as malformed whatever their length; long
    ones are logged as verbose, short ones as unrecognized.
    """
    text = unwrap_reply(raw or "")
    if not text:
        return CallFailed(FailureReason.MALFORMED_REPLY, "empty reply")

    for pattern, outcome_type in _TAGS:
        if pattern.search(text):
            return outcome_type()

    answer = _ANSWER_RE.search(text)
    if answer:
        entity = answer.group(1).strip()
        if entity:
            return Answer(entity)

    logger = get_logger("reply_parser")
    if len(text) > MAX_UNTAGGED_REPLY_CHARS:
        logger.warning("verbose_reply", length=len(text), reply=text[:200])
        return CallFailed(FailureReason.MALFORMED_REPLY, "verbose reply without tag")

    logger.warning("unrecognized_short_reply", reply=text)
    return CallFailed(FailureReason.MALFORMED_REPLY, f"unrecognized reply: {text}")
