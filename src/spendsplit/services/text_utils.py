"""Cleanup for text pasted from phone notifications."""

from __future__ import annotations

import re

_NEWLINES = re.compile(r"\r\n|\n|\r")
_SINGLE_QUOTES = re.compile("[\u2018\u2019]")
_DOUBLE_QUOTES = re.compile("[\u201c\u201d]")
_DASHES = re.compile("[\u2013\u2014]")
_INVISIBLE = re.compile("[\u200b-\u200d\ufeff]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_sms_text(text: str | None) -> str:
    """Normalize quotes, dashes, invisible characters and whitespace."""

    if not text:
        return ""
    cleaned = _NEWLINES.sub(" ", text)
    cleaned = _SINGLE_QUOTES.sub("'", cleaned)
    cleaned = _DOUBLE_QUOTES.sub('"', cleaned)
    cleaned = _DASHES.sub("-", cleaned)
    cleaned = _INVISIBLE.sub("", cleaned)
    # \s also covers non-breaking spaces
    return _WHITESPACE.sub(" ", cleaned.strip())
