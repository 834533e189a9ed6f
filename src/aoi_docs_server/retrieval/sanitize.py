"""
Input Sanitization

Free-text questions and intents are cleaned before they are embedded or put
into a prompt.
"""

from __future__ import annotations

import re
from typing import Any

MAX_QUESTION_CHARS = 4000
MAX_META_CHARS = 500

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")
_CODE_FENCE = re.compile(r"```[\s\S]*?```")
_DANGEROUS_TAGS = re.compile(r"</?(script|style|iframe)[^>]*>", re.IGNORECASE)
_INJECTION_PHRASES = (
    re.compile(r"ignore (all|previous) instructions", re.IGNORECASE),
    re.compile(r"system prompt", re.IGNORECASE),
    re.compile(r"you are (now )?", re.IGNORECASE),
    re.compile(r"pretend to", re.IGNORECASE),
    re.compile(r"act as", re.IGNORECASE),
)


def sanitize_question(value: Any) -> str:
    """
    Normalize a user question.

    Control characters and runs of whitespace collapse to single spaces,
    fenced code and script/style/iframe tags are removed, common prompt
    injection phrases are stripped, and the result is capped at 4000 chars.
    Non-string input yields an empty string.
    """
    if not isinstance(value, str):
        return ""

    s = value.strip()
    s = _CONTROL_CHARS.sub(" ", s)
    s = _WHITESPACE.sub(" ", s)
    s = _CODE_FENCE.sub("", s)
    s = _DANGEROUS_TAGS.sub("", s)
    for pattern in _INJECTION_PHRASES:
        s = pattern.sub("", s)

    return s[:MAX_QUESTION_CHARS]


def safe_meta(value: Any) -> str:
    """Flatten a metadata string onto one line and bound its length."""
    if not value:
        return ""
    return re.sub(r"[\n\r\t]", " ", str(value))[:MAX_META_CHARS]
