"""
DSL Tokenizer

Scans aoi.js snippets for `$function[arg;arg;...]` calls without executing
anything. Bracket nesting is tracked so that inner calls do not terminate
the outer call early, and `;` only separates arguments at nesting depth 0.
"""

from __future__ import annotations

import re
from typing import Dict, List, NamedTuple, Optional

SIGIL = "$"
OPEN_BRACKET = "["
CLOSE_BRACKET = "]"
SEPARATOR = ";"

FLOW_KEYWORDS = ("$if", "$elseif", "$else", "$endif")

# Keywords that are complete without an argument list
BRACKETLESS_KEYWORDS = frozenset({"$else", "$endif"})

_CODE_FENCE = re.compile(r"```(?:aoi|javascript|js)?\s*([\s\S]*?)```", re.IGNORECASE)
_FUNCTION_TOKEN = re.compile(r"\$[A-Za-z0-9_]+")


class FunctionCall(NamedTuple):
    """
    One occurrence of a function in a snippet.

    `args` is None when the opening bracket is missing; otherwise it holds
    the raw argument strings split at top-level separators. A call whose
    bracket never closes keeps its arguments and is marked malformed.
    """
    name: str
    args: Optional[List[str]]
    malformed: bool = False


def _is_identifier_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def strip_code_fences(code: Optional[str]) -> str:
    """Remove ```aoi / ```js fences around (or inside) a snippet and trim it."""
    if not isinstance(code, str):
        return ""
    return _CODE_FENCE.sub(r"\1", code.strip()).strip()


def extract_functions(code: str) -> List[str]:
    """Distinct `$name` tokens in order of first appearance."""
    return list(dict.fromkeys(_FUNCTION_TOKEN.findall(code or "")))


def split_arguments(inner: str) -> List[str]:
    """Split the text between a call's brackets at depth-0 separators."""
    args: List[str] = []
    buf: List[str] = []
    depth = 0

    for ch in inner:
        if ch == OPEN_BRACKET:
            depth += 1
        elif ch == CLOSE_BRACKET:
            depth = max(0, depth - 1)

        if ch == SEPARATOR and depth == 0:
            args.append("".join(buf))
            buf = []
        else:
            buf.append(ch)

    args.append("".join(buf))
    return args


def parse_function_calls(code: str) -> Dict[str, List[FunctionCall]]:
    """
    Map each function name (with its `$`) to the calls made with it.

    A name not followed by `[` is recorded as malformed, except the
    bracketless flow keywords `$else` and `$endif`. Scanning resumes after
    a call's closing bracket, so calls nested in arguments stay part of
    the outer call's argument text. An unterminated bracket consumes the
    rest of the snippet.
    """
    calls: Dict[str, List[FunctionCall]] = {}
    s = code or ""
    n = len(s)
    i = 0

    while i < n:
        if s[i] != SIGIL:
            i += 1
            continue

        j = i + 1
        while j < n and _is_identifier_char(s[j]):
            j += 1

        name = s[i:j]
        if name == SIGIL:
            i = j
            continue

        if j >= n or s[j] != OPEN_BRACKET:
            if name.lower() in BRACKETLESS_KEYWORDS:
                call = FunctionCall(name=name, args=[])
            else:
                call = FunctionCall(name=name, args=None, malformed=True)
            calls.setdefault(name, []).append(call)
            i = j
            continue

        k = j + 1
        depth = 1
        while k < n and depth > 0:
            if s[k] == OPEN_BRACKET:
                depth += 1
            elif s[k] == CLOSE_BRACKET:
                depth -= 1
            k += 1

        # k is one past the matching bracket, or n when it never closed
        inner = s[j + 1 : k - 1] if depth == 0 else s[j + 1 : k]
        calls.setdefault(name, []).append(
            FunctionCall(name=name, args=split_arguments(inner), malformed=depth != 0)
        )

        i = k

    return calls
