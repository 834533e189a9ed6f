"""
DSL Rule Checks

Independent, pure checks over one normalized snippet. Each returns the
messages it found; nothing here raises for a problem in the snippet.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, NamedTuple

from .tokenizer import FunctionCall, extract_functions

IF = "$if"
ELSEIF = "$elseif"
ELSE = "$else"
ENDIF = "$endif"
GUARD = "$onlyIf"

BULK_QUERY = "$usersWithRole"
MUTATIONS = frozenset({"$setUserVar", "$setServerVar", "$setVar"})
LOOPS = frozenset({"$for"})
GLOBAL_ACCESSORS = frozenset({"$getVar", "$setVar"})

ELSEIF_WITHOUT_IF = "$elseif without matching $if"
ELSE_WITHOUT_IF = "$else without matching $if"
MULTIPLE_ELSE = "Multiple $else at same $if depth"
ENDIF_WITHOUT_IF = "$endif without matching $if"
MISMATCHED_NESTING = "Mismatched $if / $endif"
GUARD_MESSAGE_REQUIRED = "$onlyIf requires a non-empty error message"
ARITHMETIC_IN_CONDITION = (
    "Arithmetic operators are not allowed in logical conditions; "
    "use aoi.js comparison macros or documented patterns"
)
BULK_MUTATION = "Bulk-user operations are not supported: avoid combining $usersWithRole with mutations"
LOOP_UNSUPPORTED = "Loops are not supported in aoi.js: $for is invalid"
GLOBAL_VARIABLES = "Global variables used without explicit justification"
GUARD_AS_BRANCH = "$onlyIf should be used for validation, not branching"

_FLOW_TOKEN = re.compile(r"\$(if|elseif|else|endif)\b", re.IGNORECASE)
_ARITHMETIC = re.compile(r"[+\-*/]")
_GUARD_CALL = re.compile(r"\$onlyIf\[")
_ELSE_TOKEN = re.compile(r"\$else\b")

Calls = Mapping[str, List[FunctionCall]]


class StructuralFindings(NamedTuple):
    errors: List[str]
    warnings: List[str]


def check_flow(code: str) -> List[str]:
    """
    Verify $if / $elseif / $else / $endif nesting in one pass.

    Depth starts at 0 and must return to 0. Each depth level allows at
    most one $else before its $endif.
    """
    errors: List[str] = []
    depth = 0
    else_count: Dict[int, int] = {}

    for match in _FLOW_TOKEN.finditer(code):
        token = "$" + match.group(1).lower()

        if token == IF:
            depth += 1
        elif token == ELSEIF:
            if depth <= 0:
                errors.append(ELSEIF_WITHOUT_IF)
        elif token == ELSE:
            if depth <= 0:
                errors.append(ELSE_WITHOUT_IF)
            else:
                else_count[depth] = else_count.get(depth, 0) + 1
                if else_count[depth] > 1:
                    errors.append(MULTIPLE_ELSE)
        elif depth <= 0:
            errors.append(ENDIF_WITHOUT_IF)
        else:
            else_count[depth] = 0
            depth -= 1

    if depth != 0:
        errors.append(MISMATCHED_NESTING)

    return errors


def check_call_syntax(calls: Calls) -> List[str]:
    """One error per malformed call, in order of first appearance."""
    errors: List[str] = []
    for name, invocations in calls.items():
        for call in invocations:
            if not call.malformed:
                continue
            if call.args is None:
                errors.append(f"Invalid function syntax: {name} must use brackets [..]")
            else:
                errors.append(f"Invalid function syntax: {name}[ is never closed")
    return errors


def check_guard_clauses(calls: Calls) -> List[str]:
    """Every $onlyIf needs a second, non-empty argument (the error message)."""
    errors: List[str] = []
    for call in calls.get(GUARD, []):
        if call.args is None:
            # missing brackets are reported by check_call_syntax
            continue
        if len(call.args) < 2 or not call.args[1].strip():
            errors.append(GUARD_MESSAGE_REQUIRED)
    return errors


def check_logic_expressions(calls: Calls) -> List[str]:
    """Conditions of $if / $onlyIf must use $sum-style functions, not + - * /."""
    conditions = [
        call.args[0]
        for name in (IF, GUARD)
        for call in calls.get(name, [])
        if call.args
    ]
    return [ARITHMETIC_IN_CONDITION for cond in conditions if _ARITHMETIC.search(cond)]


def check_structure(code: str) -> StructuralFindings:
    """Domain rules that look at the snippet as a whole."""
    errors: List[str] = []
    warnings: List[str] = []
    functions = set(extract_functions(code))

    if BULK_QUERY in functions and functions & MUTATIONS:
        errors.append(BULK_MUTATION)

    if functions & LOOPS:
        errors.append(LOOP_UNSUPPORTED)

    if functions & GLOBAL_ACCESSORS:
        warnings.append(GLOBAL_VARIABLES)

    if _GUARD_CALL.search(code) and _ELSE_TOKEN.search(code):
        warnings.append(GUARD_AS_BRANCH)

    return StructuralFindings(errors=errors, warnings=warnings)
