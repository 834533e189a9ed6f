"""
DSL Validator

Inspects one aoi.js snippet for syntactic, structural and documentation
coverage problems without executing it.

Pipeline
--------
1. Normalize (strip code fences); empty input is rejected.
2. Run the independent checks: flow balance, guard clauses, logic
   expressions, call syntax, structural rules.
3. Classify every referenced function as documented/undocumented through
   the injected documentation source.
4. Optionally repair a surplus of unclosed `$if` blocks, or hand the
   diagnosis to a correction assistant.

Each call is a pure function of its input plus read-only lookups; the
validator keeps no state between invocations.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, NamedTuple, Optional, Protocol, Tuple

from ..config import settings
from ..core.errors import InvalidInputError, OperationCancelled
from ..retrieval.sanitize import sanitize_question
from . import rules
from .models import ValidationResult
from .tokenizer import FLOW_KEYWORDS, extract_functions, parse_function_calls, strip_code_fences

logger = logging.getLogger("aoi.validator")

_REPAIR_WORDS = r"fix|correct|repair|resolve|update|rewrite|refactor"
_REPAIR_INTENT = re.compile(_REPAIR_WORDS, re.IGNORECASE)
_REPAIR_MODE = re.compile(rf"^(?:{_REPAIR_WORDS})$", re.IGNORECASE)
_IF_TOKEN = re.compile(r"\$if\b")
_ENDIF_TOKEN = re.compile(r"\$endif\b")


class FunctionDocSource(Protocol):
    """Scores how well the documentation covers one function."""

    async def top_function_score(self, function_name: str) -> float:
        ...


class CorrectionAssistant(Protocol):
    """Model-assisted correction for errors the validator cannot repair itself."""

    async def suggest_fix(
        self,
        original_code: str,
        intent: str,
        errors: List[str],
        documented_functions: List[str],
    ) -> Optional[str]:
        ...


class Coverage(NamedTuple):
    documented: List[str]
    undocumented: List[str]


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def wants_repair(intent: Optional[str], mode: Optional[str] = None) -> bool:
    """True when the intent text or the mode flag asks for a correction."""
    if intent and _REPAIR_INTENT.search(intent):
        return True
    return bool(mode and _REPAIR_MODE.match(mode.strip()))


def repair_missing_endifs(code: str) -> Optional[str]:
    """
    Append one `$endif` per unclosed `$if` and fence the result.

    Returns None when there is no surplus of `$if`. More `$endif` than
    `$if` is deliberately left alone.
    """
    delta = len(_IF_TOKEN.findall(code)) - len(_ENDIF_TOKEN.findall(code))
    if delta <= 0:
        return None

    suffix = "\n".join([rules.ENDIF] * delta)
    repaired = code + ("" if code.endswith("\n") else "\n") + suffix + "\n"
    return "```js\n" + repaired + "```"


def confidence_score(documented: int, referenced: int) -> float:
    if referenced <= 0:
        return 0.5
    ratio = min(max(documented / referenced, 0.0), 1.0)
    return round(0.5 + 0.5 * ratio, 4)


def referenced_functions(code: str) -> List[str]:
    """Distinct functions in the snippet, flow keywords excluded."""
    return [f for f in extract_functions(code) if f.lower() not in FLOW_KEYWORDS]


# ---------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------

class DslValidator:
    """
    Validator bound to a documentation source.

    Parameters
    ----------
    doc_source : FunctionDocSource
        Usually a RetrievalService; tests substitute fakes with fixed scores.

    threshold : Optional[float]
        Minimum top score for a function to count as documented.
        Defaults to settings.similarity_threshold.

    assistant : Optional[CorrectionAssistant]
        Used only when a correction is requested and the mechanical
        `$endif` repair does not apply.
    """

    def __init__(
        self,
        doc_source: FunctionDocSource,
        threshold: Optional[float] = None,
        assistant: Optional[CorrectionAssistant] = None,
    ) -> None:
        self._doc_source = doc_source
        self._threshold = settings.similarity_threshold if threshold is None else threshold
        self._assistant = assistant

    async def check_documentation(self, functions: List[str]) -> Coverage:
        """
        Classify each function by its best documentation score.

        Lookups run one after another because they share the caller's
        database session. Collaborator failures propagate.
        """
        documented: List[str] = []
        undocumented: List[str] = []

        for fn in functions:
            score = await self._doc_source.top_function_score(fn)
            if score >= self._threshold:
                documented.append(fn)
            else:
                undocumented.append(fn)

        return Coverage(documented=documented, undocumented=undocumented)

    def _static_checks(self, code: str) -> Tuple[List[str], List[str]]:
        calls = parse_function_calls(code)
        structural = rules.check_structure(code)

        errors = [
            *rules.check_flow(code),
            *rules.check_guard_clauses(calls),
            *rules.check_logic_expressions(calls),
            *rules.check_call_syntax(calls),
            *structural.errors,
        ]
        return errors, structural.warnings

    async def validate(
        self,
        code: Optional[str],
        intent: Optional[str] = None,
        mode: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ValidationResult:
        """
        Validate one snippet.

        Raises
        ------
        InvalidInputError
            If `code` is missing or empty after fence stripping.
        OperationCancelled
            If the documentation lookups exceed `timeout`.
        """
        if not isinstance(code, str) or not code:
            raise InvalidInputError('Missing required parameter "code"')

        normalized = strip_code_fences(code)
        if not normalized:
            raise InvalidInputError("Empty code after normalization")

        request = sanitize_question(intent)
        errors, warnings = self._static_checks(normalized)

        functions = referenced_functions(normalized)
        try:
            if timeout is None:
                coverage = await self.check_documentation(functions)
            else:
                coverage = await asyncio.wait_for(self.check_documentation(functions), timeout)
        except asyncio.TimeoutError as exc:
            raise OperationCancelled("Validation timed out") from exc

        errors.extend(f"Undocumented function: {fn}" for fn in coverage.undocumented)

        fixed_code: Optional[str] = None
        corrective = wants_repair(request, mode)

        if corrective and errors == [rules.MISMATCHED_NESTING]:
            fixed_code = repair_missing_endifs(normalized)

        if corrective and request and errors and fixed_code is None and self._assistant is not None:
            fixed_code = await self._assistant.suggest_fix(
                original_code=code,
                intent=request,
                errors=errors,
                documented_functions=coverage.documented,
            )

        logger.info(
            "Validated snippet: %d functions, %d errors, %d warnings",
            len(functions),
            len(errors),
            len(warnings),
        )

        return ValidationResult(
            request=request,
            errors=errors,
            warnings=warnings,
            documented_functions=coverage.documented,
            undocumented_functions=coverage.undocumented,
            confidence=confidence_score(len(coverage.documented), len(functions)),
            original_code=normalized,
            fixed_code=fixed_code,
        )
