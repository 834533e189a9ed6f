"""
Model-Assisted Correction

When a snippet has errors the validator cannot repair mechanically, this
assistant asks the generation collaborator for a corrected snippet grounded
on the documentation of the intent and of the functions already known to
be documented.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..config import settings
from ..embeddings.models import Passage
from ..llm.client import GenerationClient, MAX_GENERATION_TOKENS
from ..retrieval.sanitize import safe_meta
from ..retrieval.service import RetrievalService

logger = logging.getLogger("aoi.validator.assist")

FUNCTION_CONTEXT_K = 6

_FENCED = re.compile(r"```(?:aoi|javascript|js)?\n?[\s\S]*?```", re.IGNORECASE)

PROMPT_HEADER = (
    "Explain the following aoi.js code errors using ONLY the provided documentation context.",
    "If correction is requested, produce a corrected version within a single JavaScript code block.",
    "Do not invent undocumented functions. Maintain $if/$elseif/$else/$endif correctness "
    "and $onlyIf error messages.",
)


def build_correction_prompt(intent: str, original_code: str, errors: List[str]) -> str:
    lines = [
        *PROMPT_HEADER,
        "",
        "Request:",
        intent,
        "",
        "Original code:",
        original_code,
        "",
        "Detected issues:",
        *(f"- {e}" for e in errors),
    ]
    return "\n".join(lines)


class GeneratedCorrection:
    """CorrectionAssistant backed by retrieval plus the generation collaborator."""

    def __init__(self, retrieval: RetrievalService, generator: GenerationClient) -> None:
        self._retrieval = retrieval
        self._generator = generator

    async def _context(self, intent: str, documented_functions: List[str]) -> List[Passage]:
        hits = list(await self._retrieval.search_by_text(intent, k=settings.top_k))
        for fn in documented_functions:
            name = fn.lstrip("$")
            hits.extend(await self._retrieval.search_by_text(f"${name}", k=FUNCTION_CONTEXT_K))

        return [
            hit.passage.model_copy(update={"section_title": safe_meta(hit.passage.section_title) or None})
            for hit in hits[: settings.context_chunks]
        ]

    async def suggest_fix(
        self,
        original_code: str,
        intent: str,
        errors: List[str],
        documented_functions: List[str],
    ) -> Optional[str]:
        """Return the first fenced block of the model's answer, if any."""
        context = await self._context(intent, documented_functions)
        answer = await self._generator.generate(
            build_correction_prompt(intent, original_code, errors),
            context,
            max_tokens=MAX_GENERATION_TOKENS,
        )

        match = _FENCED.search(answer)
        if not match:
            logger.info("Correction answer contained no code block")
            return None
        return match.group(0)
