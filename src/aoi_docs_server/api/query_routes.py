"""
Query Routes

Question answering strictly over the ingested documentation. The generation
collaborator only ever sees retrieved passages; below the similarity
threshold no generation happens at all.
"""

import re
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from .models import QueryResponse
from .dependencies import get_generation_client, get_retrieval_service
from ..config import settings
from ..core.errors import InvalidInputError
from ..llm.client import GenerationClient, NOT_DOCUMENTED
from ..retrieval.docs import relative_doc_path
from ..retrieval.sanitize import safe_meta, sanitize_question
from ..retrieval.service import RetrievalService

router = APIRouter(prefix="/api", tags=["query"])

_CODE_BLOCK = re.compile(r"```[a-z]*\n[\s\S]*?```")

CODE_INSTRUCTIONS = (
    "Generate minimal aoi.js code strictly using the provided context. "
    "Use correct bracket syntax [..] and separators ';' and ':'. "
    "Output only code in a single JavaScript code block."
)
ANSWER_INSTRUCTIONS = (
    "Answer strictly using the provided documentation context. "
    "If something is unknown or not in context, say it is not documented."
)


@router.get(
    "/basicQuery",
    response_model=QueryResponse,
    response_model_exclude_none=True,
    summary="Answer a question from local documentation",
)
async def basic_query(
    retrieval: Annotated[RetrievalService, Depends(get_retrieval_service)],
    generator: Annotated[GenerationClient, Depends(get_generation_client)],
    q: Optional[str] = None,
    request: Optional[str] = None,
    max_tokens: Annotated[Optional[int], Query(ge=1, le=800)] = None,
    mode: Optional[str] = None,
) -> QueryResponse:
    """
    Answer `q` (or `request`) using only retrieved passages.

    With `mode=code` the first fenced block of the generation is returned
    as `code` instead of a prose answer.
    """
    prompt = sanitize_question(q or request)
    if not prompt:
        raise InvalidInputError("Invalid question")

    hits = await retrieval.search_by_text(prompt, k=settings.top_k)
    top_score = hits[0].score if hits else 0.0
    confidence = round(top_score, 4)

    if not hits or top_score < settings.similarity_threshold:
        return QueryResponse(answer=NOT_DOCUMENTED, confidence=confidence)

    context = [
        hit.passage.model_copy(update={"section_title": safe_meta(hit.passage.section_title) or None})
        for hit in hits[: settings.context_chunks]
    ]
    sources = list(dict.fromkeys(relative_doc_path(p.source_path) for p in context))

    if (mode or "").lower() == "code":
        generated = await generator.generate(
            f"{prompt}\n\n{CODE_INSTRUCTIONS}",
            context,
            max_tokens=max_tokens or 400,
        )
        block = _CODE_BLOCK.search(generated)
        return QueryResponse(
            code=block.group(0) if block else generated,
            sources=sources,
            confidence=confidence,
        )

    answer = await generator.generate(
        f"{prompt}\n\n{ANSWER_INSTRUCTIONS}",
        context,
        max_tokens=max_tokens or 350,
    )
    return QueryResponse(answer=answer, sources=sources, confidence=confidence)
