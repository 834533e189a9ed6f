from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from .dependencies import get_retrieval_service
from ..core.errors import InvalidInputError
from ..retrieval.docs import FunctionDocumentation, normalize_function_name
from ..retrieval.service import RetrievalService

router = APIRouter(prefix="/api", tags=["functions"])


@router.get(
    "/function",
    response_model=FunctionDocumentation,
    summary="Structured documentation for one aoi.js function",
)
async def describe_function(
    retrieval: Annotated[RetrievalService, Depends(get_retrieval_service)],
    name: Optional[str] = None,
) -> FunctionDocumentation:
    """
    Look up `$name` in the documentation.

    Syntax, description, parameters and examples are extracted from the
    matching passages; all of them stay empty when nothing scores above the
    similarity threshold.
    """
    if not normalize_function_name(name):
        raise InvalidInputError("Invalid function name")
    return await retrieval.describe_function(name)
