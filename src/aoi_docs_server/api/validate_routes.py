"""
Validation Routes

Exposes the DSL validator. Structural problems in the snippet come back in a
200 response; only a missing or empty snippet is rejected.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from .dependencies import get_validator
from ..validator.models import ValidationResult
from ..validator.service import DslValidator

router = APIRouter(prefix="/api", tags=["validation"])


@router.get(
    "/validateAoi",
    response_model=ValidationResult,
    summary="Validate an aoi.js snippet against local documentation",
)
async def validate_aoi(
    validator: Annotated[DslValidator, Depends(get_validator)],
    code: Optional[str] = None,
    request: Optional[str] = None,
    intent: Optional[str] = None,
    mode: Optional[str] = None,
) -> ValidationResult:
    """
    Validate `code` (optionally fenced).

    `request` (or its alias `intent`) carries the caller's free-text intent;
    an intent or `mode` such as "fix" enables repairs.
    """
    return await validator.validate(code, intent=request or intent, mode=mode)
