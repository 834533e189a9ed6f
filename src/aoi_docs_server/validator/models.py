"""
Validation Result Model

One instance is produced per validator invocation and returned as-is by the
`/api/validateAoi` route.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class ValidationResult(BaseModel):
    """
    Diagnosis of one DSL snippet.

    `valid` is derived from `errors` and can never disagree with it.
    """

    request: str = Field(
        default="",
        description="Sanitized caller intent, empty when none was given.",
    )

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    documented_functions: List[str] = Field(
        default_factory=list,
        description="Distinct functions whose documentation scored above the threshold.",
    )

    undocumented_functions: List[str] = Field(default_factory=list)

    confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="0.5 + 0.5 * documented / referenced; 0.5 when nothing is referenced.",
    )

    original_code: str = Field(
        ...,
        description="The snippet after code-fence normalization.",
    )

    fixed_code: Optional[str] = Field(
        default=None,
        description="Fenced corrected snippet, when a repair was requested and possible.",
    )

    @computed_field  # type: ignore[misc]
    @property
    def valid(self) -> bool:
        return len(self.errors) == 0
