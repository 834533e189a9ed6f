import logging
from typing import List, Optional, Sequence

import httpx

from ..config import settings
from ..core.errors import GenerationUnavailable
from ..embeddings.models import Passage

logger = logging.getLogger("aoi.llm")

NOT_DOCUMENTED = "This is not documented in the official aoi.js documentation."

MAX_GENERATION_TOKENS = 800

SYSTEM_CONSTRAINTS = (
    "You are an aoi.js support assistant.",
    "Answer using ONLY the provided documentation context.",
    f'If an answer is not present in the context, reply exactly: "{NOT_DOCUMENTED}"',
    "Do not invent syntax or functions. Be clear and correct.",
)


def build_system_prompt(passages: Sequence[Passage], max_chars: Optional[int] = None) -> str:
    """Constraints followed by numbered context blocks, trimmed to max_chars."""
    limit = max_chars or settings.max_context_chars

    blocks = []
    for i, p in enumerate(passages, start=1):
        heading = p.source_path
        if p.section_title:
            heading = f"{heading} - {p.section_title}"
        blocks.append(f"Source {i} ({heading}):\n{p.content}")

    context = "\n\n".join(blocks)
    if len(context) > limit:
        context = context[:limit]

    return "\n".join(SYSTEM_CONSTRAINTS) + f"\n\nContext:\n{context}"


class GenerationClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if api_key is None and settings.mistral_api_key is not None:
            api_key = settings.mistral_api_key.get_secret_value()
        self.api_key = api_key or ""
        self._transport = transport

    async def generate(
        self,
        prompt: str,
        context_passages: Sequence[Passage],
        max_tokens: int = 400,
    ) -> str:
        """
        Returns the assistant text for `prompt`, grounded on `context_passages`.

        Raises GenerationUnavailable when the key is missing, the provider
        cannot be reached, or it answers with an error status.
        """
        if not self.api_key:
            raise GenerationUnavailable("MISTRAL_API_KEY missing")

        payload = {
            "model": settings.mistral_model,
            "messages": [
                {"role": "system", "content": build_system_prompt(context_passages)},
                {"role": "user", "content": prompt},
            ],
            "temperature": settings.mistral_temperature,
            "max_tokens": min(max_tokens or 400, MAX_GENERATION_TOKENS),
        }

        try:
            async with httpx.AsyncClient(timeout=settings.request_timeout, transport=self._transport) as client:
                resp = await client.post(
                    settings.mistral_endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Generation request failed (%s)", type(exc).__name__)
            raise GenerationUnavailable(f"Generation failed: {type(exc).__name__}") from exc

        choices: List[dict] = []
        if isinstance(data, dict):
            choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return (message.get("content") or "").strip()
