"""
Embedding Client

This module implements the embedding collaborator on top of the Gemini
`embedContent` REST endpoint. It is responsible for:

- Credential checks before any network traffic
- Network and transport error isolation
- Strict response validation
- Deterministic output semantics for the vector store

The class is stateless and safe to reuse across requests.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence
import logging
import httpx

from ..config import settings
from ..core.errors import EmbeddingMalformed, EmbeddingUnavailable

logger = logging.getLogger("aoi.embedder")


class EmbeddingProvider(Protocol):
    """Anything that turns one text into one fixed-length vector."""

    async def embed(self, text: str) -> List[float]:
        ...


class Embedder:
    """
    Asynchronous embedding generator, one text per request.

    This class performs no caching and no retries; the caller handles
    throttling (see the ingestion pipeline) and retry policy.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Optional override for the Gemini API key. Defaults to settings.gemini_api_key.

        model : Optional[str]
            Optional override for the embedding model. Defaults to settings.gemini_embed_model.

        base_url : Optional[str]
            Base URL of the models API. Defaults to settings.gemini_base_url.

        timeout : Optional[float]
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, mainly for tests.
        """
        if api_key is None and settings.gemini_api_key is not None:
            api_key = settings.gemini_api_key.get_secret_value()

        # Keys pasted into .env files often keep their quotes
        self.api_key = (api_key or "").strip().strip("'\"")
        self.model = model or settings.gemini_embed_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}:embedContent"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding for one input text.

        Raises
        ------
        EmbeddingUnavailable
            If the API key is missing, the request fails, or the provider
            answers with a non-success status.

        EmbeddingMalformed
            If the response does not contain a numeric vector.
        """
        if not self.api_key:
            raise EmbeddingUnavailable("GEMINI_API_KEY missing")

        payload = {"content": {"parts": [{"text": text}]}}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=payload,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                logger.error("Embedding request rejected: status=%d", status)
                if status == 403 and "unregistered callers" in exc.response.text:
                    raise EmbeddingUnavailable(
                        "Gemini embeddings unauthorized: enable the Generative Language API "
                        "and use a server-side API key"
                    ) from exc
                raise EmbeddingUnavailable(f"Embedding provider error: {status}") from exc
            except httpx.HTTPError as exc:
                logger.error(
                    "Embedding request failed (%s): %s",
                    type(exc).__name__,
                    str(exc),
                )
                raise EmbeddingUnavailable(
                    f"Embedding generation failed: {type(exc).__name__}"
                ) from exc

            try:
                data = response.json()
            except ValueError as exc:
                raise EmbeddingMalformed("Embedding response is not JSON.") from exc

        return self._extract_vector(data)

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed texts one by one, preserving order."""
        return [await self.embed(text) for text in texts]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_vector(data: Any) -> List[float]:
        """
        Parse and validate the embedding output format.

        Gemini returns:
            { "embedding": { "values": [...] } }

        Older payloads used "value", and some proxies wrap it in "data".
        """
        if not isinstance(data, dict):
            raise EmbeddingMalformed("Embedding response must be a JSON object.")

        holder = data.get("embedding")
        if holder is None and isinstance(data.get("data"), dict):
            holder = data["data"].get("embedding")

        vector = None
        if isinstance(holder, dict):
            vector = holder.get("values", holder.get("value"))

        if not isinstance(vector, list) or not vector:
            raise EmbeddingMalformed("Invalid embedding response: missing vector.")

        if not all(isinstance(x, (float, int)) and not isinstance(x, bool) for x in vector):
            raise EmbeddingMalformed("Invalid embedding vector: must be a float list.")

        return [float(x) for x in vector]
