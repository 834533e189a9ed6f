from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..db import VectorStore, get_async_session
from ..embeddings.embedder import Embedder
from ..llm.client import GenerationClient
from ..retrieval.service import RetrievalService
from ..validator.assist import GeneratedCorrection
from ..validator.service import DslValidator


@lru_cache
def get_embedder() -> Embedder:
    return Embedder()


@lru_cache
def get_generation_client() -> GenerationClient:
    return GenerationClient()


def get_vector_store(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VectorStore:
    # One store per request; it shares the request's session/transaction
    return VectorStore(session)


def get_retrieval_service(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    vector_store: Annotated[VectorStore, Depends(get_vector_store)],
) -> RetrievalService:
    return RetrievalService(embedder, vector_store, timeout=settings.request_timeout)


def get_validator(
    retrieval: Annotated[RetrievalService, Depends(get_retrieval_service)],
    generator: Annotated[GenerationClient, Depends(get_generation_client)],
) -> DslValidator:
    return DslValidator(retrieval, assistant=GeneratedCorrection(retrieval, generator))
