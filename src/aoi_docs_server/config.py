from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Embedding provider (Gemini embedContent)
    gemini_api_key: Optional[SecretStr] = None
    gemini_embed_model: str = "text-embedding-004"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"

    # Generation provider (Mistral chat completions)
    mistral_api_key: Optional[SecretStr] = None
    mistral_endpoint: str = "https://api.mistral.ai/v1/chat/completions"
    mistral_model: str = "mistral-small-latest"
    mistral_temperature: float = 0.2

    request_timeout: float = 60.0

    database_url: str = "sqlite+aiosqlite:///./data/vectors.db"

    # Ingestion
    docs_path: str = "website"
    ingest_sleep_ms: int = 100

    # Retrieval tuning
    similarity_threshold: float = 0.60
    top_k: int = 8
    context_chunks: int = 6
    max_context_chars: int = 12000
    function_search_k: int = 40
    function_results_limit: int = 12

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
