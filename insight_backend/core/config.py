# insight_backend/core/config.py

import logging
from functools import lru_cache
from typing import List, Literal

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Data Insight Backend"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    # ========= OPENAI (chat completion) =========
    OPENAI_API_KEY: str
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"

    # insight generation / fallback answer
    OPENAI_INSIGHT_MODEL: str = "gpt-4.1"
    # natural language -> query text (only used when QUERY_GENERATOR=llm)
    OPENAI_SQL_MODEL: str = "gpt-4.1-mini"

    LLM_MAX_TOKENS: int = 1500
    LLM_TEMPERATURE: float = 0.7
    LLM_TIMEOUT_SECONDS: float = 60.0

    # ========= Fabric (tabular query service) =========
    FABRIC_API_BASE_URL: str = "https://api.fabric.microsoft.com/v1"
    FABRIC_WORKSPACE_ID: str = ""
    FABRIC_TOKEN_SCOPE: str = "https://analysis.windows.net/powerbi/api/.default"
    FABRIC_TENANT_ID: str = ""
    FABRIC_CLIENT_ID: str = ""
    FABRIC_CLIENT_SECRET: str = ""
    # static bearer token for local runs; skips the client-credentials grant
    FABRIC_ACCESS_TOKEN: str = ""
    FABRIC_SQL_MAX_ROWS: int = 10000

    # ========= pipeline =========
    QUERY_CACHE_TTL_SECONDS: int = 300
    QUERY_CACHE_SWEEP_SECONDS: int = 300
    CONTEXT_MAX_ROWS: int = 50
    VISUALIZATION_TABLE_ROWS: int = 100
    QUERY_GENERATOR: Literal["template", "llm"] = "template"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def setup_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
