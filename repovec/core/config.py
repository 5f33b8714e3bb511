"""
Application Configuration

Every knob is an environment variable (or a ``.env`` entry) bound through
pydantic-settings. The module-level ``settings`` instance is what the
rest of the package imports; tests derive variants with ``model_copy``.

Required:
    POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB

Pipeline:
    GITHUB_TOKEN          bearer token for the GraphQL API (fetch fails without it)
    OPENAI_API_KEY        missing or "mock" selects deterministic mock embeddings
    EMBEDDING_PROVIDER    "openai" or "local" (sentence-transformers)
    EMBEDDING_MODEL       defaults per provider: text-embedding-3-large / all-MiniLM-L6-v2
    EMBEDDING_DIMENSION   defaults per provider (3072 / 384); must match ``files.embedding``
    CHUNK_SIZE / CHUNK_OVERLAP, EMBEDDING_BATCH_SIZE
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_EMBEDDING_MODEL = "all-MiniLM-L6-v2"
LOCAL_EMBEDDING_DIMENSION = 384


class Settings(BaseSettings):
    PROJECT_NAME: str = "Repovec"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    LOG_LEVEL: str = "INFO"

    # GitHub
    GITHUB_TOKEN: str | None = None
    GITHUB_GRAPHQL_URL: str = "https://api.github.com/graphql"
    GITHUB_TIMEOUT: float = Field(default=30.0, gt=0)

    # Embeddings
    OPENAI_API_KEY: str | None = None
    EMBEDDING_PROVIDER: Literal["openai", "local"] = "openai"
    EMBEDDING_MODEL: str = "text-embedding-3-large"
    EMBEDDING_DIMENSION: int = Field(default=3072, gt=0)
    EMBEDDING_BATCH_SIZE: int = Field(default=20, gt=0)

    # Chunking
    CHUNK_SIZE: int = Field(default=1000, gt=0)
    CHUNK_OVERLAP: int = Field(default=200, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _overlap_below_size(self) -> "Settings":
        if self.CHUNK_OVERLAP >= self.CHUNK_SIZE:
            raise ValueError(
                f"CHUNK_OVERLAP ({self.CHUNK_OVERLAP}) must be smaller than "
                f"CHUNK_SIZE ({self.CHUNK_SIZE})"
            )
        return self

    @model_validator(mode="after")
    def _provider_defaults(self) -> "Settings":
        # Only fills what was not supplied by env, .env or kwargs
        if self.EMBEDDING_PROVIDER == "local":
            if "EMBEDDING_MODEL" not in self.model_fields_set:
                self.EMBEDDING_MODEL = LOCAL_EMBEDDING_MODEL
            if "EMBEDDING_DIMENSION" not in self.model_fields_set:
                self.EMBEDDING_DIMENSION = LOCAL_EMBEDDING_DIMENSION
        return self

    @property
    def DATABASE_URL(self) -> str:
        """SQLAlchemy URL for the asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()  # type: ignore[call-arg]
