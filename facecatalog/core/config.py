"""Configuration settings for the face catalog."""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        DATABASE_URL: Full async SQLAlchemy URL, overrides the POSTGRES_* settings
        ARTIFACT_ROOT: Directory holding one image artifact per face record
        EMBEDDING_DIM: Length of every stored embedding (fixed per deployment)
        SUBSCRIBER_BUFFER_SIZE: Number of undelivered events kept per subscriber
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        env_nested_delimiter="__"
    )

    # Core Settings
    PROJECT_NAME: str = "Face Catalog"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"

    # Database Settings
    DATABASE_URL: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "face_catalog"
    POSTGRES_POOL_SIZE: int = 5
    POSTGRES_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30

    @property
    def database_url(self) -> str:
        """Get the async database URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Artifact Settings
    ARTIFACT_ROOT: str = "data/faces"
    ARTIFACT_EXTENSION: str = ".jpg"

    # Embedding Settings
    EMBEDDING_DIM: int = 512
    MODEL_PATH: str = "models/face_embedding.onnx"
    MODEL_INPUT_SIZE: int = 112  # Square input, typical for face recognition models
    INFERENCE_PROVIDERS: str = "CPUExecutionProvider"

    @property
    def inference_providers(self) -> List[str]:
        """Get list of onnxruntime execution providers."""
        return [provider.strip() for provider in self.INFERENCE_PROVIDERS.split(",") if provider.strip()]

    # Matching Settings (cosine similarity, -1 to 1)
    SIMILARITY_THRESHOLD: float = 0.5
    CLUSTER_THRESHOLD: float = 0.5
    MAX_MATCHES: int = 100

    # Notification Settings
    SUBSCRIBER_BUFFER_SIZE: int = 100

    # Retention Settings
    RETENTION_DAYS: int = 30
    RETENTION_INTERVAL_SECONDS: int = 3600
    RECONCILE_GRACE_SECONDS: int = 300

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False


settings = Settings()
