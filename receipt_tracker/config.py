"""
Application settings.
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

from receipt_tracker.schemas.analysis import AnalysisConfig


class Settings(BaseSettings):
    # 데이터베이스
    DATABASE_URL: str = "sqlite:///./data/receipts.db"

    # 환경
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # 파일 저장
    DATA_DIR: str = "./data"
    UPLOAD_DIR: str = "./data/uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Blob URLs handed to the UI and to the analysis service
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    BLOB_SIGNING_KEY: str = "your-signing-key-change-in-production"
    SIGNED_URL_TTL_SECONDS: int = Field(default=900, ge=1, le=900)

    # Document analysis service
    DI_ENDPOINT: str = ""
    DI_KEY: str = ""
    DI_MODEL_ID: str = "prebuilt-receipt"
    DI_API_VERSION: str = "2023-07-31"
    DI_MODELS_PATH: str = "formrecognizer/documentModels"
    DI_REQUEST_TIMEOUT: float = 30.0

    # Polling
    POLL_INTERVAL_SECONDS: float = Field(default=1.0, ge=0)
    POLL_MAX_ATTEMPTS: int = Field(default=30, ge=1)

    class Config:
        env_file = ".env"
        case_sensitive = True

    def analysis_config(self) -> AnalysisConfig:
        return AnalysisConfig(
            endpoint=self.DI_ENDPOINT,
            api_key=self.DI_KEY,
            model_id=self.DI_MODEL_ID,
            api_version=self.DI_API_VERSION,
            models_path=self.DI_MODELS_PATH,
            request_timeout=self.DI_REQUEST_TIMEOUT,
            poll_interval_seconds=self.POLL_INTERVAL_SECONDS,
            poll_max_attempts=self.POLL_MAX_ATTEMPTS,
        )


settings = Settings()
