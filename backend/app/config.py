from __future__ import annotations

from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings
import os


DEV_JWT_SECRET = "dev-secret-change-in-prod"


def _base_dir() -> Path:
    return Path(os.getenv("LT_HOME") or Path.home() / ".live-translate")


class Settings(BaseSettings):
    data_dir: Path = Field(default_factory=lambda: _base_dir() / "data")
    logs_dir: Path = Field(default_factory=lambda: _base_dir() / "logs")
    database_path: Path = Field(default_factory=lambda: _base_dir() / "data" / "live_translate.db")
    # Full SQLAlchemy URL; overrides database_path when set
    database_url: Optional[str] = None

    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Auth
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expiry_days: int = 30
    bcrypt_rounds: int = 10

    # Transcription provider
    assemblyai_api_key: Optional[str] = None
    realtime_url: str = "wss://api.assemblyai.com/v2/realtime/ws"
    sample_rate: int = 16000

    # Translation (LLM task endpoint of the same provider)
    translation_url: str = "https://api.assemblyai.com/lemur/v3/generate/task"
    translation_model: str = "anthropic/claude-3-5-sonnet"
    translation_timeout: float = 30.0

    class Config:
        env_prefix = "LT_"
        case_sensitive = False

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or f"sqlite:///{self.database_path}"

    def ensure_dirs(self) -> None:
        for d in [self.data_dir, self.logs_dir, self.database_path.parent]:
            d.mkdir(parents=True, exist_ok=True)
