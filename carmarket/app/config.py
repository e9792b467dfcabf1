from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path


REQUIRED_KEYS = ("BACKEND_URL", "BACKEND_KEY")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_ENV: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")

    # backing data store and the project key; both are required at startup
    BACKEND_URL: str | None = Field(default=None)
    BACKEND_KEY: str | None = Field(default=None)

    DB_SYNC_ECHO: bool = Field(default=False)
    DB_POOL_SIZE: int = Field(default=10)
    DB_MAX_OVERFLOW: int = Field(default=20)
    DB_POOL_TIMEOUT: int = Field(default=30)

    STORAGE_DIR: str = Field(default="storage")
    STORAGE_PUBLIC_PATH: str = Field(default="/storage")
    MAX_IMAGE_BYTES: int = Field(default=5 * 1024 * 1024)
    MAX_IMAGES_PER_LISTING: int = Field(default=10)

    AUTH_SESSION_TTL_SECONDS: int = Field(default=7 * 24 * 3600)
    AUTH_REFRESH_MARGIN_SECONDS: int = Field(default=3600)

    def missing_required(self) -> list[str]:
        return [key for key in REQUIRED_KEYS if not (getattr(self, key) or "").strip()]

    @property
    def is_configured(self) -> bool:
        return not self.missing_required()

    @property
    def project_root(self) -> Path:
        # carmarket/app/config.py -> parents[2] == repo root
        return Path(__file__).resolve().parents[2]

    @property
    def storage_root(self) -> Path:
        path = Path(self.STORAGE_DIR)
        if not path.is_absolute():
            path = self.project_root / path
        return path


settings = Settings()
