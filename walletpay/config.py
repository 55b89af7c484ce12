"""Client configuration, read from WALLETPAY_* environment variables or a .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ------------------------
# Constants
# ------------------------
DEFAULT_API = "http://127.0.0.1:8000/api/v1"
DEFAULT_STORAGE_DIR = Path.home() / ".walletpay"
STORAGE_KEY = "auth_tokens"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WALLETPAY_", env_file=".env", case_sensitive=False)

    api_base_url: str = DEFAULT_API
    storage_dir: Path = DEFAULT_STORAGE_DIR
    # when set, the stored credential record is sealed with AES-GCM
    storage_secret: Optional[str] = None
    timeout: float = 10.0
    # e.g. "/accounts/token/refresh/"; unset keeps refresh-on-401 disabled
    token_refresh_path: Optional[str] = None

    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("storage_dir", mode="before")
    @classmethod
    def expand_home(cls, v):
        return Path(v).expanduser() if isinstance(v, (str, Path)) else v

    @property
    def credentials_path(self) -> Path:
        return self.storage_dir / f"{STORAGE_KEY}.json"

    @property
    def insecure_transport(self) -> bool:
        """True for plain-HTTP endpoints that are not on the local machine."""
        url = self.api_base_url
        return not url.startswith("https://") and "localhost" not in url and "127.0.0.1" not in url


@lru_cache
def get_settings() -> Settings:
    return Settings()
