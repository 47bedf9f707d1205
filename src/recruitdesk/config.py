from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Recruitdesk"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    log_level: str = "INFO"
    secret_key: str = "change-me"
    cors_origins: str = "http://127.0.0.1:8000"

    database_url: str = "sqlite:///./data/recruitdesk.db"
    data_dir: Path = Path("./data")
    migration_dir: Path = Path("./data/migration")
    cv_import_dir: Path = Path("./data/migration-cvs")

    blob_backend: str = "local"
    blob_local_dir: Path = Path("./data/blobs")
    blob_public_base_url: str = "http://127.0.0.1:8000/files"
    blob_api_url: str = "https://blob.vercel-storage.com"
    blob_read_write_token: str = ""
    blob_timeout_sec: int = 30

    admin_username: str = ""
    admin_password: str = ""
    admin_users: str = ""
    session_cookie_name: str = "admin-auth"
    session_ttl_min: int = 1440
    cookie_secure: bool = False
    bearer_token: str = ""

    legacy_api_token: str = ""
    legacy_api_path: str = ""
    legacy_upload_key: str = ""

    cv_file_base_url: str = ""
    proxy_timeout_sec: int = 30

    submission_rate_per_min: int = 10
    legacy_upload_rate_per_min: int = 5
    login_rate_per_min: int = 10

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("blob_backend")
    @classmethod
    def validate_blob_backend(cls, value: str) -> str:
        allowed = {"local", "vercel"}
        if value not in allowed:
            raise ValueError(f"blob_backend must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def admin_accounts(self) -> dict[str, tuple[str, str]]:
        accounts: dict[str, tuple[str, str]] = {}
        if self.admin_username and self.admin_password:
            accounts[self.admin_username] = (self.admin_password, "admin")
        for entry in self.admin_users.split(","):
            parts = [part.strip() for part in entry.split(":")]
            if len(parts) < 2 or not parts[0] or not parts[1]:
                continue
            role = parts[2] if len(parts) > 2 and parts[2] else "admin"
            accounts[parts[0]] = (parts[1], role)
        return accounts


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
