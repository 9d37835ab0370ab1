from typing import Dict, List, Union
from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    PROJECT_NAME: str = "ITS Asset Tracker"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # URLs
    BASE_URL: str = "http://localhost:3000"  # Used for deep links in alert e-mails

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./asset_tracker.db"
    TEST_DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # E-mail
    EMAIL_ENABLED: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_ADDRESS: str = "noreply@company.com"
    SMTP_FROM_NAME: str = "ITS Asset Tracker"
    SMTP_USE_TLS: bool = False
    SMTP_TIMEOUT: float = 30.0

    # Directory group -> member e-mail addresses
    DIRECTORY_GROUP_MEMBERS: Dict[str, List[str]] = {}

    # CSV upload
    CSV_MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Identity forwarded by the authenticating proxy
    REMOTE_USER_HEADER: str = "X-Remote-User"
    DEFAULT_ACTOR: str = "System"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
