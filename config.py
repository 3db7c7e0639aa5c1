from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from availability import DEFAULT_DATE


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "doctors_portal"
    mongo_timeout_ms: int = 5000

    access_token_secret: str = Field(..., description="HMAC key for access tokens")
    access_token_expire_minutes: int = 60

    stripe_secret_key: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    from_email: Optional[str] = None

    default_availability_date: str = DEFAULT_DATE
    strict_slot_admission: bool = False
    cors_origins: str = "*"

    host: str = "0.0.0.0"
    port: int = 5000

    @field_validator("access_token_secret")
    @classmethod
    def validate_access_token_secret(cls, v):
        if not v or not v.strip():
            raise ValueError("ACCESS_TOKEN_SECRET must not be empty")
        return v

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
