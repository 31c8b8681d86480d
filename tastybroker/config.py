from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    TASTY_API_BASE_URL: str = "https://api.tastyworks.com"
    TASTY_API_TOKEN: str | None = None


    TASTY_LOGIN: str | None = None
    TASTY_PASSWORD: str | None = None
    TASTY_REMEMBER_ME: bool = False


    TASTY_TIMEOUT: float = 30.0
    TASTY_USER_AGENT: str = "tastybroker/0.1"
    # prefix put before the token in the Authorization header ("" = raw token)
    TASTY_AUTH_SCHEME: str = ""


    LOG_LEVEL: str = "INFO"


    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


    @field_validator("TASTY_API_BASE_URL")
    @classmethod
    def _base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("TASTY_API_BASE_URL must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("TASTY_TIMEOUT")
    @classmethod
    def _timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("TASTY_TIMEOUT must be > 0")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _level(cls, v: str) -> str:
        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(allowed)}")
        return v.upper()


settings = Settings()
