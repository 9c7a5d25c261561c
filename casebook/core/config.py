import os
from urllib.parse import urlparse
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(val: str | None) -> list[str]:
    return [v.strip() for v in (val or "").split(",") if v.strip()]


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Casebook Backend"
    ENV: str = os.getenv("ENV", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Frontend URL used for CORS and post-login redirects
    PUBLIC_URL: str = os.getenv("PUBLIC_URL", "http://localhost:3000")

    # CORS
    ALLOW_ORIGINS: list[str] = Field(default_factory=list)  # override via ALLOWED_ORIGINS (CSV)
    ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    ALLOW_HEADERS: list[str] = ["*"]
    ALLOW_CREDENTIALS: bool = True

    # DB (single-file SQLite by default)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./casebook.db")

    # OAuth portal
    APP_ID: str = os.getenv("APP_ID", "")
    OAUTH_PORTAL_URL: str = os.getenv("OAUTH_PORTAL_URL", "")
    OAUTH_SERVER_URL: str = os.getenv("OAUTH_SERVER_URL", "")
    OAUTH_TIMEOUT_SECONDS: float = 10.0

    # External ids promoted to admin on sign-in
    OWNER_OPEN_ID: str = ""
    OWNER_OPEN_IDS: str = ""  # CSV

    # Auth / JWT
    JWT_SECRET: str = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRES_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRES_MINUTES", "525600"))  # 1 year

    # Cookies
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "app_session_id")
    SESSION_COOKIE_DOMAIN: str | None = os.getenv("SESSION_COOKIE_DOMAIN") or None
    SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"
    SESSION_COOKIE_SAMESITE: str = os.getenv("SESSION_COOKIE_SAMESITE", "lax")  # 'lax' or 'none'

    # Load .env file
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Helpers ----------

    def owner_open_ids(self) -> list[str]:
        from_list = _split_csv(self.OWNER_OPEN_IDS)
        if from_list:
            return from_list
        single = self.OWNER_OPEN_ID.strip()
        return [single] if single else []

    def frontend_origins(self) -> list[str]:
        if self.ALLOW_ORIGINS:
            return self.ALLOW_ORIGINS

        parsed = urlparse(self.PUBLIC_URL)
        scheme = parsed.scheme or "https"
        dom = parsed.netloc or "localhost:3000"
        return list({
            f"{scheme}://{dom}",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        })


def build_settings() -> Settings:
    s = Settings()

    # Heroku-style URLs and bare sqlite paths
    if s.DATABASE_URL.startswith("postgres://"):
        s.DATABASE_URL = s.DATABASE_URL.replace("postgres://", "postgresql://", 1)
    if s.DATABASE_URL.startswith("file:"):
        s.DATABASE_URL = "sqlite:///" + s.DATABASE_URL.removeprefix("file:")

    # Load CORS overrides
    env_origins = _split_csv(os.getenv("ALLOWED_ORIGINS"))
    if env_origins:
        s.ALLOW_ORIGINS = env_origins
    else:
        s.ALLOW_ORIGINS = s.frontend_origins()

    return s


settings = build_settings()
