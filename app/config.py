from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # ── App ───────────────────────────────────────────────────
    app_name: str = "DynamicApp"
    log_level: str = "INFO"
    # Base URL encoded into receipt QR codes (must be reachable from a phone)
    public_base_url: str = "http://localhost:8000"

    # ── Database ──────────────────────────────────────────────
    database_hostname: str
    database_port: str = "5432"
    database_password: str
    database_name: str
    database_username: str

    # ── JWT ───────────────────────────────────────────────────
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440
    refresh_token_expire_days: int = 7

    # ── Auth cookie ───────────────────────────────────────────
    auth_cookie_name: str = "authToken"
    auth_cookie_secure: bool = True
    auth_cookie_max_age: int = 604800  # 7 days
    # When False a requested ADMIN role at signup is downgraded to USER
    allow_admin_signup: bool = False

    # ── OTP ───────────────────────────────────────────────────
    otp_expiry_minutes: int = 10

    # ── SMTP ──────────────────────────────────────────────────
    mail_username: str
    mail_password: str
    mail_from: str
    mail_from_name: str = "DynamicApp"
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 587
    mail_suppress_send: bool = False
    support_email: str = "support@dynamicapp.in"

    # ── Razorpay ──────────────────────────────────────────────
    razorpay_key_id: str
    razorpay_key_secret: str

    # ── HTTP ──────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://localhost:3001"
    rate_limit_enabled: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    class Config:
        env_file = ".env"
        # Case-insensitive so DATABASE_HOSTNAME and database_hostname both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader: reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
