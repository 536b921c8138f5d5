from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "fitpool-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "FitPool")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/fitpool_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    # Principals allowed to attest/settle any challenge (comma separated)
    admin_principals: list[str] = [p for p in os.getenv("ADMIN_PRINCIPALS", "").split(",") if p]

    # Payouts
    payout_mode: str = os.getenv("PAYOUT_MODE", "wallet")  # wallet|stripe
    payout_currency: str = os.getenv("PAYOUT_CURRENCY", "usd")
    stripe_secret_key: str = os.getenv("STRIPE_SECRET_KEY", "")

    # Settlement with no successful athletes: close|abort
    empty_settlement_policy: str = os.getenv("EMPTY_SETTLEMENT_POLICY", "close")

settings = Settings()
