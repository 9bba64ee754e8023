from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Wing Console API"
    ENV: str = "development"
    LOG_LEVEL: str = Field("INFO", env="LOG_LEVEL")

    # -------------------------------------------------
    # Frontend Domains
    # -------------------------------------------------
    FRONTEND_DOMAIN: Optional[str] = Field(None, env="FRONTEND_DOMAIN")

    CONSOLE_DOMAINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Upstream society backend
    # -------------------------------------------------
    UPSTREAM_API_URL: str = Field("http://localhost:5000/api", env="UPSTREAM_API_URL")
    UPSTREAM_TIMEOUT_SECONDS: float = Field(15.0, env="UPSTREAM_TIMEOUT_SECONDS")
    UPSTREAM_MAX_RETRIES: int = Field(2, env="UPSTREAM_MAX_RETRIES", description="Retries on 429/5xx and transport errors (default: 2)")

    # -------------------------------------------------
    # Refresh intervals
    # -------------------------------------------------
    DASHBOARD_REFRESH_SECONDS: int = Field(300, env="DASHBOARD_REFRESH_SECONDS", description="Dashboard stats polling interval (default: 5 minutes)")
    NOTIFICATION_REFRESH_SECONDS: int = Field(30, env="NOTIFICATION_REFRESH_SECONDS", description="Notification polling interval (default: 30 seconds)")

    # -------------------------------------------------
    # Scheduled jobs
    # -------------------------------------------------
    MONTHLY_REMINDERS_ENABLED: bool = Field(False, env="MONTHLY_REMINDERS_ENABLED")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

# 1) add deployed console domain
if settings.FRONTEND_DOMAIN:
    domain = settings.FRONTEND_DOMAIN
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

# 2) add local console domains
cors_origins.extend([d.rstrip("/") for d in settings.CONSOLE_DOMAINS])

# 3) remove duplicates
settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
