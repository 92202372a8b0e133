"""Process-wide configuration, read once from the environment."""

from __future__ import annotations

import os
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "https://www.craftbg.click",
    "https://craftbg.click",
]


class Settings(BaseModel):
    """Immutable service settings shared by every request."""

    model_config = ConfigDict(frozen=True)

    rapidapi_key: Optional[str] = Field(default=None, description="Shared upstream API key")
    remove_bg_host: str = Field(default="background-removal4.p.rapidapi.com")
    enhance_host: str = Field(default="ai-face-enhancer.p.rapidapi.com")
    port: int = Field(default=4000)
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ORIGINS))
    cors_origin_regex: str = Field(default=r"https://.*\.vercel\.app")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)
    log_level: str = Field(default="INFO")
    relay_workers: int = Field(default=64, description="Threads available for blocking upstream calls")
    rate_limit_max_requests: int = Field(default=50, description="Requests per client per window; 0 disables")
    rate_limit_window_seconds: int = Field(default=15 * 60)

    @classmethod
    def from_env(cls) -> "Settings":
        origins = list(DEFAULT_ORIGINS)
        frontend_url = os.getenv("FRONTEND_URL")
        if frontend_url:
            origins.append(frontend_url)
        extra = os.getenv("CORS_ORIGINS", "")
        origins.extend(o.strip() for o in extra.split(",") if o.strip())

        return cls(
            rapidapi_key=os.getenv("RAPIDAPI_KEY") or None,
            remove_bg_host=os.getenv("RAPIDAPI_HOST") or "background-removal4.p.rapidapi.com",
            enhance_host=os.getenv("ENHANCE_RAPIDAPI_HOST") or "ai-face-enhancer.p.rapidapi.com",
            port=int(os.getenv("PORT", "4000")),
            cors_origins=origins,
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            relay_workers=int(os.getenv("RELAY_WORKERS", "64")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX", "50")),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900")),
        )

    @property
    def has_api_key(self) -> bool:
        return bool(self.rapidapi_key)


settings = Settings.from_env()
