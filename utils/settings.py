"""Environment-driven configuration for the guide service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 60.0


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


@dataclass
class GuideSettings:
    """Runtime settings read from the environment (after `load_dotenv`)."""

    openai_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    database_dir: Optional[str] = None
    image_store_dir: Optional[str] = None
    public_base_url: str = ""
    cors_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 4000

    @classmethod
    def from_env(cls) -> "GuideSettings":
        timeout_raw = _optional_env("OPENAI_TIMEOUT_SECONDS")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        except ValueError as exc:
            raise RuntimeError(f"OPENAI_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}") from exc

        origins = [origin.strip() for origin in (os.getenv("CORS_ORIGIN") or "").split(",") if origin.strip()]
        return cls(
            openai_api_key=_optional_env("OPENAI_API_KEY"),
            model=_optional_env("OPENAI_MODEL") or DEFAULT_MODEL,
            timeout_seconds=timeout,
            database_dir=_optional_env("DATABASE_DIR"),
            image_store_dir=_optional_env("IMAGE_STORE_DIR"),
            public_base_url=_optional_env("PUBLIC_BASE_URL") or "",
            cors_origins=origins,
            log_level=(_optional_env("LOG_LEVEL") or "INFO").upper(),
            host=_optional_env("HOST") or "0.0.0.0",
            port=int(_optional_env("PORT") or 4000),
        )
