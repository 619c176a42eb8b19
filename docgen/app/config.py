"""
Centralized configuration for the Document Generation service.

Settings are parsed once from the environment (``DOCGEN_`` prefix, with
optional ``.env`` support), validated by Pydantic, and treated as
immutable for the lifetime of the process. Invalid configuration fails
fast at startup.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates" / "documents"


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.
    """

    # ---------------------------------------------------------------------
    # Template catalogue and cache
    # ---------------------------------------------------------------------

    template_dir: Annotated[
        Path,
        Field(
            default=DEFAULT_TEMPLATE_DIR,
            description="Directory holding one markup source per template version",
        ),
    ]

    template_cache_enabled: Annotated[
        bool,
        Field(
            default=True,
            description=(
                "Keep template sources in memory. When disabled every "
                "resolution reads the source from disk."
            ),
        ),
    ]

    enable_template_reload: Annotated[
        bool,
        Field(
            default=False,
            description="Expose POST /documents/templates/reload (hot reload)",
        ),
    ]

    # ---------------------------------------------------------------------
    # PDF engine
    # ---------------------------------------------------------------------

    pdf_timeout_ms: Annotated[
        int,
        Field(
            default=30_000,
            gt=0,
            description="Upper bound for markup to settle before PDF export",
        ),
    ]

    pdf_chromium_sandbox: Annotated[
        bool,
        Field(
            default=True,
            description=(
                "Run Chromium inside its OS sandbox. Disable only for "
                "root-in-container deployments."
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # HTTP surface
    # ---------------------------------------------------------------------

    allowed_origins: Annotated[
        List[str],
        NoDecode,
        Field(
            default_factory=lambda: ["*"],
            description="CORS origins (comma-separated in the environment)",
        ),
    ]

    host: str = "0.0.0.0"
    port: Annotated[int, Field(default=3000, ge=1, le=65535)]

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DOCGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    # ---------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ---------------------------------------------------------------------

    @field_validator("template_dir")
    @classmethod
    def template_dir_must_exist(cls, v: Path) -> Path:
        resolved = v.expanduser().resolve()
        if not resolved.is_dir():
            raise ValueError(f"template_dir does not exist: {resolved}")
        return resolved

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unsupported log_level '{v}'")
        return level


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Process-wide settings singleton.
    """
    return Settings()
