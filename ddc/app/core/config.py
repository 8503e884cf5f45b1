"""
Centralized configuration for the DDC session service.

Pydantic v2 settings management: values come from the environment
(prefix ``DDC_``) or a local ``.env`` file, are validated once at startup
and are immutable afterwards.

Scanning is opt-in. Leaving ``DDC_CLAMD_SOCKET`` empty disables the
antivirus gate entirely so the service runs without a clamd daemon.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup if a value is malformed.
    """

    # ---------------------------------------------------------------------
    # ClamAV (clamd) integration
    # ---------------------------------------------------------------------

    clamd_network: Annotated[
        Literal["unix", "tcp"],
        Field(
            default="unix",
            description="Socket type used to reach clamd",
        ),
    ]

    clamd_socket: Annotated[
        Optional[str],
        Field(
            default=None,
            description=(
                "clamd socket, e.g. '/var/run/clamav/clamd.ctl' or "
                "'127.0.0.1:3310'. Scanning is disabled when empty."
            ),
        ),
    ]

    clamd_dial_timeout: Annotated[
        float,
        Field(
            default=1.0,
            gt=0,
            le=30,
            description="Timeout of a single clamd connection attempt (seconds)",
        ),
    ]

    clamd_dial_attempts: Annotated[
        int,
        Field(
            default=10,
            ge=1,
            le=100,
            description="Connection attempts before a scan fails",
        ),
    ]

    # ---------------------------------------------------------------------
    # Session lifecycle
    # ---------------------------------------------------------------------

    session_ttl_seconds: Annotated[
        int,
        Field(
            default=30 * 60,
            ge=1,
            description=(
                "Absolute session lifetime counted from Register. "
                "Activity does not extend it."
            ),
        ),
    ]

    sweep_interval_seconds: Annotated[
        float,
        Field(
            default=30,
            gt=0,
            description="Interval between expired-session sweeps",
        ),
    ]

    # ---------------------------------------------------------------------
    # RPC listener
    # ---------------------------------------------------------------------

    host: str = "0.0.0.0"

    port: Annotated[int, Field(default=4567, ge=1, le=65535)]

    # ---------------------------------------------------------------------
    # Rendering
    # ---------------------------------------------------------------------

    font_path: Annotated[
        Optional[Path],
        Field(
            default=None,
            description=(
                "TrueType font with Cyrillic coverage for card pages. "
                "Common system fonts are probed when unset."
            ),
        ),
    ]

    bold_font_path: Optional[Path] = None

    # ---------------------------------------------------------------------
    # Operational
    # ---------------------------------------------------------------------

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("clamd_socket")
    @classmethod
    def blank_socket_disables_scanning(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(
                f"Unsupported log level '{v}'. Allowed values: {sorted(allowed)}"
            )
        return level

    @property
    def clamav_enabled(self) -> bool:
        return self.clamd_socket is not None


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings singleton."""
    return Settings()
