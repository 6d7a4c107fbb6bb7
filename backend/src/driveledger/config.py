"""Configuration module for DriveLedger."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

# --- minimal .env loader (stdlib only) ---
def _load_dotenv():
    p = Path(".env")
    if not p.exists():
        return
    try:
        lines = p.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        # fail open: env loading is best-effort
        return
    for line in lines:
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        k, v = s.split("=", 1)
        k = k.strip()
        v = v.strip()
        # keep existing OS env if already set
        if k and (k not in os.environ):
            os.environ[k] = v

_load_dotenv()


class Settings(BaseModel):
    """Application settings."""

    samples_json_path: str = Field(
        default="synthetic_obd_data_24h.json",
        description="Primary telemetry corpus (JSON array)"
    )
    samples_csv_path: str = Field(
        default="synthetic_obd_data_24h.csv",
        description="Fallback telemetry corpus (delimited text)"
    )
    tick_interval_ms: int = Field(
        default=1000,
        gt=0,
        description="Stream cadence in milliseconds"
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            samples_json_path=os.getenv("DL_SAMPLES_JSON", "synthetic_obd_data_24h.json"),
            samples_csv_path=os.getenv("DL_SAMPLES_CSV", "synthetic_obd_data_24h.csv"),
            tick_interval_ms=int(os.getenv("DL_TICK_INTERVAL_MS", "1000")),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


# Stream constants
DEFAULT_TICK_INTERVAL_MS = 1000
SAMPLE_PERIOD_S = 1.0  # one emitted sample stands for one second of driving
RECENT_METRICS_WINDOW = 10

# Scoring constants
BASE_POINT_REWARD = 0.01
BATCH_BONUS_MIN_POINTS = 10
EFFICIENCY_WINDOW = 60

DL_CORS_ORIGINS = os.getenv("DL_CORS_ORIGINS", "")  # e.g. "http://127.0.0.1:5173" or "*"
