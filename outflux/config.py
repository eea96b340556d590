"""Client configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All settings are read from environment variables (case-insensitive)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── InfluxDB ──────────────────────────────────────────────────────────────
    influx_url: str = "http://127.0.0.1:8086"
    influx_token: str = ""
    influx_org: str = "my-org"
    influx_bucket: str = "my-bucket"
    # Hard deadline for one write request, in seconds
    influx_write_timeout: float = Field(10.0, gt=0)

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = "INFO"
