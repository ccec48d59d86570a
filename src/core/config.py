"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking into the CLI.
- Adapters (mDNS/AirPlay/yt-dlp) read their knobs from the same contract.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

AIRPLAY_SERVICE_TYPE = "_airplay._tcp.local."
DEFAULT_AIRPLAY_PORT = 7000


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "yt-airplay"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "yt-airplay"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "yt-airplay"
    return Path.home() / ".config" / "yt-airplay"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def read_user_env_vars() -> dict[str, str]:
    env_path = get_user_env_file()
    if not env_path.exists():
        return {}
    return _parse_env_lines(env_path.read_text(encoding="utf-8"))


def write_user_env_vars(values: dict[str, str | None]) -> Path:
    """Write/update variables in the user's global .env.

    A value of ``None`` removes the key.
    """

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing = read_user_env_vars()
    for key, value in values.items():
        if value is None:
            existing.pop(key, None)
        else:
            existing[key] = value

    lines = ["# yt-airplay user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed + validated at the edge (env vars) without putting that logic in the core.
    - One configuration contract for CLI and adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="YT_AIRPLAY_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    discovery_timeout_seconds: int = Field(
        default=0,
        ge=0,
        description="Discovery window in seconds (0 = first device to answer wins).",
    )
    device_host: str | None = Field(
        default=None,
        description="Explicit AirPlay host/IP. Skips discovery when set.",
    )
    device_port: int = Field(
        default=DEFAULT_AIRPLAY_PORT,
        ge=1,
        le=65535,
        description="Port used together with `device_host`.",
    )
    service_type: str = Field(
        default=AIRPLAY_SERVICE_TYPE,
        min_length=1,
        description="mDNS service type browsed during discovery.",
    )
    dedupe_devices: bool = Field(
        default=False,
        description="Drop repeated advertisements for the same host:port.",
    )
    selection_max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Invalid answers allowed in the device prompt (unset = unlimited).",
    )

    resolve_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Socket timeout for yt-dlp metadata requests (seconds).",
    )
    user_agent: str = Field(
        default="yt-airplay/0.1 (+https://local)",
        min_length=1,
        description="User-Agent for connectivity checks.",
    )
    progressive_only: bool = Field(
        default=True,
        description="Only accept progressive formats carrying both audio and video.",
    )

    airplay_credentials: str | None = Field(
        default=None,
        description="Paired AirPlay credentials (pyatv format), when the receiver requires them.",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for establishing the AirPlay session (seconds).",
    )
