"""Configuration loading for the presence client.

Values come from the process environment first and from a ``.env`` file
second. A commented template is written the first time the client runs so
the user only has to fill in the server URL.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..errors import ConfigurationError
from ..utils.validation import validate_url

ENV_TEMPLATE = """
# Backend base URL (required), e.g. https://presence.example.edu/api
API_BASE_URL=""

# Interface language: en or pt_BR
LANGUAGE_PREFERENCE="en"

# Where the admin session token is kept between runs
SESSION_FILE=".presence_session.json"

# Camera: device index, ideal resolution, JPEG quality, preview window 1/0
CAMERA_INDEX=0
CAMERA_WIDTH=1280
CAMERA_HEIGHT=720
JPEG_QUALITY=80
CAMERA_PREVIEW=1

# Location source: static (uses DEVICE_LATITUDE/DEVICE_LONGITUDE) or ip
GEOLOCATION_PROVIDER="static"
DEVICE_LATITUDE=""
DEVICE_LONGITUDE=""
GEOLOCATION_URL="https://ipapi.co/json/"

# Seconds the success / error acknowledgment stays on screen
SUCCESS_DISPLAY_SECONDS=2
ERROR_DISPLAY_SECONDS=4

# Logging: quiet, user or debug; LOG_FILE keeps a full debug log
LOG_PROFILE="user"
LOG_FILE=""
""".lstrip()

_log = logging.getLogger("presence_confirm.config")


@dataclass
class Config:
    api_base_url: str
    language: str = "en"
    session_file: Path = Path(".presence_session.json")
    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    jpeg_quality: int = 80
    camera_preview: bool = True
    geolocation_provider: str = "static"
    device_latitude: Optional[float] = None
    device_longitude: Optional[float] = None
    geolocation_url: str = "https://ipapi.co/json/"
    success_display_seconds: float = 2.0
    error_display_seconds: float = 4.0


def ensure_env_file(path: Path) -> bool:
    """Create a template .env if missing (no overwrite). Returns True when created."""
    if path.exists():
        return False
    try:
        path.write_text(ENV_TEMPLATE, encoding="utf-8")
    except OSError as exc:
        _log.warning("Could not create %s: %s", path, exc)
        return False
    _log.info("Created default .env at %s; please review it.", path)
    return True


def getenv_bool(name: str, default: bool = False) -> bool:
    """Return True for 1/true/yes/on (case-insensitive), else default."""
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def getenv_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def load_config(env_file: Optional[Path] = None, *, create_template: bool = True) -> Config:
    """Build a :class:`Config` from the environment and the ``.env`` file."""
    env_path = Path(env_file or os.getenv("ENV_FILE", ".env"))
    if create_template:
        ensure_env_file(env_path)
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)

    base_url = (os.getenv("API_BASE_URL") or "").strip().rstrip("/")
    if not base_url:
        raise ConfigurationError("Missing required setting: API_BASE_URL")
    ok, message = validate_url(base_url, "API_BASE_URL")
    if not ok:
        raise ConfigurationError(message)

    quality = getenv_int("JPEG_QUALITY", 80)
    if not 1 <= quality <= 100:
        raise ConfigurationError("JPEG_QUALITY must be between 1 and 100")

    provider = (os.getenv("GEOLOCATION_PROVIDER") or "static").strip().lower()
    if provider not in ("static", "ip"):
        raise ConfigurationError(f"Unknown GEOLOCATION_PROVIDER: {provider}")

    return Config(
        api_base_url=base_url,
        language=(os.getenv("LANGUAGE_PREFERENCE") or "en").strip(),
        session_file=Path(os.getenv("SESSION_FILE") or ".presence_session.json"),
        camera_index=getenv_int("CAMERA_INDEX", 0),
        camera_width=getenv_int("CAMERA_WIDTH", 1280),
        camera_height=getenv_int("CAMERA_HEIGHT", 720),
        jpeg_quality=quality,
        camera_preview=getenv_bool("CAMERA_PREVIEW", True),
        geolocation_provider=provider,
        device_latitude=getenv_float("DEVICE_LATITUDE", None),
        device_longitude=getenv_float("DEVICE_LONGITUDE", None),
        geolocation_url=(os.getenv("GEOLOCATION_URL") or "https://ipapi.co/json/").strip(),
        success_display_seconds=getenv_float("SUCCESS_DISPLAY_SECONDS", 2.0) or 0.0,
        error_display_seconds=getenv_float("ERROR_DISPLAY_SECONDS", 4.0) or 0.0,
    )


__all__ = ["Config", "ENV_TEMPLATE", "ensure_env_file", "getenv_bool", "load_config"]
