"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/utils/logger.py
Layered logging for the presence client.

Every record carries a ``layer`` that picks its console icon. Records
emitted through plain ``logging.getLogger("presence_confirm.<area>")``
calls get a layer from their area, so camera and location chatter reads
differently from HTTP traffic. Bearer tokens never reach a handler.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import re
import sys
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "logger",
    "step",
    "success",
    "debug_detail",
    "get_logger",
    "spinner",
    "set_log_profile",
    "configure_logging",
    "redact",
]

BASE_LOGGER_NAME = "presence_confirm"

_ANSI: Dict[str, str] = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "blue": "\033[34m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "cyan": "\033[36m",
    "magenta": "\033[35m",
}

LOG_PROFILE = (os.getenv("LOG_PROFILE") or "user").lower()

_PROFILE_LEVELS = {
    "quiet": logging.WARNING,
    "user": logging.INFO,
    "debug": logging.DEBUG,
}

# icon, styles
_LAYERS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "step": ("▶", ("blue", "bold")),
    "device": ("◉", ("cyan",)),
    "network": ("⇄", ("magenta",)),
    "success": ("✓", ("green", "bold")),
    "warning": ("!", ("yellow", "bold")),
    "error": ("✗", ("red", "bold")),
    "user": ("•", ()),
}

# logger name area -> layer used when the record has none
_AREA_LAYERS = {
    "camera": "device",
    "geolocation": "device",
    "devices": "device",
    "api": "network",
    "session": "network",
    "roster": "network",
}

_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+")


def redact(text: str) -> str:
    """Mask bearer tokens in ``text``."""
    return _BEARER.sub(r"\1***", text)


def _colorize(text: str, *styles: str) -> str:
    if os.getenv("NO_COLOR") is not None or not styles:
        return text
    return "".join(_ANSI.get(style, "") for style in styles) + text + _ANSI["reset"]


def _layer_for(record: logging.LogRecord) -> str:
    layer = getattr(record, "layer", None)
    if layer:
        return layer
    if record.levelno >= logging.ERROR:
        return "error"
    if record.levelno >= logging.WARNING:
        return "warning"
    parts = record.name.split(".")
    area = parts[1] if len(parts) > 1 and parts[0] == BASE_LOGGER_NAME else ""
    return _AREA_LAYERS.get(area, "user")


class LayeredFormatter(logging.Formatter):
    """Console formatter: one icon per layer, debug records dimmed."""

    def format(self, record: logging.LogRecord) -> str:
        message = redact(super().format(record))
        if record.levelno <= logging.DEBUG:
            return f"{_colorize('[debug]', 'dim')} {message}"
        icon, styles = _LAYERS.get(_layer_for(record), _LAYERS["user"])
        return f"{_colorize(icon, *styles)} {message}"


class RedactingFileFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


class LayeredAdapter(logging.LoggerAdapter):
    """Adapter that stamps a ``layer`` on each record."""

    def __init__(self, logger: logging.Logger, default_layer: Optional[str] = None):
        super().__init__(logger, {"layer": default_layer})

    def log(self, level: int, msg: Any, *args, layer: Optional[str] = None, **kwargs) -> None:
        if not self.isEnabledFor(level):
            return
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("layer", layer or self.extra.get("layer"))
        self.logger.log(level, msg, *args, **kwargs)


CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"


def _console_level(profile: str, level_name: Optional[str]) -> int:
    level = _PROFILE_LEVELS.get(profile, logging.INFO)
    if level_name:
        override = getattr(logging, level_name.upper(), None)
        if isinstance(override, int):
            level = override
    return level


def _attach_log_file(base_logger: logging.Logger, path: str) -> None:
    target = os.path.abspath(path)
    for handler in base_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return
    try:
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        base_logger.warning("Failed to open log file '%s': %s", path, exc)
        return
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(RedactingFileFormatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    base_logger.addHandler(file_handler)


def _configure_base_logger() -> LayeredAdapter:
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if base_logger.handlers:
        return LayeredAdapter(base_logger)

    base_logger.setLevel(logging.DEBUG)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_console_level(LOG_PROFILE, os.getenv("LOG_LEVEL")))
    console_handler.setFormatter(LayeredFormatter(CONSOLE_FORMAT))
    base_logger.addHandler(console_handler)
    if os.getenv("LOG_FILE"):
        _attach_log_file(base_logger, os.environ["LOG_FILE"])
    return LayeredAdapter(base_logger)


logger = _configure_base_logger()


def configure_logging(profile: Optional[str] = None) -> None:
    """Apply LOG_PROFILE, LOG_LEVEL and LOG_FILE as they stand now.

    Called once the .env file has been loaded; ``profile`` (from ``--debug``)
    wins over LOG_PROFILE.
    """
    global LOG_PROFILE
    LOG_PROFILE = (profile or os.getenv("LOG_PROFILE") or "user").strip().lower()
    level = _console_level(LOG_PROFILE, os.getenv("LOG_LEVEL"))
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    for handler in base_logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)
    log_file = (os.getenv("LOG_FILE") or "").strip()
    if log_file:
        _attach_log_file(base_logger, log_file)


def step(message: str) -> None:
    """Log a major step of the flow."""
    logger.log(logging.INFO, message, layer="step")


def success(message: str) -> None:
    logger.log(logging.INFO, message, layer="success")


def debug_detail(message: str) -> None:
    """Detailed trace, hidden unless LOG_PROFILE=debug or ``--debug``."""
    logger.log(logging.DEBUG, message)


def get_logger(name: str, *, layer: Optional[str] = None) -> LayeredAdapter:
    """Child logger under ``presence_confirm``; the layer defaults to the area's."""
    return LayeredAdapter(logging.getLogger(f"{BASE_LOGGER_NAME}.{name}"), default_layer=layer)


class _Spinner:
    FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

    def __init__(self, message: str):
        self.message = message
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._failure: Optional[str] = None

    async def __aenter__(self) -> "_Spinner":
        self._running = sys.stderr.isatty()
        if self._running:
            self._task = asyncio.create_task(self._animate())
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._running = False
        if self._task:
            await self._task
            sys.stderr.write("\r" + " " * (len(self.message) + 4) + "\r")
            sys.stderr.flush()
        if exc is not None:
            logger.error("%s: %s", self.message, exc)
        elif self._failure is not None:
            logger.error(self._failure)
        else:
            success(self.message)
        return False

    async def _animate(self) -> None:
        for frame in itertools.cycle(self.FRAMES):
            if not self._running:
                break
            sys.stderr.write(f"\r{_colorize(frame, 'cyan')} {self.message}")
            sys.stderr.flush()
            await asyncio.sleep(0.12)

    def fail(self, message: Optional[str] = None) -> None:
        """End with an error line instead of the success tick."""
        self._failure = message or self.message


def spinner(message: str) -> _Spinner:
    return _Spinner(message)


def set_log_profile(profile: str) -> None:
    """Change console verbosity at runtime (quiet, user or debug)."""
    global LOG_PROFILE
    LOG_PROFILE = (profile or "user").lower()
    level = _PROFILE_LEVELS.get(LOG_PROFILE, logging.INFO)
    for handler in logging.getLogger(BASE_LOGGER_NAME).handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)
