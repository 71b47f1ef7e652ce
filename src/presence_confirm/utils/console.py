"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/utils/console.py
Console rendering for the presence confirmation client.
"""
from __future__ import annotations

import os
import shutil
import sys
import textwrap
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO

from rich.console import Console
from rich.text import Text

from ..core.camera import CameraState
from ..core.geolocation import GeolocationState
from ..core.wizard import DataStep, PhotoStep, SubmissionStatus, WizardState
from ..models import Event, Participant
from .formatting import format_datetime
from .localization import t

__all__ = ["PresenceConsole", "ConsolePalette", "location_badge"]


@dataclass
class ConsolePalette:
    """Simple ANSI-aware palette used by PresenceConsole."""

    reset: str = "\033[0m"
    bold: str = "\033[1m"
    dim: str = "\033[2m"
    cyan: str = "\033[36m"
    blue: str = "\033[34m"
    magenta: str = "\033[35m"
    green: str = "\033[32m"
    yellow: str = "\033[33m"
    red: str = "\033[31m"
    white: str = "\033[97m"

    @property
    def disabled(self) -> bool:
        return bool(os.getenv("NO_COLOR"))

    def apply(self, text: str, *styles: str) -> str:
        if self.disabled or not styles:
            return text
        return f"{''.join(styles)}{text}{self.reset}"


def location_badge(event: Event) -> str:
    if event.location_validation_enabled:
        return t("location_validation_enabled", "Location validation enabled")
    return t("location_validation_disabled", "Location validation disabled")


class PresenceConsole:
    """Renders the event card and the two wizard steps."""

    _BANNER = "PRESENCE"
    _GRADIENT = ["#9333ea", "#a855f7", "#8b5cf6", "#6366f1", "#4f46e5", "#4338ca", "#3730a3", "#312e81"]

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stdout
        self.palette = ConsolePalette()
        self.width = max(60, min(self._detect_width(), 110))
        self.is_tty = self.stream.isatty()
        self._rich = Console(file=self.stream, no_color=self.palette.disabled, highlight=False)

    def _detect_width(self) -> int:
        return shutil.get_terminal_size((100, 20)).columns

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def _wrap(self, text: str, *, indent: int = 0) -> str:
        wrapper = textwrap.TextWrapper(
            width=self.width - indent,
            initial_indent=" " * indent,
            subsequent_indent=" " * indent,
        )
        return "\n".join(wrapper.fill(line) if line.strip() else "" for line in text.splitlines())

    def _rule(self, label: str = "", *, accent: str = "blue", char: str = "═") -> str:
        label_text = f" {label} " if label else ""
        pad_total = max(self.width - len(label_text), 0)
        left = pad_total // 2
        right = pad_total - left
        line = f"{char * left}{label_text}{char * right}"[: self.width]
        return self.palette.apply(line, getattr(self.palette, accent, ""))

    # ------------------------------------------------------------------ primitives

    def banner(self, subtitle: Optional[str] = None) -> None:
        text = Text(justify="center")
        for idx, char in enumerate(self._BANNER):
            text.append(char, style=f"bold {self._GRADIENT[idx % len(self._GRADIENT)]}")
        self._rich.print(text, width=self.width)
        if subtitle:
            self._print(self._rule(subtitle))

    def headline(self, title: str, *, accent: str = "blue") -> None:
        self._print(self._rule(title, accent=accent))

    def text_block(self, text: str, *, indent: int = 2, tone: Optional[str] = None) -> None:
        payload = self._wrap(text, indent=indent)
        if tone:
            payload = self.palette.apply(payload, getattr(self.palette, tone, ""))
        self._print(payload)

    def status(self, text: str, *, tone: str = "cyan") -> None:
        self.text_block(f"• {text}", tone=tone)

    def panel(self, title: str, body: Iterable[str], *, accent: str = "magenta") -> None:
        self._print(self._rule(title, accent=accent))
        for line in body:
            self._print(self._wrap(line, indent=4))
        self._print(self._rule(accent=accent))

    def prompt(self, prompt_text: str) -> str:
        prompt = self.palette.apply(f"{prompt_text.strip()} ", self.palette.green, self.palette.bold)
        try:
            return input(prompt)
        except EOFError:
            return ""

    def confirm(self, prompt_text: str, *, default: bool = True) -> bool:
        yes_no = "Y/n" if default else "y/N"
        while True:
            raw = self.prompt(f"{prompt_text} [{yes_no}]").strip().lower()
            if not raw:
                return default
            if raw in ("y", "yes", "s", "sim"):
                return True
            if raw in ("n", "no", "nao", "não"):
                return False
            self.text_block(t("answer_yes_no", "Please respond with yes or no."), tone="yellow")

    def prompt_menu(self, title: str, options: List[str]) -> Optional[int]:
        self.headline(title)
        for idx, label in enumerate(options, start=1):
            self._print(f" {idx}. {label}")
        self._print(self.palette.apply(f" 0. {t('menu_exit', 'Exit')}", self.palette.dim))
        while True:
            raw = self.prompt(t("menu_select", "→ Select an option:")).strip()
            if raw in ("0", ""):
                return None
            if raw.isdigit() and 1 <= int(raw) <= len(options):
                return int(raw) - 1
            self.text_block(t("menu_invalid", "Invalid choice, try again."), tone="yellow")

    # ------------------------------------------------------------------ event page

    def event_card(self, event: Event) -> None:
        missing = t("time_not_provided", "Not informed")
        start = format_datetime(event.start_time)["full"] if event.start_time else missing
        end = format_datetime(event.end_time)["full"] if event.end_time else missing
        badge_tone = "green" if event.location_validation_enabled else "yellow"
        body = [
            f"{t('event_start', 'Start')}: {start}",
            f"{t('event_end', 'End')}: {end}",
            f"{t('event_location', 'Location')}: {event.location_description}",
            self.palette.apply(location_badge(event), getattr(self.palette, badge_tone)),
        ]
        if event.description:
            body.insert(0, event.description)
        self.panel(event.name, body, accent="blue")

    def load_error(self, message: str) -> None:
        self.panel(t("event_error_title", "Error"), [message], accent="red")

    # ------------------------------------------------------------------ wizard

    def wizard_header(self, state: WizardState) -> None:
        title = t("wizard_title", "Confirm presence")
        step = t("wizard_step", "Step {current} of {total}", current=state.step_number, total=2)
        self.headline(f"{title} · {step}", accent="magenta")

    def camera_status(self, state: CameraState, error_message: Optional[str]) -> None:
        if state is CameraState.REQUESTING:
            self.status(t("camera_starting", "Starting camera..."))
        elif state is CameraState.STREAMING:
            self.status(t("camera_ready", "Camera ready. Position your face and capture."), tone="green")
        elif state is CameraState.CAPTURED:
            self.status(t("photo_captured", "Photo captured."), tone="green")
        elif state is CameraState.ERROR and error_message:
            self.status(error_message, tone="red")

    def location_status(self, state: GeolocationState, error_message: Optional[str]) -> None:
        if state is GeolocationState.REQUESTING:
            self.status(t("location_requesting", "Getting your location..."))
        elif state is GeolocationState.ACQUIRED:
            self.status(t("location_acquired", "Location obtained."), tone="green")
        elif state is GeolocationState.ERROR and error_message:
            self.status(error_message, tone="red")

    def submission_status(self, state: WizardState) -> None:
        if not isinstance(state, DataStep):
            return
        if state.status is SubmissionStatus.SUBMITTING:
            self.status(t("submitting", "Confirming presence..."))
        elif state.status is SubmissionStatus.SUCCESS:
            self.status(t("presence_confirmed", "Presence confirmed successfully!"), tone="green")
        elif state.status is SubmissionStatus.ERROR and state.error_message:
            self.status(state.error_message, tone="red")

    def photo_summary(self, state: PhotoStep) -> None:
        if state.photo is not None:
            self.status(
                t(
                    "photo_details",
                    "Photo: {width}x{height}, {size} bytes",
                    width=state.photo.width,
                    height=state.photo.height,
                    size=state.photo.size,
                ),
                tone="white",
            )

    # ------------------------------------------------------------------ admin

    def roster(self, participants: Iterable[Participant], *, has_more: bool) -> None:
        rows = []
        for participant in participants:
            mark = "✓" if participant.present else "·"
            rows.append(f"{mark} {participant.student_name} ({participant.student_ra})")
        if not rows:
            rows.append(t("roster_empty", "No participants yet."))
        if has_more:
            rows.append(t("roster_has_more", "More participants available."))
        self.panel(t("roster_title", "Participants"), rows, accent="cyan")
