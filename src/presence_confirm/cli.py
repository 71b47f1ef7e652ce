"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/cli.py
Command line entry point.

Commands:
    show EVENT_ID            print the public event card
    confirm EVENT_ID         run the two-step presence wizard
    login --email EMAIL      sign in as an administrator
    logout                   drop the stored session
    participants EVENT_ID    admin view: presence link and participant roster
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from .api import PresenceApiClient
from .config.settings import Config, load_config
from .core.camera import CameraCaptureController, CameraConstraints, CameraState
from .core.coordinator import PresenceWizard
from .core.event_loader import EventLoaded, EventLoader
from .core.geolocation import (
    GeolocationAcquirer,
    GeolocationState,
    IpPositionProvider,
    PositionProvider,
    StaticPositionProvider,
)
from .core.roster import ParticipantRoster, load_event_detail
from .core.session import AuthService, FileTokenStore, SessionContext
from .core.submit import PresenceSubmitter, SubmissionSuccess
from .core.wizard import DataStep, PhotoStep, SubmissionStatus, WizardState
from .devices.opencv_camera import OpenCVCamera, OpenCVPreviewWindow
from .devices.permissions import ConsentedCamera, ConsentedPositionProvider, ConsentGate
from .errors import ConfigurationError, PresenceError
from .utils.console import PresenceConsole
from .utils.localization import set_language, t
from .utils.logger import configure_logging, logger, set_log_profile, spinner, step, success
from .utils.validation import is_secure_origin, looks_like_registration_number

Command = Callable[[Config, argparse.Namespace, PresenceConsole], Awaitable[int]]


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {raw!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="presence-confirm",
        description="Confirm event presence with a selfie and your location",
    )
    parser.add_argument("--env-file", type=Path, help="Path to the .env file (default: .env)")
    parser.add_argument("--language", choices=["en", "pt_BR"], help="Interface language override")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Show the public event detail")
    show.add_argument("event_id")

    confirm = sub.add_parser("confirm", help="Confirm your presence at an event")
    confirm.add_argument("event_id")
    confirm.add_argument("--ra", help="Registration number to pre-fill")
    confirm.add_argument("--no-preview", action="store_true", help="Do not open the camera preview window")

    login = sub.add_parser("login", help="Sign in as an administrator")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="Password (prompted when omitted)")

    sub.add_parser("logout", help="Forget the stored session")

    participants = sub.add_parser("participants", help="List an event's participants (admin)")
    participants.add_argument("event_id")
    participants.add_argument("--per-page", type=_positive_int, default=20)
    participants.add_argument("--all", action="store_true", help="Keep loading until every page is read")
    return parser


# ---------------------------------------------------------------------------
# Wiring


def _position_provider(config: Config) -> PositionProvider:
    if config.geolocation_provider == "ip":
        return IpPositionProvider(config.geolocation_url)
    return StaticPositionProvider(config.device_latitude, config.device_longitude)


def build_wizard(
    config: Config,
    api: PresenceApiClient,
    event_id: str,
    console: PresenceConsole,
    *,
    preview: bool = True,
) -> PresenceWizard:
    """Assemble the wizard with the OpenCV camera and console consent prompts."""
    def ask(question: str) -> bool:
        return console.confirm(question, default=False)

    camera_device = ConsentedCamera(
        OpenCVCamera(config.camera_index),
        ConsentGate(ask, t("camera_consent", "Allow this app to use the camera?")),
    )
    camera = CameraCaptureController(
        camera_device,
        secure_context=is_secure_origin(config.api_base_url),
        constraints=CameraConstraints.preferred(config.camera_width, config.camera_height),
        jpeg_quality=config.jpeg_quality,
    )
    geolocation = GeolocationAcquirer(
        ConsentedPositionProvider(
            _position_provider(config),
            ConsentGate(ask, t("location_consent", "Allow this app to use your location?")),
        )
    )
    wizard = PresenceWizard(
        event_id,
        PresenceSubmitter(api),
        camera,
        geolocation,
        success_display=config.success_display_seconds,
        error_display=config.error_display_seconds,
        on_change=lambda state: console.submission_status(state),
    )
    if preview:
        camera.attach(OpenCVPreviewWindow())
    return wizard


# ---------------------------------------------------------------------------
# Wizard loop

Action = Tuple[str, str]
SUBMIT_POLL_INTERVAL = 0.05


def _photo_actions(wizard: PresenceWizard) -> List[Action]:
    actions: List[Action] = []
    if wizard.camera.state is CameraState.STREAMING:
        actions.append(("capture", t("action_capture", "Capture photo")))
    if wizard.camera.state is CameraState.ERROR:
        actions.append(("retry_camera", t("action_try_again", "Try again")))
    if wizard.photo is not None:
        actions.append(("retake", t("action_retake", "Retake")))
    if wizard.can_advance:
        actions.append(("next", t("action_continue", "Continue")))
    return actions


def _data_actions(wizard: PresenceWizard) -> List[Action]:
    actions: List[Action] = [("ra", t("action_enter_ra", "Enter registration number (RA)"))]
    if wizard.geolocation.state is GeolocationState.ERROR:
        actions.append(("retry_location", t("action_retry_location", "Retry location")))
    if wizard.can_submit:
        actions.append(("submit", t("action_submit", "Confirm presence")))
    actions.append(("back", t("action_back", "Back")))
    return actions


def _render(wizard: PresenceWizard, console: PresenceConsole, state: WizardState) -> None:
    console.wizard_header(state)
    if isinstance(state, PhotoStep):
        console.camera_status(wizard.camera.state, wizard.camera.error_message)
        console.photo_summary(state)
        return
    console.location_status(wizard.geolocation.state, wizard.geolocation.error_message)
    if state.registration_number:
        console.status(f"RA: {state.registration_number}", tone="white")
    if wizard.validation_message:
        console.status(wizard.validation_message, tone="yellow")


async def _prompt_registration_number(console: PresenceConsole) -> str:
    value = await asyncio.to_thread(console.prompt, t("prompt_ra", "Registration number (RA):"))
    value = value.strip()
    if value and not looks_like_registration_number(value):
        console.status(t("ra_format_hint", "RA usually looks like 241403-1."), tone="yellow")
    return value


async def _submit(wizard: PresenceWizard, console: PresenceConsole) -> bool:
    """Submit, offering a manual "try again" while the error is on screen."""
    submission = asyncio.ensure_future(wizard.submit())
    answer: Optional["asyncio.Future[str]"] = None
    while not submission.done():
        await asyncio.wait({submission}, timeout=SUBMIT_POLL_INTERVAL)
        state = wizard.state
        if answer is None and isinstance(state, DataStep) and state.status is SubmissionStatus.ERROR:
            answer = asyncio.ensure_future(
                asyncio.to_thread(console.prompt, t("prompt_try_again", "Press Enter to try again"))
            )
            await asyncio.wait({submission, answer}, return_when=asyncio.FIRST_COMPLETED)
            if answer.done() and not submission.done():
                wizard.acknowledge_error()
    if answer is not None:
        # a blocking stdin read cannot be cancelled; it must end before the next menu
        await answer
    return isinstance(submission.result(), SubmissionSuccess)


async def run_wizard(
    wizard: PresenceWizard,
    console: PresenceConsole,
    *,
    registration_number: Optional[str] = None,
) -> bool:
    """Drive the wizard from console menus; True when presence was confirmed."""
    confirmed = False
    await wizard.open()
    try:
        while wizard.is_open:
            state = wizard.state
            _render(wizard, console, state)
            actions = _photo_actions(wizard) if isinstance(state, PhotoStep) else _data_actions(wizard)
            labels = [label for _, label in actions]
            choice = await asyncio.to_thread(
                console.prompt_menu, t("wizard_actions", "What next?"), labels
            )
            if choice is None:
                if not await wizard.close():
                    console.status(t("close_blocked", "Please wait for the submission to finish."))
                continue

            action = actions[choice][0]
            if action == "capture":
                await wizard.capture()
            elif action == "retry_camera":
                await wizard.retry_camera()
            elif action == "retake":
                await wizard.retake()
            elif action == "next":
                await wizard.next_step()
                if registration_number and not wizard.registration_number:
                    wizard.set_registration_number(registration_number)
            elif action == "back":
                await wizard.previous_step()
            elif action == "ra":
                wizard.set_registration_number(await _prompt_registration_number(console))
            elif action == "retry_location":
                await wizard.retry_location()
            elif action == "submit":
                confirmed = await _submit(wizard, console)
                if confirmed:
                    break
    finally:
        await wizard.camera.detach()
        if wizard.is_open:
            await wizard.close()
    return confirmed


# ---------------------------------------------------------------------------
# Commands


def _session(config: Config) -> SessionContext:
    return SessionContext(FileTokenStore(config.session_file)).init()


async def _show(config: Config, args: argparse.Namespace, console: PresenceConsole) -> int:
    async with PresenceApiClient(config.api_base_url) as api:
        async with spinner(t("loading_event", "Loading event")) as spin:
            page = await EventLoader(api).load(args.event_id)
            if not isinstance(page, EventLoaded):
                spin.fail(page.message)
    if not isinstance(page, EventLoaded):
        console.load_error(page.message)
        return 1
    console.event_card(page.event)
    return 0


async def _confirm(config: Config, args: argparse.Namespace, console: PresenceConsole) -> int:
    async with PresenceApiClient(config.api_base_url) as api:
        page = await EventLoader(api).load(args.event_id)
        if not isinstance(page, EventLoaded):
            console.load_error(page.message)
            return 1
        console.banner(t("wizard_title", "Confirm presence"))
        console.event_card(page.event)
        wizard = build_wizard(
            config,
            api,
            args.event_id,
            console,
            preview=config.camera_preview and not args.no_preview,
        )
        step(t("wizard_started", "Starting presence confirmation"))
        confirmed = await run_wizard(wizard, console, registration_number=args.ra)
    if confirmed:
        success(t("presence_confirmed", "Presence confirmed successfully!"))
        return 0
    logger.warning(t("presence_not_confirmed", "Presence was not confirmed"))
    return 1


async def _login(config: Config, args: argparse.Namespace, console: PresenceConsole) -> int:
    password = args.password or await asyncio.to_thread(getpass.getpass, t("prompt_password", "Password: "))
    session = _session(config)
    async with PresenceApiClient(config.api_base_url, session_context=session) as api:
        user = await AuthService(api, session).login(args.email, password)
    success(t("signed_in_as", "Signed in as {name}", name=user.name or user.email or args.email))
    return 0


async def _logout(config: Config, args: argparse.Namespace, console: PresenceConsole) -> int:
    session = _session(config)
    async with PresenceApiClient(config.api_base_url, session_context=session) as api:
        AuthService(api, session).logout()
    success(t("signed_out", "Signed out"))
    return 0


async def _participants(config: Config, args: argparse.Namespace, console: PresenceConsole) -> int:
    session = _session(config)
    async with PresenceApiClient(config.api_base_url, session_context=session) as api:
        detail = await load_event_detail(api, args.event_id)
        console.event_card(detail.event)
        lines = []
        if detail.courses:
            lines.append(f"{t('courses', 'Courses')}: {', '.join(detail.courses)}")
        if detail.class_rooms:
            lines.append(f"{t('class_rooms', 'Classes')}: {', '.join(detail.class_rooms)}")
        if detail.presence_url:
            lines.append(f"{t('presence_link', 'Presence link')}: {detail.presence_url}")
        if lines:
            console.panel(t('event_admin_title', 'Event administration'), lines, accent="blue")

        roster = ParticipantRoster(api, args.event_id, per_page=args.per_page)
        await roster.load_first()
        while args.all and roster.has_more:
            await roster.load_more()
    console.roster(roster.participants, has_more=roster.has_more)
    return 0


COMMANDS: Dict[str, Command] = {
    "show": _show,
    "confirm": _confirm,
    "login": _login,
    "logout": _logout,
    "participants": _participants,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        set_log_profile("debug")

    try:
        config = load_config(args.env_file)
    except ConfigurationError as exc:
        logger.error(str(exc))
        return 2
    configure_logging("debug" if args.debug else None)
    set_language(args.language or config.language)

    console = PresenceConsole()
    try:
        return asyncio.run(COMMANDS[args.command](config, args, console))
    except KeyboardInterrupt:
        logger.warning(t("interrupted", "Interrupted"))
        return 130
    except PresenceError as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
