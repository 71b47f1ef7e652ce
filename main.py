"""presence-confirm

Command to run:
    python3 -m venv .venv && . .venv/bin/activate
    python -m pip install --upgrade pip
    pip install -e .
    python main.py show <event-id>

Environment variables (.env). If missing, a template is created on first run:
  API_BASE_URL=""             # backend base URL (required)
  GEOLOCATION_PROVIDER=static # static | ip
  DEVICE_LATITUDE / DEVICE_LONGITUDE for the static provider

Commands:
    show EVENT_ID          event card
    confirm EVENT_ID       presence wizard (camera + location)
    login / logout         admin session
    participants EVENT_ID  admin roster
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from presence_confirm.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
