import pathlib
import sys

import pytest

SYS_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = SYS_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from presence_confirm.utils.localization import set_language  # noqa: E402


@pytest.fixture(autouse=True)
def english_messages():
    set_language("en")
    yield
    set_language("en")
