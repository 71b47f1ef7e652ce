import logging
import os

import pytest

from presence_confirm import cli
from presence_confirm.utils.logger import LayeredFormatter, configure_logging, redact


def _record(name, level, msg, **extra):
    record = logging.LogRecord(name, level, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_bearer_tokens_are_masked():
    assert redact("GET /admin Authorization: Bearer eyJhbGc.payload-x_y") == "GET /admin Authorization: Bearer ***"
    assert redact("no secrets here") == "no secrets here"


def test_layer_follows_logger_area(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    formatter = LayeredFormatter("%(message)s")

    assert formatter.format(_record("presence_confirm.camera", logging.INFO, "opened")) == "◉ opened"
    assert formatter.format(_record("presence_confirm.api", logging.INFO, "PATCH")) == "⇄ PATCH"
    assert formatter.format(_record("presence_confirm.wizard", logging.WARNING, "late")) == "! late"
    assert formatter.format(_record("presence_confirm.api", logging.INFO, "done", layer="success")) == "✓ done"
    assert formatter.format(_record("presence_confirm.api", logging.DEBUG, "Bearer abc")) == "[debug] Bearer ***"


@pytest.fixture
def restore_handlers(monkeypatch):
    base = logging.getLogger("presence_confirm")
    before = list(base.handlers)
    levels = {handler: handler.level for handler in before}
    yield base
    for handler in base.handlers[:]:
        if handler not in before:
            base.removeHandler(handler)
            handler.close()
    for handler, level in levels.items():
        handler.setLevel(level)
    for key in ("LOG_PROFILE", "LOG_FILE", "LOG_LEVEL", "API_BASE_URL"):
        os.environ.pop(key, None)


def _console_handlers(base):
    return [h for h in base.handlers if not isinstance(h, logging.FileHandler)]


def test_configure_logging_reads_environment_at_call_time(restore_handlers, tmp_path, monkeypatch):
    log_file = tmp_path / "presence.log"
    monkeypatch.setenv("LOG_PROFILE", "debug")
    monkeypatch.setenv("LOG_FILE", str(log_file))

    configure_logging()
    configure_logging()

    assert all(h.level == logging.DEBUG for h in _console_handlers(restore_handlers))
    files = [h for h in restore_handlers.handlers if isinstance(h, logging.FileHandler)]
    assert [h.baseFilename for h in files] == [str(log_file)]


def test_env_file_logging_settings_apply_to_cli(restore_handlers, tmp_path, monkeypatch):
    for key in ("LOG_PROFILE", "LOG_FILE", "LOG_LEVEL", "API_BASE_URL"):
        monkeypatch.delenv(key, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text('API_BASE_URL="https://presence.example.edu"\nLOG_PROFILE="debug"\n', encoding="utf-8")

    async def fake_show(config, args, console):
        return 0

    monkeypatch.setitem(cli.COMMANDS, "show", fake_show)

    assert cli.main(["--env-file", str(env_file), "show", "evt-1"]) == 0
    assert all(h.level == logging.DEBUG for h in _console_handlers(restore_handlers))
