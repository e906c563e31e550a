from __future__ import annotations

from pathlib import Path

import pytest

from frontail.config import SessionTimings, Settings, load_settings
from frontail.errors import StartupError


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    for name in ("FRONTAIL_PORT", "FRONTAIL_HOST", "FRONTAIL_LOG_LEVEL"):
        # setenv first so teardown also removes values loaded from .env
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults():
    settings = load_settings(["/var/log/app.log"])

    assert settings.target_path == Path("/var/log/app.log")
    assert settings.port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.rewind_on_truncate is False
    assert settings.session_timings() == SessionTimings(
        poll_period=1.0,
        heartbeat_period=54.0,
        read_deadline=60.0,
        write_deadline=10.0,
        max_frame_size=512,
    )


def test_command_line_flags():
    settings = load_settings(["-p", "9000", "--host", "127.0.0.1", "--rewind-on-truncate", "--log-level", "debug", "app.log"])

    assert settings.port == 9000
    assert settings.host == "127.0.0.1"
    assert settings.rewind_on_truncate is True
    assert settings.log_level == "DEBUG"


def test_environment_and_dotenv_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    (tmp_path / ".env").write_text("FRONTAIL_PORT=9100\nFRONTAIL_HOST=127.0.0.2\n")

    settings = load_settings(["app.log"])

    assert settings.port == 9100
    assert settings.host == "127.0.0.2"
    # Flags still win over the environment.
    assert load_settings(["-p", "9200", "app.log"]).port == 9200


def test_missing_path_is_a_startup_error():
    with pytest.raises(StartupError, match="Usage: frontail"):
        load_settings([])


def test_unknown_flag_is_a_startup_error():
    with pytest.raises(StartupError, match="Usage: frontail"):
        load_settings(["--bogus", "app.log"])


def test_non_integer_port_in_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FRONTAIL_PORT", "eighty")

    with pytest.raises(StartupError, match="FRONTAIL_PORT must be an integer"):
        load_settings(["app.log"])


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"port": 0}, "Invalid port"),
        ({"port": 70000}, "Invalid port"),
        ({"poll_period": 0}, "poll_period must be positive"),
        ({"heartbeat_period": 60.0}, "must be shorter than"),
        ({"max_frame_size": 0}, "max_frame_size must be positive"),
    ],
)
def test_invalid_settings_are_rejected(overrides, message):
    with pytest.raises(StartupError, match=message):
        Settings(target_path=Path("app.log"), **overrides)


def test_settings_are_immutable():
    settings = Settings(target_path=Path("app.log"))

    with pytest.raises(AttributeError):
        settings.port = 1


def test_protocol_pings_flag_disables_session_heartbeats():
    default = load_settings(["app.log"])
    pinged = load_settings(["--protocol-pings", "app.log"])

    assert default.session_timings().app_heartbeats is True
    assert pinged.protocol_pings is True
    assert pinged.session_timings().app_heartbeats is False
