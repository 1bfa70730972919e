import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from lms_console import constants
from lms_console.config import CONF_FILE_ENV, ConsoleSettings, load_raw, load_settings
from lms_console.errors.internal import ParsingError


def test_defaults_follow_constants():
    settings = ConsoleSettings.from_env()

    assert settings.base_url == constants.LMS_API_BASE_URL.rstrip("/")
    assert settings.request_timeout == constants.REQUEST_TIMEOUT_SECONDS
    assert settings.login_route == constants.LOGIN_ROUTE
    assert "~" not in str(settings.credentials_file)


def test_base_url_is_normalised():
    settings = ConsoleSettings.from_dict({"base_url": "  https://lms.example.com/// "})

    assert settings.base_url == "https://lms.example.com"


@pytest.mark.parametrize("url", ["ftp://lms.example.com", "lms.example.com", "http://"])
def test_base_url_rejects_non_http(url):
    with pytest.raises(ValidationError):
        ConsoleSettings.from_dict({"base_url": url})


@pytest.mark.parametrize("field", ["request_timeout", "refresh_timeout"])
def test_timeouts_must_be_positive(field):
    with pytest.raises(ValidationError):
        ConsoleSettings.from_dict({field: 0})


def test_credentials_file_expanded(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = ConsoleSettings.from_dict({"credentials_file": "~/creds.json"})

    assert settings.credentials_file == tmp_path / "creds.json"


def test_default_credentials_file_expanded(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = ConsoleSettings.from_dict({})

    assert "~" not in str(settings.credentials_file)
    assert settings.credentials_file == Path(constants.CREDENTIALS_FILE).expanduser()


def test_unknown_keys_ignored_and_roundtrip():
    settings = ConsoleSettings.from_dict({"base_url": "http://a.test", "theme": "dark"})
    data = settings.to_dict()

    assert "theme" not in data
    assert ConsoleSettings.from_dict(data) == settings


def test_load_raw_missing_file(tmp_path):
    assert load_raw(tmp_path / "absent.json") == {}


def test_load_raw_rejects_bad_json(tmp_path):
    path = tmp_path / "conf.json"
    path.write_text("{")

    with pytest.raises(ParsingError):
        load_raw(path)


def test_load_raw_rejects_non_object(tmp_path):
    path = tmp_path / "conf.json"
    path.write_text("[1, 2]")

    with pytest.raises(ParsingError):
        load_raw(path)


def test_load_settings_merges_file_over_env_defaults(tmp_path):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"base_url": "https://lms.example.com/", "request_timeout": 5}))

    settings = load_settings(path)

    assert settings.base_url == "https://lms.example.com"
    assert settings.request_timeout == 5
    assert settings.refresh_timeout == constants.REFRESH_TIMEOUT_SECONDS


def test_load_settings_reads_env_file_name(tmp_path, monkeypatch):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"login_route": "/signin"}))
    monkeypatch.setenv(CONF_FILE_ENV, str(path))

    assert load_settings().login_route == "/signin"


def test_load_settings_invalid_values(tmp_path):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"store_write_attempts": 0}))

    with pytest.raises(ParsingError, match="Invalid settings"):
        load_settings(Path(path))


def test_env_helpers_fall_back_on_bad_values(monkeypatch):
    monkeypatch.setenv("SOME_INT", "abc")
    monkeypatch.setenv("SOME_FLOAT", "x1")
    monkeypatch.setenv("SOME_STR", "   ")

    assert constants._get_env_int("SOME_INT", 3) == 3
    assert constants._get_env_float("SOME_FLOAT", 1.5) == 1.5
    assert constants._get_env_str("SOME_STR", "dflt") == "dflt"


def test_env_helpers_parse_values(monkeypatch):
    monkeypatch.setenv("SOME_INT", "7")
    monkeypatch.setenv("SOME_FLOAT", "0.25")
    monkeypatch.setenv("SOME_STR", " /login ")

    assert constants._get_env_int("SOME_INT", 3) == 7
    assert constants._get_env_float("SOME_FLOAT", 1.5) == 0.25
    assert constants._get_env_str("SOME_STR", "dflt") == "/login"
