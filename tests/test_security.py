import json
import logging
from types import SimpleNamespace

from backend.utils.security import (
    is_valid_origin,
    log_security_event,
    mask_sensitive_data,
    sanitize_input,
    validate_api_key,
    validate_environment,
)


def _settings(**overrides):
    values = {
        "openai_api_key": "sk-abcdefghijklmnopqrstuvwxyz012345",
        "rate_limit_max": 100,
        "cache_enabled": True,
        "dedup_cache_enabled": False,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_environment_ok():
    report = validate_environment(_settings())
    assert report.valid
    assert report.warnings == []


def test_environment_placeholder_key_is_error():
    report = validate_environment(_settings(openai_api_key="your_openai_api_key_here"))
    assert not report.valid


def test_environment_warnings():
    report = validate_environment(
        _settings(rate_limit_max=5000, cache_enabled=False, dedup_cache_enabled=True)
    )
    assert report.valid
    assert len(report.warnings) == 2


def test_validate_api_key():
    assert validate_api_key("sk-abcdefghijklmnopqrstuvwxyz012345")
    assert not validate_api_key("short")
    assert not validate_api_key("sk-test-abcdefghijklmnopqrstuvwxyz")
    assert not validate_api_key("")


def test_sanitize_input():
    assert sanitize_input('<script>alert("x")</script>') == "scriptalert(x)/script"


def test_is_valid_origin():
    allowed = ["http://localhost:3000"]
    assert is_valid_origin("http://localhost:3000", allowed)
    assert not is_valid_origin("https://evil.example", allowed)


def test_mask_sensitive_keys():
    masked = mask_sensitive_data(
        {"apiKey": "sk-1234567890abcdef", "password": "short", "ip": "1.2.3.4", "nested": {"token": "abcdefghijkl"}}
    )
    assert masked["apiKey"] == "sk-1***********cdef"
    assert masked["password"] == "***MASKED***"
    assert masked["ip"] == "1.2.3.4"
    assert masked["nested"]["token"] == "abcd****ijkl"


def test_mask_long_tokens_in_strings():
    text = "key=abcdefghijklmnopqrstuvwxyz end"
    assert mask_sensitive_data(text) == "key=abcd" + "*" * 18 + "wxyz end"


def test_log_security_event(caplog):
    with caplog.at_level(logging.WARNING, logger="backend.utils.security"):
        log_security_event("INVALID_ORIGIN", {"origin": "x", "secret": "topsecretvalue"}, "warn")

    entry = json.loads(caplog.records[-1].getMessage())
    assert entry["event"] == "INVALID_ORIGIN"
    assert entry["details"]["secret"] == "tops******alue"


def test_log_security_event_disabled(caplog):
    with caplog.at_level(logging.INFO, logger="backend.utils.security"):
        log_security_event("X", {}, enabled=False)
    assert caplog.records == []
