from __future__ import annotations

from soucare._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "email": "nurse@example.com",
        "password": "pw",
        "headers": {"Authorization": "Bearer abc", "cookie": "JSESSIONID=1", "accept": "application/json"},
        "access_token": "tok",
    }

    redacted = redact_for_log(payload)
    assert redacted["email"] == "nurse@example.com"
    assert redacted["password"] == "<redacted>"
    assert redacted["access_token"] == "<redacted>"
    assert redacted["headers"]["Authorization"] == "<redacted>"
    assert redacted["headers"]["cookie"] == "<redacted>"
    assert redacted["headers"]["accept"] == "application/json"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_walks_lists() -> None:
    redacted = redact_for_log([{"token": "a"}, {"id": 1}])
    assert redacted == [{"token": "<redacted>"}, {"id": 1}]


def test_redact_for_log_summarizes_binary_values() -> None:
    assert redact_for_log(b"abc") == "<bytes:3b>"
    assert redact_for_log(bytearray(b"abc")) == "<bytearray>"
    assert redact_for_log({"body": bytearray(b"\x00\x01")}) == {"body": "<bytearray>"}
