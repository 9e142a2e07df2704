from __future__ import annotations

from evledger._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "content-type": "application/json",
        "x-goog-api-key": "AIza-secret",
        "nested": {"apiKey": "k", "password": "pw"},
    }

    redacted = redact_for_log(payload)
    assert redacted["content-type"] == "application/json"
    assert redacted["x-goog-api-key"] == "<redacted>"
    assert redacted["nested"]["apiKey"] == "<redacted>"
    assert redacted["nested"]["password"] == "<redacted>"


def test_redact_for_log_collapses_data_urls() -> None:
    image = "data:image/png;base64," + "A" * 2000
    redacted = redact_for_log({"evs": [{"images": [{"id": "i1", "dataUrl": image}]}]})
    assert redacted["evs"][0]["images"][0]["dataUrl"] == f"<data-url:{len(image)}b>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_keeps_scalars() -> None:
    assert redact_for_log([1, 2.5, True, None]) == [1, 2.5, True, None]
