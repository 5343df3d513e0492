from src.utils.logger import key_fingerprint, redact_api_keys


def test_redacts_keys_in_string_fields():
    event = {
        "event": "Provider call failed for AIzaSyA1b2C3d4E5f6G7h8",
        "error": "key=AIzaSyZZZZZZZZZZZZZZ rejected",
        "attempt": 2,
    }

    redacted = redact_api_keys(None, "error", event)

    assert redacted["event"] == "Provider call failed for AIza***"
    assert redacted["error"] == "key=AIza*** rejected"
    assert redacted["attempt"] == 2


def test_fingerprint_is_stable_and_short():
    assert key_fingerprint("AIzaCandidate") == key_fingerprint("AIzaCandidate")
    assert len(key_fingerprint("AIzaCandidate")) == 12
    assert "AIza" not in key_fingerprint("AIzaCandidate")
