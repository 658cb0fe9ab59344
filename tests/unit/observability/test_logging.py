"""Tests for structured logging setup and PII redaction."""

import structlog

from parley.observability.logging import PIIRedactor, get_logger, setup_logging


class TestPIIRedactor:
    """Tests for PIIRedactor."""

    def test_sensitive_keys_redacted(self) -> None:
        event = PIIRedactor()(
            None, "info", {"event": "turn_processed", "message": "my card is 4111", "api_key": "k"}
        )

        assert event == {
            "event": "turn_processed",
            "message": "[REDACTED]",
            "api_key": "[REDACTED]",
        }

    def test_patterns_scrubbed_in_nested_values(self) -> None:
        event = PIIRedactor()(
            None,
            "info",
            {
                "event": "tool_error",
                "error": "No account for ada@example.com",
                "details": {"note": "SSN 123-45-6789", "items": ["call +1 555 123 4567"]},
            },
        )

        assert event["error"] == "No account for [EMAIL]"
        assert event["details"]["note"] == "SSN [SSN]"
        assert event["details"]["items"] == ["call [PHONE]"]

    def test_non_strings_untouched(self) -> None:
        event = PIIRedactor()(None, "info", {"event": "x", "count": 3, "ok": True})
        assert event == {"event": "x", "count": 3, "ok": True}


def test_setup_logging_configures_structlog() -> None:
    setup_logging(level="DEBUG", format="console", redact_pii=True)

    processors = structlog.get_config()["processors"]

    assert any(isinstance(p, PIIRedactor) for p in processors)
    get_logger(__name__).debug("logging_configured")

    structlog.reset_defaults()
