import logging

from utils.log_filters import RedactingFilter, configure_logging, redact


def test_identifying_values_are_masked() -> None:
    message = redact("Completing lesson_id=42 for user_id=abc-123 (xp_reward=10)")
    assert message == "Completing lesson_id=[REDACTED] for user_id=[REDACTED] (xp_reward=10)"


def test_messages_without_identifiers_are_untouched() -> None:
    assert redact("XP added successfully: xp=110 level=2") == "XP added successfully: xp=110 level=2"


def test_filter_rewrites_formatted_record() -> None:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "token=%s", ("secret-value",), None)
    assert RedactingFilter().filter(record) is True
    assert record.getMessage() == "token=[REDACTED]"


def test_configure_logging_toggles_filter() -> None:
    root = logging.getLogger()
    handler = logging.StreamHandler()
    root.addHandler(handler)
    try:
        configure_logging(debug=False, level="INFO")
        assert any(isinstance(f, RedactingFilter) for f in handler.filters)
        configure_logging(debug=True, level="INFO")
        assert not any(isinstance(f, RedactingFilter) for f in handler.filters)
    finally:
        root.removeHandler(handler)
