"""Tests for log redaction."""
import logging

from examgen.logging_utils import SecretRedactionFilter, configure_sensitive_data_redaction


def _record(msg, args=()):
    return logging.LogRecord("examgen", logging.INFO, __file__, 1, msg, args, None)


def test_api_keys_and_bearer_tokens_are_redacted():
    record = _record("calling with sk-abcdefghijklmnopqrstuvwx and Bearer abc.def-123")
    SecretRedactionFilter().filter(record)

    assert "abcdefghijklmnop" not in record.msg
    assert "sk-[REDACTED]" in record.msg
    assert "Bearer [REDACTED]" in record.msg


def test_args_are_redacted_recursively():
    record = _record("%s %s", ({"headers": {"Authorization": "Bearer secret-token"}}, ["ok"]))
    SecretRedactionFilter().filter(record)

    assert record.args[0] == {"headers": {"Authorization": "Bearer [REDACTED]"}}
    assert record.args[1] == ["ok"]


def test_filter_is_installed_once():
    configure_sensitive_data_redaction()
    configure_sensitive_data_redaction()

    filters = [f for f in logging.getLogger("uvicorn").filters if isinstance(f, SecretRedactionFilter)]
    assert len(filters) == 1
