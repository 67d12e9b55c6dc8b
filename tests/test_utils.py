"""
Tests: token hashing and timestamp parsing helpers.
"""

import logging
from datetime import datetime, timezone

import pytest

from scopematter.core.exceptions import ValidationError
from scopematter.utils.crypto import generate_share_token, hash_share_token
from scopematter.utils.helpers import parse_datetime


def test_share_token_shape():
    token = generate_share_token()
    assert len(token) == 32
    assert token != generate_share_token()


def test_hash_is_deterministic_and_hides_token():
    token = generate_share_token()
    digest = hash_share_token(token)
    assert digest == hash_share_token(token)
    assert token not in digest
    assert "=" not in digest


@pytest.mark.parametrize("raw, expected", [
    ("2026-11-01T12:00:00Z", datetime(2026, 11, 1, 12, tzinfo=timezone.utc)),
    ("2026-11-01T14:00:00+02:00", datetime(2026, 11, 1, 12, tzinfo=timezone.utc)),
    ("2026-11-01T12:00:00", datetime(2026, 11, 1, 12, tzinfo=timezone.utc)),
])
def test_parse_datetime_normalises_to_utc(raw, expected):
    assert parse_datetime(raw) == expected


@pytest.mark.parametrize("raw", [None, ""])
def test_parse_datetime_empty(raw):
    assert parse_datetime(raw) is None


def test_parse_datetime_invalid():
    with pytest.raises(ValidationError) as exc:
        parse_datetime("next tuesday", "expires_at")
    assert exc.value.details == {"expires_at": "invalid"}


def test_share_token_redacted_from_log_records():
    from scopematter.middleware.logging_config import ShareTokenRedactor

    record = logging.LogRecord(
        "werkzeug", logging.INFO, __file__, 1,
        '"GET /api/v1/public/share/%s HTTP/1.1" 200', ("s3cr3tTok",), None,
    )
    record.path = "/api/v1/public/share/s3cr3tTok"
    ShareTokenRedactor().filter(record)
    assert "s3cr3tTok" not in record.getMessage()
    assert record.getMessage() == '"GET /api/v1/public/share/[redacted] HTTP/1.1" 200'
    assert record.path == "/api/v1/public/share/[redacted]"
