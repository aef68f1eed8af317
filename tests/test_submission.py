from __future__ import annotations

import pytest

from contact_relay.submission import (
    Submission,
    is_valid_email,
    parse_client_timestamp,
    submitted_too_fast,
)


@pytest.mark.parametrize(
    "value",
    ["a@b.co", "first.last@example.com", "x+tag@sub.domain.org"],
)
def test_valid_emails(value):
    assert is_valid_email(value) is True


@pytest.mark.parametrize(
    "value",
    ["not-an-email", "a@b", "a @b.co", "a@@b.co", "@b.co", "a@b.", "", "a@b.co\n"],
)
def test_invalid_emails(value):
    assert is_valid_email(value) is False


def test_from_payload_tolerates_non_mapping():
    assert Submission.from_payload(["not", "a", "dict"]) == Submission()
    assert Submission.from_payload(None) == Submission()


def test_from_payload_coerces_scalars_and_ignores_extras():
    s = Submission.from_payload({"name": "Ada", "phone": 5551234, "message": None, "extra": "x"})
    assert s.name == "Ada"
    assert s.phone == "5551234"
    assert s.message == ""
    assert not hasattr(s, "extra")


def test_missing_fields_flags_presence():
    s = Submission.from_payload({"name": "Ada", "email": "", "message": "hi"})
    assert s.missing_fields() == {"name": True, "email": False, "message": True}


def test_honeypot_detects_any_value():
    assert Submission.from_payload({"website": "http://spam"}).is_honeypot is True
    assert Submission.from_payload({"website": ""}).is_honeypot is False
    assert Submission.from_payload({}).is_honeypot is False


@pytest.mark.parametrize(
    "value,expected",
    [
        ("1700000000000", 1700000000000),
        (" 1700000000000ms", 1700000000000),
        (1700000000000, 1700000000000),
        (1700000000000.7, 1700000000000),
        ("abc", None),
        (None, None),
        (True, None),
        (float("inf"), None),
        (float("-inf"), None),
        (float("nan"), None),
        (10**400, None),
    ],
)
def test_parse_client_timestamp(value, expected):
    assert parse_client_timestamp(value) == expected


def test_submitted_too_fast():
    now_s = 1_700_000_010.0
    assert submitted_too_fast(str(1_700_000_009_000), now_s=now_s, min_submit_s=3.0) is True
    assert submitted_too_fast(1_700_000_007_000, now_s=now_s, min_submit_s=3.0) is False
    # future timestamps count as too fast
    assert submitted_too_fast("1700000020000", now_s=now_s, min_submit_s=3.0) is True


def test_submitted_too_fast_ignores_absent_or_garbage():
    assert submitted_too_fast(None, now_s=10.0, min_submit_s=3.0) is False
    assert submitted_too_fast("", now_s=10.0, min_submit_s=3.0) is False
    assert submitted_too_fast(0, now_s=10.0, min_submit_s=3.0) is False
    assert submitted_too_fast("soon", now_s=10.0, min_submit_s=3.0) is False


def test_oversized_timestamps_do_not_raise():
    now_s = 1_700_000_010.0
    # a digit run too long for int() reads as infinitely far in the future
    assert parse_client_timestamp("9" * 5000) == float("inf")
    assert submitted_too_fast("9" * 5000, now_s=now_s, min_submit_s=3.0) is True
    # a non-finite number is unparseable, so the timing check is skipped
    assert submitted_too_fast(float("inf"), now_s=now_s, min_submit_s=3.0) is False
    assert submitted_too_fast(float("nan"), now_s=now_s, min_submit_s=3.0) is False
