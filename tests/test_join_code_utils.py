"""
Tests for join code drawing, normalization and the validity predicate shared
by the preview and join endpoints.
"""
import re
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytz

from core.exceptions import CodeDeactivated, CodeExpired, GenerationExhausted, UsageLimitReached
from utils.join_code import (
    JoinCodeStatus,
    check_join_code_validity,
    ensure_join_code_valid,
    generate_code,
    generate_unique_code,
    normalize_code,
    parse_timestamp,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=pytz.utc)


def _code(**overrides):
    fields = dict(is_active=True, max_uses=-1, current_uses=0, expires_at=None)
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_generated_codes_are_eight_uppercase_alphanumerics():
    for _ in range(200):
        assert re.fullmatch(r"[A-Z0-9]{8}", generate_code())


def test_generate_code_honours_length_and_alphabet():
    assert re.fullmatch(r"[AB]{6}", generate_code(length=6, alphabet="AB"))


def test_generate_unique_code_retries_on_collision():
    calls = []

    def exists(code):
        calls.append(code)
        return len(calls) < 4

    code = generate_unique_code(exists)

    assert len(calls) == 4
    assert code == calls[-1]


def test_generate_unique_code_gives_up_after_ten_attempts():
    calls = []

    def exists(code):
        calls.append(code)
        return True

    with pytest.raises(GenerationExhausted):
        generate_unique_code(exists)
    assert len(calls) == 10


@pytest.mark.parametrize(
    "raw, expected",
    [("ab12cd34", "AB12CD34"), ("  xy9z  ", "XY9Z"), ("", ""), (None, "")],
)
def test_normalize_code(raw, expected):
    assert normalize_code(raw) == expected


def test_parse_timestamp_treats_naive_values_as_utc():
    assert parse_timestamp("2026-03-01T12:00:00") == NOW
    assert parse_timestamp("2026-03-01T12:00:00Z") == NOW


def test_unlimited_code_is_valid_regardless_of_usage():
    assert check_join_code_validity(_code(current_uses=10_000), NOW) is JoinCodeStatus.VALID


def test_deactivated_wins_over_every_other_failure():
    code = _code(
        is_active=False,
        max_uses=1,
        current_uses=1,
        expires_at=(NOW - timedelta(days=1)).isoformat(),
    )
    assert check_join_code_validity(code, NOW) is JoinCodeStatus.DEACTIVATED


def test_usage_limit_is_checked_before_expiry():
    code = _code(max_uses=2, current_uses=2, expires_at=(NOW - timedelta(days=1)).isoformat())
    assert check_join_code_validity(code, NOW) is JoinCodeStatus.USAGE_LIMIT_REACHED


def test_code_under_its_cap_is_valid():
    assert check_join_code_validity(_code(max_uses=2, current_uses=1), NOW) is JoinCodeStatus.VALID


def test_expired_code_regardless_of_usage():
    code = _code(expires_at=(NOW - timedelta(seconds=1)).isoformat())
    assert check_join_code_validity(code, NOW) is JoinCodeStatus.EXPIRED


def test_code_expiring_later_is_valid():
    code = _code(expires_at=(NOW + timedelta(days=7)).isoformat())
    assert check_join_code_validity(code, NOW) is JoinCodeStatus.VALID


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"is_active": False}, CodeDeactivated),
        ({"max_uses": 1, "current_uses": 1}, UsageLimitReached),
        ({"expires_at": "2020-01-01T00:00:00+00:00"}, CodeExpired),
    ],
)
def test_ensure_join_code_valid_raises_matching_error(overrides, error):
    with pytest.raises(error):
        ensure_join_code_valid(_code(**overrides), NOW)


def test_ensure_join_code_valid_passes_valid_code():
    ensure_join_code_valid(_code(), NOW)
