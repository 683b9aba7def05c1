"""
Tests for license validation rules and key issuing.
"""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from license import (
    DenialReason,
    LicenseKeyCollisionError,
    ValidationResult,
    generate_license_key,
    issue_license,
    validate_license_key,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
KEY_PATTERN = re.compile(r"^[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}$")


class TestValidation:
    def test_active_unexpired_key_grants(self, store):
        store.add("AAAA-BBBB-CCCC-DDDD", holder_name="Ada")
        result = validate_license_key("AAAA-BBBB-CCCC-DDDD", store, NOW)
        assert result == ValidationResult(valid=True, holder_name="Ada")

    @pytest.mark.parametrize("key", ["", None])
    def test_missing_key(self, store, key):
        result = validate_license_key(key, store, NOW)
        assert result.reason == DenialReason.MISSING_KEY.value

    def test_unknown_key(self, store):
        store.add("AAAA-BBBB-CCCC-DDDD")
        result = validate_license_key("aaaa-bbbb-cccc-dddd", store, NOW)
        assert result.valid is False
        assert result.reason == "Invalid license key."

    def test_inactive_wins_over_expired(self, store):
        store.add("K", is_active=False, expires_at=NOW - timedelta(days=30))
        result = validate_license_key("K", store, NOW)
        assert result.reason == "This license is inactive. Contact your administrator."

    def test_expired_one_millisecond_ago(self, store):
        store.add("K", expires_at=NOW - timedelta(milliseconds=1))
        result = validate_license_key("K", store, NOW)
        assert result.reason == "This license has expired."

    def test_expiring_one_millisecond_from_now(self, store):
        store.add("K", expires_at=NOW + timedelta(milliseconds=1))
        assert validate_license_key("K", store, NOW).valid is True

    def test_no_expiry_never_expires(self, store):
        store.add("K", expires_at=None)
        assert validate_license_key("K", store, datetime(2999, 1, 1, tzinfo=timezone.utc)).valid


class TestValidationResult:
    def test_granted_body(self):
        assert ValidationResult.granted("Ada").to_dict() == {"valid": True, "holder_name": "Ada"}

    def test_denied_body(self):
        body = ValidationResult.denied(DenialReason.NOT_FOUND).to_dict()
        assert body == {"valid": False, "reason": "Invalid license key."}


class TestKeyGeneration:
    def test_format(self):
        for _ in range(20):
            assert KEY_PATTERN.match(generate_license_key())

    def test_custom_shape(self):
        key = generate_license_key(segments=3, segment_length=6)
        assert re.match(r"^[0-9A-F]{6}-[0-9A-F]{6}-[0-9A-F]{6}$", key)

    def test_keys_differ(self):
        keys = {generate_license_key() for _ in range(100)}
        assert len(keys) == 100


class TestIssue:
    def test_issue_creates_active_record(self, store):
        expires = NOW + timedelta(days=30)
        record = issue_license(store, "Ada", "ada@example.com", expires_at=expires, now=NOW)

        assert record.is_active is True
        assert record.holder_name == "Ada"
        assert record.expires_at == expires
        assert KEY_PATTERN.match(record.key)
        assert store.get_license_by_key(record.key) == record

    def test_existing_key_is_regenerated(self, store):
        keys = iter(["AAAA-AAAA-AAAA-AAAA", "BBBB-BBBB-BBBB-BBBB"])
        store.add("AAAA-AAAA-AAAA-AAAA")

        with patch("license.generate_license_key", side_effect=lambda *a: next(keys)):
            record = issue_license(store, "Bea", "bea@example.com")

        assert record.key == "BBBB-BBBB-BBBB-BBBB"

    def test_collision_during_insert_is_retried(self, store):
        keys = iter(["AAAA-AAAA-AAAA-AAAA", "BBBB-BBBB-BBBB-BBBB"])
        original_create = store.create_license
        calls = []

        def racing_create(key, *args, **kwargs):
            calls.append(key)
            if len(calls) == 1:
                raise LicenseKeyCollisionError(key)
            return original_create(key, *args, **kwargs)

        store.create_license = racing_create
        with patch("license.generate_license_key", side_effect=lambda *a: next(keys)):
            record = issue_license(store, "Bea", "bea@example.com")

        assert record.key == "BBBB-BBBB-BBBB-BBBB"
        assert calls == ["AAAA-AAAA-AAAA-AAAA", "BBBB-BBBB-BBBB-BBBB"]

    def test_gives_up_after_max_attempts(self, store):
        store.add("AAAA-AAAA-AAAA-AAAA")
        with patch("license.generate_license_key", return_value="AAAA-AAAA-AAAA-AAAA"):
            with pytest.raises(LicenseKeyCollisionError):
                issue_license(store, "Bea", "bea@example.com", max_attempts=3)
        assert len(store.records) == 1
