"""Test token generation, masking and validity rules.

Test cases:
- Secrets carry the environment prefix and are hashed with SHA-256
- Masking shows at most the last four characters and is idempotent
- An expired token is reported as expired whatever else is wrong with it
- IP allowlist matches exact addresses only
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from gateway.domain.token_service import (
    TokenState,
    create_token_info,
    evaluate_token,
    hash_token,
    mask_token,
    prefix_for_environment,
)


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_token(**overrides):
    fields = dict(
        expires_at=None,
        revoked_at=None,
        is_active=True,
        ip_allowlist=[],
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.mark.unit
class TestTokenGeneration:
    """Test secret generation."""

    @pytest.mark.parametrize(
        "environment,prefix",
        [
            ("production", "tok_live"),
            ("staging", "tok_stage"),
            ("development", "tok_dev"),
            ("test", "tok_test"),
            ("unknown", "tok"),
            (None, "tok"),
        ],
    )
    def test_prefix_for_environment(self, environment, prefix):
        assert prefix_for_environment(environment) == prefix

    def test_token_info_is_consistent(self):
        info = create_token_info("production")

        assert info.full_token.startswith("tok_live_")
        assert info.token_prefix == "tok_live"
        assert info.token_hash == hash_token(info.full_token)
        assert len(info.token_hash) == 64
        assert info.token_hint == f"tok_live_****{info.full_token[-4:]}"

    def test_tokens_are_unique(self):
        tokens = {create_token_info("test").full_token for _ in range(100)}
        assert len(tokens) == 100


@pytest.mark.unit
class TestMasking:
    """Test token masking."""

    def test_long_value_shows_last_four(self):
        assert mask_token("tok_live_abcdefghijklmnop", "tok_live") == "tok_live_****mnop"

    def test_short_value_shows_nothing(self):
        assert mask_token("tok_abc", "tok") == "tok_****"
        assert mask_token("123456789012", "tok") == "tok_****"

    def test_thirteen_characters_shows_last_four(self):
        assert mask_token("1234567890123", "tok") == "tok_****0123"

    def test_masking_is_idempotent(self):
        once = mask_token("tok_live_abcdefghijklmnop", "tok_live")
        twice = mask_token(once, "tok_live")
        assert twice == once

    def test_masking_short_value_is_idempotent(self):
        once = mask_token("short", "tok_dev")
        assert mask_token(once, "tok_dev") == once


@pytest.mark.unit
class TestTokenValidity:
    """Test validity rule ordering."""

    def test_valid_token(self):
        assert evaluate_token(make_token(), "10.0.0.1", NOW) is TokenState.VALID

    def test_future_expiry_is_valid(self):
        token = make_token(expires_at=NOW + timedelta(seconds=1))
        assert evaluate_token(token, "10.0.0.1", NOW) is TokenState.VALID

    def test_expired_dominates_every_other_failure(self):
        token = make_token(
            expires_at=NOW - timedelta(days=1),
            revoked_at=NOW - timedelta(days=2),
            is_active=False,
            ip_allowlist=["192.168.1.1"],
        )
        assert evaluate_token(token, "10.0.0.1", NOW) is TokenState.EXPIRED

    def test_naive_expiry_is_treated_as_utc(self):
        token = make_token(expires_at=(NOW - timedelta(minutes=1)).replace(tzinfo=None))
        assert evaluate_token(token, "10.0.0.1", NOW) is TokenState.EXPIRED

    def test_revoked_before_disabled(self):
        token = make_token(revoked_at=NOW, is_active=False)
        assert evaluate_token(token, "10.0.0.1", NOW) is TokenState.REVOKED

    def test_disabled(self):
        token = make_token(is_active=False)
        assert evaluate_token(token, "10.0.0.1", NOW) is TokenState.DISABLED

    def test_ip_allowlist_exact_match(self):
        token = make_token(ip_allowlist=["10.0.0.1", "10.0.0.2"])
        assert evaluate_token(token, "10.0.0.2", NOW) is TokenState.VALID
        assert evaluate_token(token, "10.0.0.3", NOW) is TokenState.IP_NOT_ALLOWED

    def test_ip_allowlist_has_no_cidr_matching(self):
        token = make_token(ip_allowlist=["10.0.0.0/24"])
        assert evaluate_token(token, "10.0.0.5", NOW) is TokenState.IP_NOT_ALLOWED

    def test_empty_allowlist_allows_any_ip(self):
        token = make_token(ip_allowlist=[])
        assert evaluate_token(token, None, NOW) is TokenState.VALID
