# tests/auth/test_auth_types.py
"""
awsso/auth/types/types.py 테스트

테스트 대상:
- SessionDescriptor / ProfileDescriptor / AccountInfo / RoleCredentials
- 에러 클래스 메시지와 속성
"""

from datetime import timedelta

import pytest

from awsso.auth.types import (
    AccountInfo,
    AuthCancelled,
    AuthError,
    CacheCorrupt,
    CollisionError,
    ConfigIoError,
    ConfigurationError,
    ProfileDescriptor,
    ProviderError,
    ResolutionAmbiguous,
    RoleCredentials,
    SectionKind,
    SectionNotFoundError,
    SessionDescriptor,
)
from awsso.exceptions import AwssoError


class TestSessionDescriptor:
    """SessionDescriptor 클래스 테스트"""

    def test_defaults(self):
        session = SessionDescriptor("corp", "https://corp.awsapps.com/start", "ap-northeast-2", "")
        assert session.registration_scopes == "sso:account:access"
        assert session.managed is True
        assert session.display_name == "corp"

    def test_required_fields(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SessionDescriptor("corp", "", "ap-northeast-2")
        assert exc_info.value.config_key == "sso_start_url"

        with pytest.raises(ConfigurationError) as exc_info:
            SessionDescriptor("corp", "https://corp.awsapps.com/start", "")
        assert exc_info.value.config_key == "sso_region"

    def test_items_round_trip(self):
        session = SessionDescriptor("corp", "https://corp.awsapps.com/start", "ap-northeast-2")
        restored = SessionDescriptor.from_items("corp", session.to_items(), managed=False)
        assert restored.start_url == session.start_url
        assert restored.managed is False


class TestProfileDescriptor:
    def test_config_items_skip_empty(self):
        profile = ProfileDescriptor("dev", account_id="123456789012", role_name="Admin", output_format="json")
        assert profile.to_config_items() == [
            ("sso_account_id", "123456789012"),
            ("sso_role_name", "Admin"),
            ("output", "json"),
        ]


class TestAccountAndCredentials:
    def test_account_name_default(self):
        assert AccountInfo("123456789012", "").name == "account-123456789012"

    def test_role_credentials_boundary(self, now):
        credentials = RoleCredentials("A", "S", "T", expires_at=now)
        assert credentials.is_valid(now) is False
        assert credentials.is_valid(now - timedelta(seconds=1)) is True


class TestErrors:
    """에러 클래스 테스트"""

    def test_hierarchy(self):
        assert issubclass(AuthError, AwssoError)
        assert issubclass(CollisionError, ConfigurationError)
        assert issubclass(SectionNotFoundError, ConfigurationError)

    def test_collision_remedy(self):
        error = CollisionError(SectionKind.SSO_SESSION, "corp")
        assert error.kind is SectionKind.SSO_SESSION
        assert "awsso session import corp" in error.remedy
        assert error.remedy in str(error)

        profile_error = CollisionError("profile", "dev")
        assert "awsso profile import dev" in profile_error.remedy

    def test_ambiguous_examples(self):
        error = ResolutionAmbiguous(["a", "b"])
        assert error.examples == ["awsso login --session-name a", "awsso login --session-name b"]
        assert error.to_dict()["details"] == {"candidates": ["a", "b"]}

    def test_provider_error_format(self):
        cause = ValueError("boom")
        error = ProviderError("sso", "list_accounts", "failed", error_code="X", cause=cause)
        assert str(error) == "[sso] list_accounts: failed: boom"
        assert error.cause is cause

    def test_config_io_error_path(self, tmp_path):
        error = ConfigIoError(tmp_path / "config", "쓰기", OSError("denied"))
        assert error.path == str(tmp_path / "config")
        assert error.details["path"] == error.path

    def test_cache_corrupt(self):
        assert CacheCorrupt("/tmp/x.json").path == "/tmp/x.json"

    def test_cancelled_has_retry_guidance(self):
        assert "awsso login" in str(AuthCancelled())
