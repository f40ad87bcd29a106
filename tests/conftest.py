"""
tests/conftest.py - pytest 공통 픽스처

임시 ~/.aws 디렉토리와 스크립트된 가짜 IdentityProviderClient 를 제공합니다.
실제 AWS 호출이나 사용자의 ~/.aws 파일은 절대 사용하지 않습니다.

Usage:
    def test_something(store, token_cache, fake_provider):
        # store: 임시 디렉토리의 SessionStore
        # fake_provider: create_token 응답을 스크립트로 지정하는 Provider
        pass
"""

import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from awsso.auth.cache.cache import RoleCredentialsCache, TokenCacheManager  # noqa: E402
from awsso.auth.config.store import SessionStore  # noqa: E402
from awsso.auth.types import (  # noqa: E402
    AccountInfo,
    AuthDenied,
    AuthExpired,
    AuthPending,
    AuthSlowDown,
    ClientRegistration,
    DeviceAuthorization,
    IdentityProviderClient,
    RoleCredentials,
    TokenResponse,
)

START_URL = "https://example.awsapps.com/start"
OTHER_START_URL = "https://other.awsapps.com/start"


# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment(tmp_path, monkeypatch):
    """HOME 을 임시 디렉토리로 바꿔 사용자 ~/.aws 를 보호"""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("AWS_CONFIG_FILE", raising=False)
    monkeypatch.delenv("AWS_SHARED_CREDENTIALS_FILE", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("AWSSO_NO_BROWSER", raising=False)
    monkeypatch.delenv("AWSSO_EXPIRING_SOON_SECONDS", raising=False)
    yield

    # CLI 테스트가 설치한 RichHandler 제거 (caplog 가 root 에서 수집하도록)
    awsso_logger = logging.getLogger("awsso")
    for handler in list(awsso_logger.handlers):
        awsso_logger.removeHandler(handler)
    awsso_logger.propagate = True
    awsso_logger.setLevel(logging.NOTSET)


@pytest.fixture
def aws_dir(tmp_path) -> Path:
    """임시 ~/.aws 디렉토리"""
    path = tmp_path / ".aws"
    path.mkdir()
    return path


@pytest.fixture
def store(aws_dir) -> SessionStore:
    return SessionStore(aws_dir / "config", aws_dir / "credentials", aws_dir / ".awsso-initialized")


@pytest.fixture
def token_cache(aws_dir) -> TokenCacheManager:
    return TokenCacheManager(aws_dir / "sso" / "cache")


@pytest.fixture
def role_cache(aws_dir) -> RoleCredentialsCache:
    return RoleCredentialsCache(aws_dir / "cli" / "cache")


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# 가짜 Provider
# =============================================================================


def make_credentials(hours: int = 1, key: str = "ASIATEST123") -> RoleCredentials:
    """테스트용 Role 자격증명 (기본: 1시간 후 만료)"""
    return RoleCredentials(
        access_key_id=key,
        secret_access_key="test-secret",
        session_token="test-session-token",
        expires_at=(datetime.now(timezone.utc) + timedelta(hours=hours)).replace(microsecond=0),
    )


class FakeProvider(IdentityProviderClient):
    """스크립트된 응답을 돌려주는 IdentityProviderClient

    token_script 항목:
        "pending", "slow_down", "denied", "expired", "success"
    """

    def __init__(
        self,
        token_script: Optional[List[str]] = None,
        accounts: Optional[List[AccountInfo]] = None,
        roles: Optional[Dict[str, List[str]]] = None,
        credentials: Optional[RoleCredentials] = None,
        interval: int = 5,
    ):
        self.token_script = list(token_script or ["success"])
        self.accounts = accounts or [AccountInfo("123456789012", "Prod Account", "prod@example.com")]
        self.roles = roles or {"123456789012": ["AdminRole", "ReadOnlyRole"]}
        self.credentials = credentials or make_credentials()
        self.interval = interval
        self.device_expires_at = datetime.now(timezone.utc) + timedelta(minutes=10)
        self.calls: List[str] = []
        self.scopes: List[str] = []
        self.access_tokens: List[str] = []

    async def register_client(self, client_name, client_type, scopes):
        self.calls.append("register_client")
        self.scopes = list(scopes)
        return ClientRegistration(client_id="client-id", client_secret="client-secret")

    async def start_device_authorization(self, registration, start_url):
        self.calls.append("start_device_authorization")
        return DeviceAuthorization(
            device_code="device-code",
            user_code="ABCD-EFGH",
            verification_uri="https://device.sso.us-east-1.amazonaws.com/",
            verification_uri_complete="https://device.sso.us-east-1.amazonaws.com/?user_code=ABCD-EFGH",
            interval=self.interval,
            expires_at=self.device_expires_at,
        )

    async def create_token(self, registration, device_code):
        self.calls.append("create_token")
        step = self.token_script.pop(0)
        if step == "pending":
            raise AuthPending()
        if step == "slow_down":
            raise AuthSlowDown()
        if step == "denied":
            raise AuthDenied()
        if step == "expired":
            raise AuthExpired()
        return TokenResponse(access_token="new-access-token", expires_in=28800)

    async def list_accounts(self, access_token):
        self.calls.append("list_accounts")
        self.access_tokens.append(access_token)
        return list(self.accounts)

    async def list_account_roles(self, access_token, account_id):
        self.calls.append("list_account_roles")
        return list(self.roles.get(account_id, []))

    async def get_role_credentials(self, access_token, account_id, role_name):
        self.calls.append("get_role_credentials")
        self.access_tokens.append(access_token)
        return self.credentials


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_class():
    """FakeProvider 클래스 (스크립트를 직접 지정할 때)"""
    return FakeProvider


@pytest.fixture
def credentials_factory():
    return make_credentials


@pytest.fixture
def recorded_sleep():
    """대기 시간을 기록만 하는 sleep 함수"""
    waits: List[float] = []

    async def _sleep(seconds: float) -> None:
        waits.append(seconds)

    _sleep.waits = waits
    return _sleep
