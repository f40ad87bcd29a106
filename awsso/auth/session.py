# awsso/auth/session.py
"""
명령 단위 세션 관리 파사드

CLI 명령은 이 클래스만 사용합니다.
세션 결정 -> (필요 시) 디바이스 인증 -> 자격증명 발급/캐시 -> 프로파일 기록 순서를 조합합니다.

Usage:
    manager = SessionManager.from_defaults()
    resolved = manager.resolve_session(session_name="corp")
    await manager.ensure_authenticated(resolved.session)
    profile = await manager.activate_profile(resolved.session, "123456789012", "AdminRole")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..config import get_env_int, settings
from .cache.cache import CachedToken, RoleCredentialsCache, TokenCacheManager, format_timestamp
from .cache.expiry import classify, format_time_remaining, utc_now
from .config.store import SessionStore, default_profile_name
from .provider.boto import Boto3IdentityProviderClient
from .provider.device_flow import DeviceAuthFlow, PromptCallback, SleepFunc
from .resolver import ResolvedSession, SessionResolver
from .types import (
    AccountInfo,
    ConfigurationError,
    CredentialsExpired,
    IdentityProviderClient,
    ProfileDescriptor,
    RoleCredentials,
    SessionDescriptor,
    SessionStatus,
)

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], IdentityProviderClient]


@dataclass
class SessionStatusRow:
    """status 명령의 한 행"""

    session: SessionDescriptor
    status: SessionStatus
    expires_at: datetime | None
    time_remaining: str

    @property
    def active(self) -> bool:
        return self.status in (SessionStatus.ACTIVE, SessionStatus.EXPIRING)

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        """스크립트용 JSON 직렬화"""
        expires_in_minutes = None
        if self.active and self.expires_at is not None:
            expires_in_minutes = int((self.expires_at - (now or utc_now())).total_seconds() // 60)
        return {
            "session": self.session.name,
            "start_url": self.session.start_url,
            "region": self.session.region,
            "status": self.status.value,
            "active": self.active,
            "expires_at": format_timestamp(self.expires_at) if self.expires_at else None,
            "expires_in_minutes": expires_in_minutes,
        }


def credential_environment(credentials: RoleCredentials, region: str) -> dict[str, str]:
    """Role 자격증명을 AWS SDK 환경변수로 변환"""
    return {
        "AWS_ACCESS_KEY_ID": credentials.access_key_id,
        "AWS_SECRET_ACCESS_KEY": credentials.secret_access_key,
        "AWS_SESSION_TOKEN": credentials.session_token,
        "AWS_REGION": region,
        "AWS_DEFAULT_REGION": region,
    }


class SessionManager:
    """SSO 세션 / 토큰 / 자격증명 / 프로파일 관리

    Args:
        store: 세션/프로파일 저장소
        token_cache: SSO 토큰 캐시
        role_cache: Role 자격증명 캐시
        provider_factory: 리전을 받아 IdentityProviderClient 를 만드는 함수
        sleep: 디바이스 인증 폴링 대기 함수
    """

    def __init__(
        self,
        store: SessionStore,
        token_cache: TokenCacheManager,
        role_cache: RoleCredentialsCache,
        provider_factory: ProviderFactory = Boto3IdentityProviderClient,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.store = store
        self.token_cache = token_cache
        self.role_cache = role_cache
        self.resolver = SessionResolver(store, token_cache)
        self._provider_factory = provider_factory
        self._providers: dict[str, IdentityProviderClient] = {}
        self._sleep = sleep

    @classmethod
    def from_defaults(cls) -> SessionManager:
        """AWS CLI 기본 경로(~/.aws)를 사용하는 관리자 생성"""
        return cls(SessionStore(), TokenCacheManager(), RoleCredentialsCache())

    def provider_for(self, session: SessionDescriptor) -> IdentityProviderClient:
        """세션 리전의 Provider (리전별로 재사용)"""
        if session.region not in self._providers:
            self._providers[session.region] = self._provider_factory(session.region)
        return self._providers[session.region]

    # =========================================================================
    # 세션 / 토큰
    # =========================================================================

    def resolve_session(
        self,
        explicit_url: str | None = None,
        explicit_region: str | None = None,
        session_name: str | None = None,
        now: datetime | None = None,
    ) -> ResolvedSession:
        return self.resolver.resolve(explicit_url, explicit_region, session_name, now)

    def get_valid_token(self, session: SessionDescriptor, now: datetime | None = None) -> CachedToken | None:
        """유효한 캐시 토큰 (없거나 만료되면 None)"""
        token = self.token_cache.load(session.start_url)
        if token is not None and token.is_valid(now or utc_now()):
            return token
        return None

    async def ensure_authenticated(
        self,
        session: SessionDescriptor,
        force: bool = False,
        on_prompt: PromptCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CachedToken:
        """유효한 토큰이 없으면 디바이스 인증 실행

        Args:
            session: 인증할 세션
            force: True이면 캐시 토큰을 무시하고 재인증
            on_prompt: 인증 URL/코드 표시 콜백
            cancel: 취소 이벤트
        """
        if not force:
            token = self.get_valid_token(session)
            if token is not None:
                logger.debug("캐시된 SSO 토큰 사용: %s", session.display_name)
                return token

        flow = DeviceAuthFlow(self.provider_for(session), self.token_cache, sleep=self._sleep)
        return await flow.run(session, on_prompt=on_prompt, cancel=cancel)

    def _require_token(self, session: SessionDescriptor) -> CachedToken:
        token = self.get_valid_token(session)
        if token is None:
            raise CredentialsExpired(session.name)
        return token

    # =========================================================================
    # 계정 / 자격증명
    # =========================================================================

    async def list_accounts(self, session: SessionDescriptor) -> list[AccountInfo]:
        token = self._require_token(session)
        return await self.provider_for(session).list_accounts(token.access_token)

    async def list_account_roles(self, session: SessionDescriptor, account_id: str) -> list[str]:
        token = self._require_token(session)
        return await self.provider_for(session).list_account_roles(token.access_token, account_id)

    async def resolve_account_id(
        self,
        session: SessionDescriptor,
        account_id: str | None = None,
        account_name: str | None = None,
    ) -> tuple[str, str | None]:
        """계정 ID 결정 (account_id 우선, 없으면 계정 이름으로 조회)

        Returns:
            (계정 ID, 계정 이름 또는 None)

        Raises:
            ConfigurationError: 둘 다 없거나 이름과 일치하는 계정이 없는 경우
            CredentialsExpired: 이름 조회에 필요한 SSO 토큰이 없는 경우
        """
        if account_id:
            return account_id, None
        if not account_name:
            raise ConfigurationError("--account-id 또는 --account-name 이 필요합니다", config_key="account_id")

        for account in await self.list_accounts(session):
            if account.name == account_name:
                return account.id, account.name

        raise ConfigurationError(f"계정 '{account_name}'을(를) 찾을 수 없습니다", config_key="account_name")

    async def get_role_credentials(
        self,
        session: SessionDescriptor,
        account_id: str,
        role_name: str,
        force_refresh: bool = False,
    ) -> RoleCredentials:
        """Role 자격증명 (캐시 우선, 만료 시 새로 발급)

        Raises:
            CredentialsExpired: SSO 토큰이 없거나 만료된 경우
        """
        if not force_refresh:
            cached = self.role_cache.load(session.start_url, account_id, role_name)
            if cached is not None and cached.is_valid(utc_now()):
                logger.debug("캐시된 자격증명 사용: %s/%s", account_id, role_name)
                return cached

        token = self._require_token(session)
        credentials = await self.provider_for(session).get_role_credentials(token.access_token, account_id, role_name)
        self.role_cache.save(session.start_url, account_id, role_name, credentials)
        return credentials

    async def activate_profile(
        self,
        session: SessionDescriptor,
        account_id: str,
        role_name: str,
        profile_name: str | None = None,
        region: str | None = None,
        output_format: str | None = None,
        set_default: bool = False,
        account_name: str | None = None,
    ) -> ProfileDescriptor:
        """자격증명을 발급받아 프로파일로 기록

        profile_name 이 없으면 같은 계정+역할의 기존 관리 프로파일 이름을 재사용하고,
        없으면 "<계정 이름>_<역할 이름>" 형식으로 만듭니다.
        """
        credentials = await self.get_role_credentials(session, account_id, role_name)

        existing = self.store.find_profile(account_id, role_name)
        if profile_name is None:
            if existing is not None:
                profile_name = existing.profile_name
            else:
                profile_name = default_profile_name(account_name or account_id, role_name)

        if existing is not None and existing.profile_name == profile_name:
            region = region or existing.region
            output_format = output_format or existing.output_format

        profile = ProfileDescriptor(
            profile_name=profile_name,
            account_id=account_id,
            role_name=role_name,
            region=region or session.region,
            output_format=output_format,
            sso_session=session.name,
            is_default=set_default,
            expires_at=credentials.expires_at,
        )
        return self.store.write_profile(profile, credentials)

    # =========================================================================
    # 로그아웃 / 상태
    # =========================================================================

    def logout(self, session: SessionDescriptor) -> list[str]:
        """세션 토큰 삭제 및 세션으로 발급된 프로파일/자격증명 캐시 삭제

        Returns:
            삭제된 프로파일 이름 목록
        """
        removed: list[str] = []
        if session.name:
            for profile in self.store.list_profiles():
                if profile.managed and profile.sso_session == session.name and profile.account_id and profile.role_name:
                    self.role_cache.delete(session.start_url, profile.account_id, profile.role_name)
            removed = self.store.remove_profiles_for_session(session.name)

        if self.token_cache.delete(session.start_url):
            logger.info("SSO 토큰 삭제: %s", session.display_name)
        return removed

    def status(self, now: datetime | None = None) -> list[SessionStatusRow]:
        """설정된 세션별 토큰 상태"""
        now = now or utc_now()
        margin = get_env_int("AWSSO_EXPIRING_SOON_SECONDS", settings.EXPIRING_SOON_SECONDS)
        rows = []
        for session in self.store.list_sessions():
            token = self.token_cache.load(session.start_url)
            expires_at = token.expires_at if token is not None else None
            rows.append(
                SessionStatusRow(
                    session=session,
                    status=classify(expires_at, now, margin),
                    expires_at=expires_at,
                    time_remaining=format_time_remaining(expires_at, now),
                )
            )
        return rows
