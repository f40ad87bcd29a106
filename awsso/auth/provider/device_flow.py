# awsso/auth/provider/device_flow.py
"""
OIDC 디바이스 인증 플로우

상태 전이:
    UNREGISTERED -> CLIENT_REGISTERED -> DEVICE_AUTHORIZED -> POLLING
        -> SUCCEEDED | DENIED | EXPIRED | CANCELLED | FAILED

폴링 규칙:
    - AuthPending: 현재 간격만큼 기다린 뒤 다시 시도
    - AuthSlowDown: 간격을 5초 늘리고(이후 계속 유지) 다시 시도
    - 디바이스 코드 만료 시간 도달 또는 그 외 오류: 종료
    - 취소: asyncio.Event 를 각 시도 전과 대기 후에 확인

성공하면 토큰을 캐시에 기록한 뒤 반환합니다 (기록 실패 시 예외).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from enum import Enum

from ...config import settings
from ..cache.cache import CachedToken, TokenCacheManager
from ..cache.expiry import utc_now
from ..types import (
    AuthCancelled,
    AuthDenied,
    AuthExpired,
    AuthPending,
    AuthSlowDown,
    ClientRegistration,
    DeviceAuthorization,
    IdentityProviderClient,
    SessionDescriptor,
    TokenResponse,
)

logger = logging.getLogger(__name__)

PromptCallback = Callable[[DeviceAuthorization], None]
SleepFunc = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


class FlowState(Enum):
    """디바이스 인증 플로우 상태"""

    UNREGISTERED = "unregistered"
    CLIENT_REGISTERED = "client-registered"
    DEVICE_AUTHORIZED = "device-authorized"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    DENIED = "denied"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {FlowState.SUCCEEDED, FlowState.DENIED, FlowState.EXPIRED, FlowState.CANCELLED, FlowState.FAILED}
)


def parse_scopes(registration_scopes: str) -> list[str]:
    """"a, b" 형식의 등록 스코프 문자열을 목록으로 변환"""
    scopes = [scope.strip() for scope in registration_scopes.split(",") if scope.strip()]
    return scopes or [settings.DEFAULT_REGISTRATION_SCOPES]


class DeviceAuthFlow:
    """한 번의 디바이스 인증 플로우

    Example:
        flow = DeviceAuthFlow(provider, token_cache)
        token = await flow.run(session, on_prompt=show_code)

    Args:
        provider: IdentityProviderClient 구현
        token_cache: 성공 시 토큰을 기록할 캐시
        sleep: 대기 함수 (테스트에서 대체 가능)
        clock: 현재 시간 함수 (테스트에서 대체 가능)
    """

    def __init__(
        self,
        provider: IdentityProviderClient,
        token_cache: TokenCacheManager,
        sleep: SleepFunc = asyncio.sleep,
        clock: Clock = utc_now,
        client_name: str = settings.CLIENT_NAME,
        client_type: str = settings.CLIENT_TYPE,
        slow_down_increment: int = settings.SLOW_DOWN_INCREMENT_SECONDS,
    ):
        self.provider = provider
        self.token_cache = token_cache
        self._sleep = sleep
        self._clock = clock
        self.client_name = client_name
        self.client_type = client_type
        self.slow_down_increment = slow_down_increment
        self.state = FlowState.UNREGISTERED
        self.interval: float = settings.DEFAULT_POLL_INTERVAL_SECONDS
        self.attempts = 0

    async def run(
        self,
        session: SessionDescriptor,
        on_prompt: PromptCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CachedToken:
        """플로우 실행

        Args:
            session: 인증할 SSO 세션
            on_prompt: 사용자에게 인증 URL/코드를 보여줄 콜백
            cancel: 설정되면 다음 확인 시점에 플로우를 취소

        Returns:
            캐시에 기록된 CachedToken

        Raises:
            AuthDenied / AuthExpired / AuthCancelled: 종료 상태
            ProviderError: 그 외 Provider 오류
            ConfigIoError: 토큰 캐시 기록 실패
        """
        if self.state is not FlowState.UNREGISTERED:
            raise RuntimeError(f"이미 실행된 플로우입니다 (state={self.state.value})")

        try:
            self._check_cancel(cancel)
            registration = await self.provider.register_client(
                self.client_name, self.client_type, parse_scopes(session.registration_scopes)
            )
            self.state = FlowState.CLIENT_REGISTERED

            self._check_cancel(cancel)
            authorization = await self.provider.start_device_authorization(registration, session.start_url)
            self.state = FlowState.DEVICE_AUTHORIZED
            logger.debug("디바이스 인증 시작: user_code=%s", authorization.user_code)

            if on_prompt is not None:
                on_prompt(authorization)

            response = await self._poll(registration, authorization, cancel)

            token = CachedToken(
                start_url=session.start_url,
                region=session.region,
                access_token=response.access_token,
                expires_at=self._clock() + timedelta(seconds=response.expires_in),
            )
            self.token_cache.save(token)
        except AuthCancelled:
            self.state = FlowState.CANCELLED
            raise
        except asyncio.CancelledError:
            self.state = FlowState.CANCELLED
            raise
        except AuthExpired:
            self.state = FlowState.EXPIRED
            raise
        except AuthDenied:
            self.state = FlowState.DENIED
            raise
        except Exception:
            self.state = FlowState.FAILED
            raise

        self.state = FlowState.SUCCEEDED
        logger.info("SSO 인증 완료: %s", session.display_name)
        return token

    async def _poll(
        self,
        registration: ClientRegistration,
        authorization: DeviceAuthorization,
        cancel: asyncio.Event | None,
    ) -> TokenResponse:
        self.state = FlowState.POLLING
        self.interval = authorization.interval or settings.DEFAULT_POLL_INTERVAL_SECONDS

        while True:
            self._check_cancel(cancel)
            if self._clock() >= authorization.expires_at:
                raise AuthExpired()

            self.attempts += 1
            try:
                return await self.provider.create_token(registration, authorization.device_code)
            except AuthPending:
                logger.debug("승인 대기 중 (시도 %d)", self.attempts)
            except AuthSlowDown:
                self.interval += self.slow_down_increment
                logger.debug("폴링 간격 증가: %ss", self.interval)

            await self._sleep(self.interval)
            self._check_cancel(cancel)

    @staticmethod
    def _check_cancel(cancel: asyncio.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise AuthCancelled()
