# awsso/auth/resolver.py
"""
사용할 SSO 세션 결정

우선순위:
    1. --start-url 과 --region 을 모두 지정 -> 그대로 사용 (저장소 조회 없음)
       (하나만 지정하면 ConfigurationError)
    2. --session-name 지정 -> 저장소에서 조회 (없으면 ResolutionNotFound)
    3. 유효한 캐시 토큰이 있는 설정 세션이 정확히 하나 -> 그 세션
    4. 설정된 세션이 정확히 하나 -> 그 세션
    5. 설정된 세션이 없음 -> ResolutionNotFound, 여러 개 -> ResolutionAmbiguous
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .cache.cache import CachedToken, TokenCacheManager
from .cache.expiry import utc_now
from .config.store import SessionStore
from .types import (
    ConfigurationError,
    ResolutionAmbiguous,
    ResolutionNotFound,
    SessionDescriptor,
)

logger = logging.getLogger(__name__)


class ResolutionSource(Enum):
    """세션이 결정된 근거"""

    EXPLICIT = "explicit"
    NAMED = "named"
    CACHED_TOKEN = "cached-token"
    SINGLE_SESSION = "single-session"


@dataclass
class ResolvedSession:
    """결정된 세션

    Attributes:
        session: SSO 세션 정의
        source: 결정 근거
        token: 결정 과정에서 확인한 유효 토큰 (CACHED_TOKEN 인 경우)
    """

    session: SessionDescriptor
    source: ResolutionSource
    token: CachedToken | None = None


class SessionResolver:
    """명령 인자와 캐시 상태로 사용할 SSO 세션을 결정"""

    def __init__(self, store: SessionStore, token_cache: TokenCacheManager):
        self.store = store
        self.token_cache = token_cache

    def resolve(
        self,
        explicit_url: str | None = None,
        explicit_region: str | None = None,
        session_name: str | None = None,
        now: datetime | None = None,
    ) -> ResolvedSession:
        """세션 결정

        Raises:
            ConfigurationError: URL/리전 중 하나만 지정된 경우
            ResolutionNotFound: 지정한 세션이 없거나 설정된 세션이 없는 경우
            ResolutionAmbiguous: 후보가 여러 개인 경우
        """
        if explicit_url or explicit_region:
            if not explicit_url:
                raise ConfigurationError("--region 과 함께 --start-url 을 지정하세요", config_key="start_url")
            if not explicit_region:
                raise ConfigurationError("--start-url 과 함께 --region 을 지정하세요", config_key="region")
            logger.debug("명시적 URL/리전 사용: %s (%s)", explicit_url, explicit_region)
            return ResolvedSession(SessionDescriptor(None, explicit_url, explicit_region), ResolutionSource.EXPLICIT)

        if session_name:
            session = self.store.get_session(session_name)
            if session is None:
                raise ResolutionNotFound(session_name, self.store.session_names())
            return ResolvedSession(session, ResolutionSource.NAMED)

        sessions = self.store.list_sessions()
        now = now or utc_now()

        authenticated: list[tuple[SessionDescriptor, CachedToken]] = []
        for session in sessions:
            token = self.token_cache.load(session.start_url)
            if token is not None and token.is_valid(now):
                authenticated.append((session, token))

        if len(authenticated) == 1:
            session, token = authenticated[0]
            logger.debug("유효한 토큰이 있는 세션 사용: %s", session.display_name)
            return ResolvedSession(session, ResolutionSource.CACHED_TOKEN, token)

        if len(sessions) == 1:
            return ResolvedSession(sessions[0], ResolutionSource.SINGLE_SESSION)

        if not sessions:
            raise ResolutionNotFound(None, [])

        raise ResolutionAmbiguous([session.display_name for session in sessions])
