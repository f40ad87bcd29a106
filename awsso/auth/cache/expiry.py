# awsso/auth/cache/expiry.py
"""
만료 상태 분류

캐시는 expires_at > now 만 판단합니다.
"곧 만료" 여부는 표시/재인증 안내를 위해 호출측에서 이 모듈로 분류합니다.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ...config import settings
from ..types import SessionStatus


def utc_now() -> datetime:
    """현재 UTC 시간 (tz-aware)"""
    return datetime.now(timezone.utc)


def classify(
    expires_at: datetime | None,
    now: datetime | None = None,
    margin_seconds: int = settings.EXPIRING_SOON_SECONDS,
) -> SessionStatus:
    """만료 시간을 상태로 분류

    Args:
        expires_at: 만료 시간 (None이면 토큰/자격증명 없음)
        now: 기준 시간
        margin_seconds: 만료 임박 판단 기준 (초)

    Returns:
        INACTIVE (없음), EXPIRED, EXPIRING (margin 이내), ACTIVE
    """
    if expires_at is None:
        return SessionStatus.INACTIVE

    now = now or utc_now()
    if expires_at <= now:
        return SessionStatus.EXPIRED
    if expires_at - now <= timedelta(seconds=margin_seconds):
        return SessionStatus.EXPIRING
    return SessionStatus.ACTIVE


def format_time_remaining(expires_at: datetime | None, now: datetime | None = None) -> str:
    """남은 시간을 사람이 읽기 쉬운 형식으로 변환 (예: "2h 15m", "45m", "30s")"""
    if expires_at is None:
        return "-"

    now = now or utc_now()
    remaining = int((expires_at - now).total_seconds())
    if remaining <= 0:
        return "만료됨"

    hours, rest = divmod(remaining, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m"
    return f"{seconds}s"
