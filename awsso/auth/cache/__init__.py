# awsso/auth/cache/__init__.py
"""
SSO 토큰 및 Role 자격증명 캐시 관리 모듈

캐시 전략:
- CachedToken: 파일 기반 (~/.aws/sso/cache/) - AWS CLI 호환 필수
- RoleCredentialsCache: 파일 기반 (~/.aws/cli/cache/) - 토큰과 독립적인 수명
- expiry: 만료 상태 분류 (ACTIVE / EXPIRING / EXPIRED / INACTIVE)

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = [
    "CachedToken",
    "TokenCacheManager",
    "RoleCredentialsCache",
    "format_timestamp",
    "parse_timestamp",
    "classify",
    "format_time_remaining",
    "utc_now",
]

_IMPORT_MAPPING = {
    "CachedToken": (".cache", "CachedToken"),
    "TokenCacheManager": (".cache", "TokenCacheManager"),
    "RoleCredentialsCache": (".cache", "RoleCredentialsCache"),
    "format_timestamp": (".cache", "format_timestamp"),
    "parse_timestamp": (".cache", "parse_timestamp"),
    "classify": (".expiry", "classify"),
    "format_time_remaining": (".expiry", "format_time_remaining"),
    "utc_now": (".expiry", "utc_now"),
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
