# awsso/auth/__init__.py
"""
AWS SSO 인증 모듈 (awsso/auth)

서브패키지:
- types: 데이터 타입, Provider 인터페이스, 에러 계층
- config: ~/.aws/config, ~/.aws/credentials 문서 모델 및 저장소
- cache: SSO 토큰 / Role 자격증명 파일 캐시
- provider: boto3 클라이언트, 디바이스 인증 플로우

사용 예시:
    from awsso.auth import SessionManager

    manager = SessionManager.from_defaults()
    resolved = manager.resolve_session(session_name="corp")

    # 유효한 토큰이 없으면 디바이스 인증
    await manager.ensure_authenticated(resolved.session)

    # 자격증명 발급 후 프로파일 기록
    profile = await manager.activate_profile(
        resolved.session,
        account_id="123456789012",
        role_name="AdminRole",
    )

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
    실제 사용 시점에만 하위 모듈이 로드되어 CLI 시작 시간을 최적화합니다.
"""

__all__ = [
    # Types
    "SectionKind",
    "SessionStatus",
    "SessionDescriptor",
    "ProfileDescriptor",
    "AccountInfo",
    "RoleCredentials",
    "IdentityProviderClient",
    "AuthError",
    "ConfigIoError",
    "ConfigurationError",
    "CollisionError",
    "SectionNotFoundError",
    "ResolutionError",
    "ResolutionNotFound",
    "ResolutionAmbiguous",
    "AuthExpired",
    "AuthDenied",
    "AuthCancelled",
    "ProviderError",
    "CredentialsExpired",
    # Cache
    "CachedToken",
    "TokenCacheManager",
    "RoleCredentialsCache",
    # Config
    "ConfigDocument",
    "ManagedRegionOrganizer",
    "SessionStore",
    # Provider
    "Boto3IdentityProviderClient",
    "DeviceAuthFlow",
    "FlowState",
    # Resolver
    "SessionResolver",
    "ResolvedSession",
    "ResolutionSource",
    # Manager
    "SessionManager",
    "SessionStatusRow",
    "credential_environment",
]

# Lazy import 매핑 테이블
_IMPORT_MAPPING = {
    # Types
    "SectionKind": (".types", "SectionKind"),
    "SessionStatus": (".types", "SessionStatus"),
    "SessionDescriptor": (".types", "SessionDescriptor"),
    "ProfileDescriptor": (".types", "ProfileDescriptor"),
    "AccountInfo": (".types", "AccountInfo"),
    "RoleCredentials": (".types", "RoleCredentials"),
    "IdentityProviderClient": (".types", "IdentityProviderClient"),
    "AuthError": (".types", "AuthError"),
    "ConfigIoError": (".types", "ConfigIoError"),
    "ConfigurationError": (".types", "ConfigurationError"),
    "CollisionError": (".types", "CollisionError"),
    "SectionNotFoundError": (".types", "SectionNotFoundError"),
    "ResolutionError": (".types", "ResolutionError"),
    "ResolutionNotFound": (".types", "ResolutionNotFound"),
    "ResolutionAmbiguous": (".types", "ResolutionAmbiguous"),
    "AuthExpired": (".types", "AuthExpired"),
    "AuthDenied": (".types", "AuthDenied"),
    "AuthCancelled": (".types", "AuthCancelled"),
    "ProviderError": (".types", "ProviderError"),
    "CredentialsExpired": (".types", "CredentialsExpired"),
    # Cache
    "CachedToken": (".cache", "CachedToken"),
    "TokenCacheManager": (".cache", "TokenCacheManager"),
    "RoleCredentialsCache": (".cache", "RoleCredentialsCache"),
    # Config
    "ConfigDocument": (".config", "ConfigDocument"),
    "ManagedRegionOrganizer": (".config", "ManagedRegionOrganizer"),
    "SessionStore": (".config", "SessionStore"),
    # Provider
    "Boto3IdentityProviderClient": (".provider", "Boto3IdentityProviderClient"),
    "DeviceAuthFlow": (".provider", "DeviceAuthFlow"),
    "FlowState": (".provider", "FlowState"),
    # Resolver
    "SessionResolver": (".resolver", "SessionResolver"),
    "ResolvedSession": (".resolver", "ResolvedSession"),
    "ResolutionSource": (".resolver", "ResolutionSource"),
    # Manager
    "SessionManager": (".session", "SessionManager"),
    "SessionStatusRow": (".session", "SessionStatusRow"),
    "credential_environment": (".session", "credential_environment"),
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
