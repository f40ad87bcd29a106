# awsso/auth/types/__init__.py
"""
인증 모듈의 공통 타입 및 인터페이스 정의

이 모듈은 설정/캐시/Provider가 공유하는 데이터 타입, 인터페이스, 에러 계층을 정의합니다.

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = [
    # Enums
    "SectionKind",
    "SessionStatus",
    # Interfaces
    "IdentityProviderClient",
    # Data classes
    "SessionDescriptor",
    "ProfileDescriptor",
    "AccountInfo",
    "RoleCredentials",
    "ClientRegistration",
    "DeviceAuthorization",
    "TokenResponse",
    "DEFAULT_REGISTRATION_SCOPES",
    # Errors
    "AuthError",
    "ConfigIoError",
    "ConfigurationError",
    "CollisionError",
    "SectionNotFoundError",
    "ResolutionError",
    "ResolutionNotFound",
    "ResolutionAmbiguous",
    "AuthPending",
    "AuthSlowDown",
    "AuthExpired",
    "AuthDenied",
    "AuthCancelled",
    "ProviderError",
    "CacheCorrupt",
    "CredentialsExpired",
]

_IMPORT_MAPPING = {name: (".types", name) for name in __all__}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
