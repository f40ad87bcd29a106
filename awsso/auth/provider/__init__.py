# awsso/auth/provider/__init__.py
"""
SSO Identity Provider 모듈

- Boto3IdentityProviderClient: boto3 sso-oidc / sso 클라이언트 기반 구현
- DeviceAuthFlow: OIDC 디바이스 인증 플로우 (폴링, slow_down, 취소)

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = [
    "Boto3IdentityProviderClient",
    "DeviceAuthFlow",
    "FlowState",
    "parse_scopes",
]

_IMPORT_MAPPING = {
    "Boto3IdentityProviderClient": (".boto", "Boto3IdentityProviderClient"),
    "DeviceAuthFlow": (".device_flow", "DeviceAuthFlow"),
    "FlowState": (".device_flow", "FlowState"),
    "parse_scopes": (".device_flow", "parse_scopes"),
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
