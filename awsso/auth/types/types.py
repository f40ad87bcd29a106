# awsso/auth/types/types.py
"""
awsso/auth/types/types.py - 인증 모듈의 핵심 타입 정의

이 모듈은 인증 시스템 전체에서 사용되는 기본 타입들을 정의합니다.

포함 항목:
    - SectionKind: 설정 파일 섹션 종류 (profile, sso-session)
    - SessionStatus: 자격증명/토큰 상태 (ACTIVE, EXPIRING, EXPIRED, INACTIVE)
    - SessionDescriptor / ProfileDescriptor: 설정 파일에 저장되는 세션/프로파일
    - AccountInfo / RoleCredentials: SSO 포털 조회 결과
    - ClientRegistration / DeviceAuthorization / TokenResponse: OIDC 응답
    - IdentityProviderClient: SSO OIDC/포털 호출 인터페이스 (ABC)
    - 에러 클래스: AuthError 계층
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ...exceptions import AwssoError

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class SectionKind(str, Enum):
    """설정 파일 섹션 종류

    - PROFILE: [profile name] / [default] (config), [name] (credentials)
    - SSO_SESSION: [sso-session name]
    """

    PROFILE = "profile"
    SSO_SESSION = "sso-session"

    def __str__(self) -> str:
        return self.value


class SessionStatus(Enum):
    """토큰/자격증명 상태"""

    ACTIVE = "ACTIVE"
    EXPIRING = "EXPIRING"
    EXPIRED = "EXPIRED"
    INACTIVE = "INACTIVE"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Session / Profile Descriptors
# =============================================================================


DEFAULT_REGISTRATION_SCOPES = "sso:account:access"


@dataclass
class SessionDescriptor:
    """[sso-session] 섹션에 대응하는 SSO 세션 정의

    Attributes:
        name: 세션 이름 (명시적 URL/리전으로 결정된 경우 None)
        start_url: SSO 시작 URL
        region: SSO 리전
        registration_scopes: OIDC 클라이언트 등록 스코프
        managed: 관리 영역(marker 아래)에 있는지 여부
    """

    name: str | None
    start_url: str
    region: str
    registration_scopes: str = DEFAULT_REGISTRATION_SCOPES
    managed: bool = True

    def __post_init__(self):
        if not self.start_url:
            raise ConfigurationError(
                f"SSO 세션 '{self.name}'에 sso_start_url이 없습니다",
                config_key="sso_start_url",
            )
        if not self.region:
            raise ConfigurationError(
                f"SSO 세션 '{self.name}'에 sso_region이 없습니다",
                config_key="sso_region",
            )
        if not self.registration_scopes:
            self.registration_scopes = DEFAULT_REGISTRATION_SCOPES

    @property
    def display_name(self) -> str:
        """표시용 이름 (이름이 없으면 시작 URL)"""
        return self.name or self.start_url

    def to_items(self) -> list[tuple[str, str]]:
        """config 파일 key-value 목록으로 변환"""
        return [
            ("sso_start_url", self.start_url),
            ("sso_region", self.region),
            ("sso_registration_scopes", self.registration_scopes),
        ]

    @classmethod
    def from_items(
        cls, name: str, items: list[tuple[str, str]], managed: bool = True
    ) -> SessionDescriptor:
        """config 파일 key-value 목록에서 생성

        Raises:
            ConfigurationError: 필수 키 누락 시
        """
        values = dict(items)
        return cls(
            name=name,
            start_url=values.get("sso_start_url", ""),
            region=values.get("sso_region", ""),
            registration_scopes=values.get("sso_registration_scopes", DEFAULT_REGISTRATION_SCOPES),
            managed=managed,
        )


@dataclass
class ProfileDescriptor:
    """Role 자격증명이 기록된 프로파일

    config 파일의 [profile name] 과 credentials 파일의 [name] 두 곳에 기록됩니다.

    Attributes:
        profile_name: 프로파일 이름
        account_id: AWS 계정 ID
        role_name: 역할 이름
        region: 기본 리전
        output_format: 출력 형식 (json, text, table ...)
        sso_session: 자격증명을 발급한 SSO 세션 이름
        is_default: [default] 프로파일과 같은 자격증명인지 여부
        expires_at: 자격증명 만료 시간 (UTC)
        managed: 관리 영역에 있는지 여부
    """

    profile_name: str
    account_id: str | None = None
    role_name: str | None = None
    region: str | None = None
    output_format: str | None = None
    sso_session: str | None = None
    is_default: bool = False
    expires_at: datetime | None = None
    managed: bool = True

    def to_config_items(self) -> list[tuple[str, str]]:
        """config 파일 key-value 목록"""
        items: list[tuple[str, str]] = []
        if self.sso_session:
            items.append(("sso_session", self.sso_session))
        if self.account_id:
            items.append(("sso_account_id", self.account_id))
        if self.role_name:
            items.append(("sso_role_name", self.role_name))
        if self.region:
            items.append(("region", self.region))
        if self.output_format:
            items.append(("output", self.output_format))
        return items


# =============================================================================
# SSO 포털 / OIDC 응답 타입
# =============================================================================


@dataclass
class AccountInfo:
    """SSO로 접근 가능한 AWS 계정

    Attributes:
        id: AWS 계정 ID (12자리)
        name: 계정 이름
        email: 계정 이메일 (옵션)
        roles: 사용 가능한 역할 목록
    """

    id: str
    name: str
    email: str | None = None
    roles: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.id or len(self.id) != 12 or not self.id.isdigit():
            logger.warning("유효하지 않은 AWS 계정 ID: '%s' (12자리 숫자여야 함)", self.id)
        if not self.name:
            self.name = f"account-{self.id}"


@dataclass
class RoleCredentials:
    """계정+역할 단위 임시 자격증명

    Attributes:
        access_key_id: 액세스 키 ID
        secret_access_key: 시크릿 액세스 키
        session_token: 세션 토큰
        expires_at: 만료 시간 (UTC, tz-aware)
    """

    access_key_id: str
    secret_access_key: str
    session_token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """만료 전인지 확인 (expires_at == now 는 무효)"""
        return self.expires_at > now


@dataclass
class ClientRegistration:
    """OIDC RegisterClient 결과"""

    client_id: str
    client_secret: str
    expires_at: datetime | None = None


@dataclass
class DeviceAuthorization:
    """OIDC StartDeviceAuthorization 결과

    Attributes:
        device_code: 토큰 요청에 사용할 디바이스 코드
        user_code: 사용자가 브라우저에 입력할 코드
        verification_uri: 인증 페이지 URL
        verification_uri_complete: 코드가 포함된 인증 URL (옵션)
        interval: 서버가 지정한 폴링 간격 (초)
        expires_at: 디바이스 코드 절대 만료 시간 (UTC)
    """

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: str | None
    interval: int
    expires_at: datetime


@dataclass
class TokenResponse:
    """OIDC CreateToken 성공 응답"""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"


# =============================================================================
# Identity Provider Interface (Abstract Base Class)
# =============================================================================


class IdentityProviderClient(ABC):
    """SSO OIDC 및 SSO 포털 호출 인터페이스

    디바이스 인증 플로우와 자격증명 조회는 이 인터페이스에만 의존하므로
    단위 테스트에서는 스크립트된 가짜 구현으로 대체할 수 있습니다.

    create_token 은 아직 승인되지 않은 경우 AuthPending,
    폴링이 너무 빠르면 AuthSlowDown 을 발생시켜야 합니다.
    """

    @abstractmethod
    async def register_client(
        self, client_name: str, client_type: str, scopes: list[str]
    ) -> ClientRegistration:
        """OIDC 클라이언트를 등록합니다."""

    @abstractmethod
    async def start_device_authorization(
        self, registration: ClientRegistration, start_url: str
    ) -> DeviceAuthorization:
        """디바이스 인증을 시작합니다."""

    @abstractmethod
    async def create_token(
        self, registration: ClientRegistration, device_code: str
    ) -> TokenResponse:
        """디바이스 코드로 토큰을 요청합니다.

        Raises:
            AuthPending: 사용자가 아직 승인하지 않음
            AuthSlowDown: 폴링 간격을 늘려야 함
            AuthExpired: 디바이스 코드 만료
            AuthDenied: 사용자가 거부함
            ProviderError: 그 외 오류
        """

    @abstractmethod
    async def list_accounts(self, access_token: str) -> list[AccountInfo]:
        """접근 가능한 계정 목록을 반환합니다."""

    @abstractmethod
    async def list_account_roles(self, access_token: str, account_id: str) -> list[str]:
        """계정에서 사용 가능한 역할 이름 목록을 반환합니다."""

    @abstractmethod
    async def get_role_credentials(
        self, access_token: str, account_id: str, role_name: str
    ) -> RoleCredentials:
        """계정+역할의 임시 자격증명을 발급받습니다.

        Raises:
            CredentialsExpired: 액세스 토큰이 만료/무효
            ProviderError: 그 외 오류
        """


# =============================================================================
# Error Classes
# =============================================================================


class AuthError(AwssoError):
    """인증 관련 기본 에러 클래스

    모든 인증 에러의 부모 클래스입니다.
    원인 예외(cause)를 체이닝하여 디버깅을 용이하게 합니다.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message, cause)


class ConfigIoError(AuthError):
    """설정/캐시 파일을 읽거나 쓸 수 없을 때 발생하는 에러 (치명적)

    Attributes:
        path: 문제가 된 파일 경로
    """

    def __init__(self, path: object, operation: str, cause: Exception | None = None):
        message = f"파일 {operation} 실패: {path}"
        super().__init__(message, cause)
        self.path = str(path)
        self.operation = operation
        self.details["path"] = self.path


class ConfigurationError(AuthError):
    """설정 오류가 발생했을 때 발생하는 에러

    필수 설정값 누락, 잘못된 섹션 종류 등의 경우 발생합니다.

    Attributes:
        config_key: 문제가 된 설정 키 이름 (옵션)
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.config_key = config_key


class CollisionError(ConfigurationError):
    """관리 영역에 쓰려는 섹션이 사용자 영역에 이미 있을 때 발생하는 에러

    자동으로 덮어쓰지 않으며, import 명령으로 관리 영역에 옮기는 것이 해결책입니다.

    Attributes:
        kind: 섹션 종류
        name: 섹션 이름
        remedy: 해결 방법 (실행할 명령)
    """

    def __init__(self, kind: SectionKind | str, name: str, managed: bool = False):
        kind = SectionKind(kind)
        command = "session" if kind is SectionKind.SSO_SESSION else "profile"
        if managed:
            message = f"{kind} '{name}'은(는) 이미 awsso가 관리하고 있습니다"
            remedy = f"awsso {command} list 로 확인하세요"
        else:
            message = f"{kind} '{name}'이(가) 사용자 관리 영역에 이미 존재합니다"
            remedy = f"다른 이름을 사용하거나 'awsso {command} import {name}' 으로 관리 영역에 옮기세요"
        super().__init__(f"{message}. {remedy}", config_key=name)
        self.kind = kind
        self.name = name
        self.remedy = remedy


class SectionNotFoundError(ConfigurationError):
    """섹션을 찾을 수 없을 때 발생하는 에러"""

    def __init__(self, kind: SectionKind | str, name: str, where: str = "설정 파일"):
        kind = SectionKind(kind)
        super().__init__(f"{where}에서 {kind} '{name}'을(를) 찾을 수 없습니다", config_key=name)
        self.kind = kind
        self.name = name


class ResolutionError(AuthError):
    """사용할 SSO 세션을 결정할 수 없을 때의 기본 에러"""


class ResolutionNotFound(ResolutionError):
    """지정한 세션이 없거나 설정된 세션이 하나도 없을 때 발생하는 에러

    Attributes:
        name: 찾으려던 세션 이름 (None이면 설정된 세션 없음)
        available: 설정된 세션 이름 목록
    """

    def __init__(self, name: str | None, available: list[str]):
        if name is None:
            message = (
                "설정된 SSO 세션이 없습니다. "
                "'awsso session add' 로 추가하거나 --start-url 과 --region 을 지정하세요"
            )
        else:
            listed = ", ".join(available) if available else "(없음)"
            message = f"SSO 세션 '{name}'을(를) 찾을 수 없습니다. 사용 가능: [{listed}]"
        super().__init__(message)
        self.name = name
        self.available = list(available)
        self.details["available"] = self.available


class ResolutionAmbiguous(ResolutionError):
    """후보 세션이 여러 개라 결정할 수 없을 때 발생하는 에러

    Attributes:
        candidates: 후보 세션 이름 목록
        examples: 세션별 실행 예시 명령
    """

    def __init__(self, candidates: list[str], examples: list[str] | None = None):
        self.candidates = list(candidates)
        self.examples = examples or [f"awsso login --session-name {name}" for name in self.candidates]
        lines = ["SSO 세션이 여러 개 설정되어 있습니다. --session-name 으로 하나를 지정하세요:", ""]
        lines.extend(f"  - {name}" for name in self.candidates)
        lines.extend(["", "예시:"])
        lines.extend(f"  {example}" for example in self.examples)
        super().__init__("\n".join(lines))
        self.details["candidates"] = self.candidates


class AuthPending(AuthError):
    """사용자가 아직 브라우저에서 승인하지 않음 (내부 재시도 신호)"""

    def __init__(self, message: str = "사용자 승인 대기 중"):
        super().__init__(message)


class AuthSlowDown(AuthError):
    """폴링 간격을 늘려야 함 (내부 재시도 신호)"""

    def __init__(self, message: str = "폴링 간격 증가 요청"):
        super().__init__(message)


class AuthExpired(AuthError):
    """디바이스 코드가 만료되었을 때 발생하는 에러 (종료 상태)"""

    def __init__(self, message: str = "디바이스 인증 시간이 초과되었습니다", cause: Exception | None = None):
        super().__init__(f"{message}. 'awsso login' 으로 다시 인증하세요", cause)


class AuthDenied(AuthError):
    """사용자가 인증을 거부했을 때 발생하는 에러 (종료 상태)"""

    def __init__(self, message: str = "인증이 거부되었습니다", cause: Exception | None = None):
        super().__init__(f"{message}. 'awsso login' 으로 다시 인증하세요", cause)


class AuthCancelled(AuthError):
    """사용자가 인증 대기를 취소했을 때 발생하는 에러 (종료 상태)"""

    def __init__(self, message: str = "인증이 취소되었습니다"):
        super().__init__(f"{message}. 다시 시도하려면 'awsso login' 을 실행하세요")


class ProviderError(AuthError):
    """Provider에서 발생하는 에러

    에러 메시지 형식: "[provider] operation: message"

    Attributes:
        provider: 에러가 발생한 Provider 이름
        operation: 실패한 작업 이름 (예: "create_token", "get_role_credentials")
        error_code: 원본 에러 코드 (옵션)
    """

    def __init__(
        self,
        provider: str,
        operation: str,
        message: str,
        error_code: str | None = None,
        cause: Exception | None = None,
    ):
        full_message = f"[{provider}] {operation}: {message}"
        super().__init__(full_message, cause)
        self.provider = provider
        self.operation = operation
        self.error_code = error_code


class CacheCorrupt(AuthError):
    """캐시 파일이 손상되었을 때의 에러

    외부로 전파되지 않으며 캐시 미스로 처리되고 로그만 남깁니다.
    """

    def __init__(self, path: object, cause: Exception | None = None):
        super().__init__(f"손상된 캐시 파일: {path}", cause)
        self.path = str(path)


class CredentialsExpired(AuthError):
    """SSO 토큰이 만료되어 자격증명을 발급받을 수 없을 때 발생하는 에러

    Attributes:
        session_name: 재인증이 필요한 세션 이름
    """

    def __init__(self, session_name: str | None = None, cause: Exception | None = None):
        if session_name:
            remedy = f"'awsso login --session-name {session_name}' 으로 다시 인증하세요"
        else:
            remedy = "'awsso login' 으로 다시 인증하세요"
        super().__init__(f"SSO 토큰이 만료되었거나 유효하지 않습니다. {remedy}", cause)
        self.session_name = session_name
