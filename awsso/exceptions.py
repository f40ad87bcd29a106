"""
awsso/exceptions.py - 통합 예외 계층 구조

애플리케이션 전체에서 사용되는 베이스 예외 클래스를 정의합니다.
인증/설정/캐시 관련 세부 예외는 awsso.auth.types 에서 이 클래스를 상속합니다.

예외 계층 구조:
    AwssoError (베이스)
    └── AuthError (인증 관련) - awsso.auth.types
        ├── ConfigIoError          (설정 파일 읽기/쓰기 실패)
        ├── ConfigurationError     (설정값 오류)
        │   ├── CollisionError     (사용자 영역/관리 영역 이름 충돌)
        │   └── SectionNotFoundError
        ├── ResolutionError
        │   ├── ResolutionNotFound
        │   └── ResolutionAmbiguous
        ├── AuthPending / AuthSlowDown (내부 재시도 신호)
        ├── AuthExpired / AuthDenied / AuthCancelled
        ├── ProviderError
        ├── CacheCorrupt
        └── CredentialsExpired

Usage:
    from awsso.auth.types import CollisionError

    try:
        store.add_session(session)
    except CollisionError as e:
        print(e.remedy)
"""

from typing import Any, Dict, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class AwssoError(Exception):
    """awsso 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================


def get_error_code(error: Exception) -> Optional[str]:
    """botocore ClientError 형식의 예외에서 에러 코드를 추출

    Args:
        error: 확인할 예외

    Returns:
        에러 코드 또는 None
    """
    if hasattr(error, "response"):
        return error.response.get("Error", {}).get("Code")
    return None


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    return get_error_code(error) in (
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedAccess",
    )
