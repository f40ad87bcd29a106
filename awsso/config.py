"""
awsso/config.py - 중앙 설정 관리

애플리케이션 전체에서 사용되는 상수와 환경변수 기반 설정을 관리합니다.

포함 항목:
    - Settings: 불변 설정 데이터클래스 (settings 싱글톤)
    - LogConfig: 로깅 설정 (환경변수 LOG_LEVEL, LOG_FORMAT)
    - get_env_bool / get_env_int: 환경변수 변환 헬퍼
    - get_aws_dir / get_config_path / get_credentials_path: AWS CLI 호환 경로

Usage:
    from awsso.config import settings, get_config_path

    path = get_config_path()  # ~/.aws/config (AWS_CONFIG_FILE로 변경 가능)
    margin = settings.EXPIRING_SOON_SECONDS
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

# =============================================================================
# 불변 설정
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """애플리케이션 기본 설정값

    frozen 데이터클래스이므로 런타임에 변경할 수 없습니다.
    """

    # SSO OIDC 클라이언트 등록
    CLIENT_NAME: str = "awsso"
    CLIENT_TYPE: str = "public"
    DEFAULT_REGISTRATION_SCOPES: str = "sso:account:access"

    # 디바이스 인증 폴링 (초)
    DEFAULT_POLL_INTERVAL_SECONDS: int = 5
    SLOW_DOWN_INCREMENT_SECONDS: int = 5

    # 만료 임박 판단 기준 (초) - 캐시가 아니라 호출측 상태 분류에만 사용
    EXPIRING_SOON_SECONDS: int = 300

    # 설정 파일 관리 영역
    MANAGED_MARKER: str = "# ==================== Managed by awsso ===================="
    BACKUP_SUFFIX: str = "-before-awsso.bak"
    STATE_FILENAME: str = ".awsso-initialized"

    # 캐시 파일 위치 (AWS CLI 호환)
    SSO_CACHE_SUBDIR: tuple[str, ...] = ("sso", "cache")
    CLI_CACHE_SUBDIR: tuple[str, ...] = ("cli", "cache")

    # 출력 형식
    VALID_OUTPUT_FORMATS: tuple[str, ...] = ("json", "yaml", "yaml-stream", "text", "table")


settings = Settings()


# =============================================================================
# 환경변수 헬퍼
# =============================================================================


def get_env_bool(name: str, default: bool = False) -> bool:
    """환경변수를 bool로 변환

    "1", "true", "yes", "on" (대소문자 무시)을 True로 취급합니다.
    """
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_env_int(name: str, default: int = 0) -> int:
    """환경변수를 int로 변환 (변환 실패 시 기본값)"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# =============================================================================
# 로깅 설정
# =============================================================================


@dataclass
class LogConfig:
    """로깅 설정

    Attributes:
        level: 로그 레벨 이름 (DEBUG, INFO, WARNING ...)
        format: logging.Formatter 포맷 문자열
        date_format: 날짜 포맷
    """

    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: tuple[str, ...] = field(
        default=(
            "botocore",
            "boto3",
            "urllib3",
        )
    )

    @classmethod
    def from_env(cls) -> LogConfig:
        """환경변수(LOG_LEVEL, LOG_FORMAT)에서 로드"""
        default = cls()
        return cls(
            level=os.environ.get("LOG_LEVEL", default.level).upper(),
            format=os.environ.get("LOG_FORMAT", default.format),
        )


# =============================================================================
# 경로
# =============================================================================


def get_aws_dir() -> Path:
    """AWS 설정 디렉토리 (~/.aws)"""
    return Path.home() / ".aws"


def get_config_path() -> Path:
    """AWS config 파일 경로

    AWS CLI와 동일하게 AWS_CONFIG_FILE 환경변수를 우선합니다.
    """
    env_path = os.environ.get("AWS_CONFIG_FILE")
    if env_path:
        return Path(env_path).expanduser()
    return get_aws_dir() / "config"


def get_credentials_path() -> Path:
    """AWS credentials 파일 경로 (AWS_SHARED_CREDENTIALS_FILE 우선)"""
    env_path = os.environ.get("AWS_SHARED_CREDENTIALS_FILE")
    if env_path:
        return Path(env_path).expanduser()
    return get_aws_dir() / "credentials"


def get_sso_cache_dir() -> Path:
    """SSO 토큰 캐시 디렉토리 (~/.aws/sso/cache)"""
    return get_aws_dir().joinpath(*settings.SSO_CACHE_SUBDIR)


def get_cli_cache_dir() -> Path:
    """Role 자격증명 캐시 디렉토리 (~/.aws/cli/cache)"""
    return get_aws_dir().joinpath(*settings.CLI_CACHE_SUBDIR)


def get_version() -> str:
    """패키지 버전 문자열"""
    from awsso import __version__

    return __version__
