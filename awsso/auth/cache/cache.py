# awsso/auth/cache/cache.py
"""
AWS 인증 캐시 관리 구현

- CachedToken: SSO 토큰 데이터 구조
- TokenCacheManager: 토큰 캐시 파일 관리 (~/.aws/sso/cache)
- RoleCredentialsCache: Role 자격증명 캐시 파일 관리 (~/.aws/cli/cache)

설계 원칙:
- 두 캐시 모두 AWS CLI와 같은 위치/형식 사용
- 토큰과 Role 자격증명은 서로 독립적인 수명을 가짐
- 손상된 캐시 파일은 캐시 미스로 처리하고 로그만 남김
- 캐시는 만료 여유 시간(margin)을 두지 않음 (expires_at > now 이면 유효)
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...config import get_cli_cache_dir, get_sso_cache_dir
from ...utils.fileio import atomic_write_text
from ..types import CacheCorrupt, ConfigIoError, RoleCredentials

logger = logging.getLogger(__name__)

CACHE_FILE_MODE = 0o600
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


# =============================================================================
# 시간 변환
# =============================================================================


def format_timestamp(value: datetime) -> str:
    """UTC "%Y-%m-%dT%H:%M:%SZ" 형식 문자열로 변환"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """캐시 파일의 시간 문자열을 tz-aware UTC datetime으로 변환

    AWS CLI는 "Z" 접미사 형식과 "+00:00" 오프셋 형식을 모두 사용합니다.

    Raises:
        ValueError: 형식이 잘못된 경우
    """
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        pass

    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    """캐시 JSON 로드

    Returns:
        파싱된 딕셔너리 또는 None (파일 없음)

    Raises:
        CacheCorrupt: JSON 파싱 실패 또는 객체가 아닌 경우
        ConfigIoError: 파일을 읽을 수 없는 경우
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CacheCorrupt(path, e) from e
    except OSError as e:
        raise ConfigIoError(path, "읽기", e) from e

    if not isinstance(data, dict):
        raise CacheCorrupt(path, ValueError("JSON 객체가 아님"))
    return data


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    try:
        atomic_write_text(path, json.dumps(data, indent=2) + "\n", mode=CACHE_FILE_MODE)
    except OSError as e:
        raise ConfigIoError(path, "쓰기", e) from e


def _unlink(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ConfigIoError(path, "삭제", e) from e
    return True


# =============================================================================
# Token Cache
# =============================================================================


@dataclass
class CachedToken:
    """SSO 토큰 캐시 데이터 구조

    AWS CLI와 호환되는 형식으로 저장됩니다.
    ~/.aws/sso/cache/{sha1(start_url)}.json

    Attributes:
        start_url: SSO 시작 URL
        region: SSO 리전
        access_token: SSO 액세스 토큰
        expires_at: 만료 시간 (UTC)
    """

    start_url: str
    region: str
    access_token: str
    expires_at: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """토큰이 아직 유효한지 확인

        Args:
            now: 기준 시간 (None이면 현재 UTC)

        Returns:
            expires_at > now 이면 True (같으면 만료)
        """
        now = now or datetime.now(timezone.utc)
        return self.expires_at > now

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환 (JSON 저장용)"""
        return {
            "accessToken": self.access_token,
            "expiresAt": format_timestamp(self.expires_at),
            "region": self.region,
            "startUrl": self.start_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedToken":
        """딕셔너리에서 생성 (JSON 로드용)

        Raises:
            KeyError: 필수 필드 누락
            ValueError: 만료 시간 형식 오류
        """
        return cls(
            start_url=data["startUrl"],
            region=data.get("region", ""),
            access_token=data["accessToken"],
            expires_at=parse_timestamp(data["expiresAt"]),
        )


class TokenCacheManager:
    """SSO 토큰 캐시 파일 관리자

    AWS CLI와 호환되는 방식으로 토큰을 저장/로드합니다.
    캐시 파일 위치: ~/.aws/sso/cache/{sha1(start_url)}.json
    """

    def __init__(self, cache_dir: Optional[Path] = None):
        """TokenCacheManager 초기화

        Args:
            cache_dir: 캐시 디렉토리 (기본: ~/.aws/sso/cache)
        """
        self.cache_dir = Path(cache_dir) if cache_dir else get_sso_cache_dir()

    @staticmethod
    def cache_key(start_url: str) -> str:
        """캐시 파일명에 사용할 해시 키 생성

        시작 URL 문자열을 정규화 없이 그대로 해시합니다.
        (끝의 '/' 유무가 다르면 다른 키)
        """
        return hashlib.sha1(start_url.encode("utf-8")).hexdigest()

    def cache_path(self, start_url: str) -> Path:
        """캐시 파일 전체 경로"""
        return self.cache_dir / f"{self.cache_key(start_url)}.json"

    def load(self, start_url: str) -> Optional[CachedToken]:
        """토큰 캐시를 파일에서 로드

        Returns:
            CachedToken 객체 또는 None (파일이 없거나 손상된 경우)
        """
        path = self.cache_path(start_url)
        try:
            data = _read_json(path)
            if data is None:
                return None
            return CachedToken.from_dict(data)
        except CacheCorrupt as e:
            logger.warning("%s", e)
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s", CacheCorrupt(path, e))
            return None

    def save(self, token: CachedToken) -> Path:
        """토큰 캐시를 파일에 즉시 저장

        Raises:
            ConfigIoError: 파일 저장 실패 시
        """
        path = self.cache_path(token.start_url)
        _write_json(path, token.to_dict())
        logger.debug("SSO 토큰 캐시 저장: %s", path)
        return path

    def delete(self, start_url: str) -> bool:
        """캐시 파일 삭제

        Returns:
            True if 파일이 있어서 삭제됨
        """
        return _unlink(self.cache_path(start_url))

    def exists(self, start_url: str) -> bool:
        """캐시 파일 존재 여부"""
        return self.cache_path(start_url).exists()

    def list_tokens(self) -> List[CachedToken]:
        """캐시 디렉토리의 모든 토큰 (만료된 토큰 포함)

        같은 디렉토리에 AWS CLI가 저장하는 클라이언트 등록 파일 등은 건너뜁니다.
        """
        tokens: List[CachedToken] = []
        if not self.cache_dir.is_dir():
            return tokens

        for path in sorted(self.cache_dir.glob("*.json")):
            try:
                data = _read_json(path)
            except CacheCorrupt as e:
                logger.debug("%s", e)
                continue
            if not data or "accessToken" not in data or "startUrl" not in data:
                continue
            try:
                tokens.append(CachedToken.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("%s", CacheCorrupt(path, e))
        return tokens


# =============================================================================
# Role Credentials Cache
# =============================================================================


class RoleCredentialsCache:
    """Role 자격증명 캐시 파일 관리자

    AWS CLI 자격증명 캐시 형식으로 저장합니다.
    캐시 파일 위치: ~/.aws/cli/cache/{sha1("start_url:account_id:role_name")}.json

    읽을 때는 평탄한 snake_case 형식
    (access_key_id, secret_access_key, session_token, expiration)도 허용합니다.
    """

    KEY_SEPARATOR = ":"
    PROVIDER_TYPE = "sso"

    def __init__(self, cache_dir: Optional[Path] = None):
        self.cache_dir = Path(cache_dir) if cache_dir else get_cli_cache_dir()

    @classmethod
    def cache_key(cls, start_url: str, account_id: str, role_name: str) -> str:
        """캐시 파일명에 사용할 해시 키 생성"""
        raw = cls.KEY_SEPARATOR.join([start_url, account_id, role_name])
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()

    def cache_path(self, start_url: str, account_id: str, role_name: str) -> Path:
        return self.cache_dir / f"{self.cache_key(start_url, account_id, role_name)}.json"

    @staticmethod
    def _to_dict(credentials: RoleCredentials) -> Dict[str, Any]:
        return {
            "ProviderType": RoleCredentialsCache.PROVIDER_TYPE,
            "Credentials": {
                "AccessKeyId": credentials.access_key_id,
                "SecretAccessKey": credentials.secret_access_key,
                "SessionToken": credentials.session_token,
                "Expiration": format_timestamp(credentials.expires_at),
            },
        }

    @staticmethod
    def _from_dict(data: Dict[str, Any]) -> RoleCredentials:
        """AWS CLI 형식 또는 평탄한 형식에서 생성

        Raises:
            KeyError / ValueError: 필수 필드 누락 또는 형식 오류
        """
        if "Credentials" in data:
            creds = data["Credentials"]
            return RoleCredentials(
                access_key_id=creds["AccessKeyId"],
                secret_access_key=creds["SecretAccessKey"],
                session_token=creds["SessionToken"],
                expires_at=parse_timestamp(creds["Expiration"]),
            )
        return RoleCredentials(
            access_key_id=data["access_key_id"],
            secret_access_key=data["secret_access_key"],
            session_token=data["session_token"],
            expires_at=parse_timestamp(data["expiration"]),
        )

    def load(self, start_url: str, account_id: str, role_name: str) -> Optional[RoleCredentials]:
        """캐시된 자격증명 로드 (만료 여부와 무관, 손상 시 None)"""
        path = self.cache_path(start_url, account_id, role_name)
        try:
            data = _read_json(path)
            if data is None:
                return None
            return self._from_dict(data)
        except CacheCorrupt as e:
            logger.warning("%s", e)
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s", CacheCorrupt(path, e))
            return None

    def save(
        self,
        start_url: str,
        account_id: str,
        role_name: str,
        credentials: RoleCredentials,
    ) -> Path:
        """자격증명을 캐시에 저장

        Raises:
            ConfigIoError: 파일 저장 실패 시
        """
        path = self.cache_path(start_url, account_id, role_name)
        _write_json(path, self._to_dict(credentials))
        logger.debug("Role 자격증명 캐시 저장: %s (%s/%s)", path, account_id, role_name)
        return path

    def delete(self, start_url: str, account_id: str, role_name: str) -> bool:
        return _unlink(self.cache_path(start_url, account_id, role_name))

    def clear(self) -> int:
        """SSO로 발급된 자격증명 캐시 파일 모두 삭제

        AWS CLI의 assume-role 캐시 등 다른 형식의 파일은 남겨둡니다.

        Returns:
            삭제한 파일 수
        """
        if not self.cache_dir.is_dir():
            return 0

        removed = 0
        for path in self.cache_dir.glob("*.json"):
            try:
                data = _read_json(path)
            except CacheCorrupt:
                continue
            if not data:
                continue
            is_sso = data.get("ProviderType") == self.PROVIDER_TYPE
            is_flat = "access_key_id" in data and "Credentials" not in data
            if (is_sso or is_flat) and _unlink(path):
                removed += 1

        logger.debug("Role 자격증명 캐시 %d개 삭제", removed)
        return removed
