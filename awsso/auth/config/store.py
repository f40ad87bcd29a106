# awsso/auth/config/store.py
"""
SSO 세션 / 프로파일 저장소

~/.aws/config 의 [sso-session] / [profile] 섹션과
~/.aws/credentials 의 [name] 섹션을 관리 영역을 통해 읽고 씁니다.

- 모든 변경은 load -> 수정 -> 원자적 재작성 순서 (프로세스 간 잠금 없음, 마지막 쓰기 우선)
- 모든 변경 전에 최초 실행 marker 를 메모리에 도입하고, 변경과 함께 저장 (검사 실패 시 디스크 변경 없음)
- 두 파일에 걸친 변경(프로파일 쓰기/이름 변경)은 하나의 트랜잭션으로 저장하며,
  두 번째 파일 저장이 실패하면 첫 번째 파일을 원래 내용으로 되돌림
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

from ...config import get_config_path, get_credentials_path
from ...utils.fileio import atomic_write_text, read_text
from ..cache.cache import parse_timestamp
from ..types import (
    CollisionError,
    ConfigIoError,
    ConfigurationError,
    ProfileDescriptor,
    RoleCredentials,
    SectionKind,
    SectionNotFoundError,
    SessionDescriptor,
)
from .document import ConfigDocument, SectionBlock
from .managed import ManagedRegionOrganizer
from .migration import FirstRunMigration

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"

# credentials 파일 메타데이터 주석
META_ACCOUNT = "# Account:"
META_ROLE = "# Role:"
META_VALID = "# Valid:"


def default_profile_name(account_name: str, role_name: str) -> str:
    """계정 이름과 역할 이름으로 기본 프로파일 이름 생성

    Example:
        >>> default_profile_name("Prod Account", "Admin_Role")
        'prod-account_admin-role'
    """

    def _slug(value: str) -> str:
        return re.sub(r"[\s_]+", "-", value.strip()).lower()

    return f"{_slug(account_name)}_{_slug(role_name)}"


def build_metadata(account_id: str | None, role_name: str | None, expires_at: datetime) -> list[str]:
    """credentials 섹션에 붙일 메타데이터 주석"""
    comments = []
    if account_id:
        comments.append(f"{META_ACCOUNT} {account_id}")
    if role_name:
        comments.append(f"{META_ROLE} {role_name}")
    comments.append(f"{META_VALID} {expires_at.isoformat()}")
    return comments


def parse_metadata(comments: list[str]) -> dict[str, str]:
    """메타데이터 주석을 {"Account": ..., "Role": ..., "Valid": ...} 로 파싱"""
    result: dict[str, str] = {}
    for comment in comments:
        for prefix in (META_ACCOUNT, META_ROLE, META_VALID):
            if comment.startswith(prefix):
                result[prefix[2:-1]] = comment[len(prefix) :].strip()
    return result


class SessionStore:
    """SSO 세션 및 프로파일 저장소

    Attributes:
        config_path: ~/.aws/config 경로
        credentials_path: ~/.aws/credentials 경로
        migration: 최초 실행 마이그레이션
    """

    def __init__(
        self,
        config_path: Path | None = None,
        credentials_path: Path | None = None,
        state_path: Path | None = None,
    ):
        self.config_path = Path(config_path) if config_path else get_config_path()
        self.credentials_path = Path(credentials_path) if credentials_path else get_credentials_path()
        self.migration = FirstRunMigration(state_path)

    # =========================================================================
    # 문서 로드 / 저장
    # =========================================================================

    def load_config(self) -> ConfigDocument:
        return ConfigDocument.load(self.config_path)

    def load_credentials(self) -> ConfigDocument:
        return ConfigDocument.load(self.credentials_path, bare_profiles=True)

    def _begin(self) -> tuple[ConfigDocument, ConfigDocument]:
        """변경 시작: 두 문서를 로드하고 최초 실행 marker 를 메모리에 도입

        디스크에는 _commit 에서만 기록하므로, 검사 단계에서 예외가 나면 파일은 그대로입니다.
        """
        config_doc = self.load_config()
        credentials_doc = self.load_credentials()
        self.migration.prepare(config_doc, credentials_doc)
        return config_doc, credentials_doc

    def _commit(self, *documents: ConfigDocument) -> None:
        """변경된 문서를 순서대로 저장 (실패 시 앞서 저장한 파일 복원)

        Raises:
            ConfigIoError: 저장 실패 시 (복원 후 다시 발생)
        """
        written: list[tuple[Path, str | None]] = []
        for document in documents:
            if not document.dirty or document.path is None:
                continue
            try:
                previous = read_text(document.path)
            except (OSError, UnicodeDecodeError) as e:
                self._rollback(written)
                raise ConfigIoError(document.path, "읽기", e) from e
            try:
                document.save()
            except ConfigIoError:
                self._rollback(written)
                raise
            written.append((document.path, previous))

        if not self.migration.completed:
            self.migration.mark_completed()

    @staticmethod
    def _rollback(written: list[tuple[Path, str | None]]) -> None:
        for path, previous in reversed(written):
            try:
                if previous is None:
                    path.unlink(missing_ok=True)
                else:
                    atomic_write_text(path, previous)
                logger.warning("저장 실패로 파일 복원: %s", path)
            except OSError as e:
                logger.error("파일 복원 실패: %s (%s)", path, e)

    # =========================================================================
    # SSO 세션
    # =========================================================================

    @staticmethod
    def _session_from_block(block: SectionBlock) -> SessionDescriptor:
        return SessionDescriptor.from_items(block.name, block.items, managed=block.managed)

    def list_sessions(self) -> list[SessionDescriptor]:
        """설정된 모든 SSO 세션 (이름순)

        사용자 영역의 세션도 포함되며 managed=False 로 표시됩니다.
        필수 키가 없는 세션은 경고 후 제외합니다.
        """
        sessions = []
        for block in self.load_config().sections(kind=SectionKind.SSO_SESSION):
            try:
                sessions.append(self._session_from_block(block))
            except ConfigurationError as e:
                logger.warning("불완전한 SSO 세션 건너뜀: %s", e)
        return sorted(sessions, key=lambda s: s.name or "")

    def session_names(self) -> list[str]:
        return [session.name for session in self.list_sessions() if session.name]

    def get_session(self, name: str) -> SessionDescriptor | None:
        """이름으로 SSO 세션 조회

        Raises:
            ConfigurationError: 세션은 있지만 필수 키가 없는 경우
        """
        block = self.load_config().find(SectionKind.SSO_SESSION, name)
        if block is None:
            return None
        return self._session_from_block(block)

    def add_session(self, session: SessionDescriptor) -> SessionDescriptor:
        """새 SSO 세션 추가

        Raises:
            CollisionError: 같은 이름이 사용자 영역 또는 관리 영역에 이미 있는 경우
        """
        if not session.name:
            raise ConfigurationError("SSO 세션 이름이 필요합니다", config_key="name")

        config_doc, credentials_doc = self._begin()
        if config_doc.find(SectionKind.SSO_SESSION, session.name, managed=True) is not None:
            raise CollisionError(SectionKind.SSO_SESSION, session.name, managed=True)

        ManagedRegionOrganizer(config_doc).upsert_managed(SectionKind.SSO_SESSION, session.name, session.to_items())
        self._commit(config_doc, credentials_doc)
        logger.info("SSO 세션 추가: %s", session.name)
        return self._session_from_block(config_doc.find(SectionKind.SSO_SESSION, session.name, managed=True))

    def edit_session(
        self,
        name: str,
        start_url: str | None = None,
        region: str | None = None,
        registration_scopes: str | None = None,
    ) -> SessionDescriptor:
        """관리 영역의 SSO 세션 수정

        start_url 이 바뀌면 기존 토큰 캐시 파일은 그대로 남지만 키가 달라져 더 이상 사용되지 않습니다.

        Raises:
            SectionNotFoundError: 세션이 없는 경우
            CollisionError: 사용자 영역에만 있는 경우 (먼저 import 필요)
        """
        config_doc, credentials_doc = self._begin()
        block = config_doc.find(SectionKind.SSO_SESSION, name)
        if block is None:
            raise SectionNotFoundError(SectionKind.SSO_SESSION, name)
        if not block.managed:
            raise CollisionError(SectionKind.SSO_SESSION, name)

        values = dict(block.items)
        updates = {
            "sso_start_url": start_url,
            "sso_region": region,
            "sso_registration_scopes": registration_scopes,
        }
        for key, value in updates.items():
            if value is not None:
                values[key] = value

        session = SessionDescriptor.from_items(name, list(values.items()))
        if start_url is not None and start_url != dict(block.items).get("sso_start_url"):
            logger.info("SSO 세션 '%s'의 시작 URL 변경: 이전 토큰 캐시는 더 이상 사용되지 않습니다", name)

        ManagedRegionOrganizer(config_doc).upsert_managed(SectionKind.SSO_SESSION, name, list(values.items()))
        self._commit(config_doc, credentials_doc)
        return session

    def delete_session(self, name: str) -> bool:
        """관리 영역의 SSO 세션 삭제

        Returns:
            삭제했으면 True

        Raises:
            CollisionError: 사용자 영역에만 있는 경우 (사용자 영역은 수정하지 않음)
        """
        config_doc, credentials_doc = self._begin()
        removed = ManagedRegionOrganizer(config_doc).remove(SectionKind.SSO_SESSION, name)
        if not removed:
            if config_doc.find(SectionKind.SSO_SESSION, name, managed=False) is not None:
                raise CollisionError(SectionKind.SSO_SESSION, name)
            return False

        self._commit(config_doc, credentials_doc)
        logger.info("SSO 세션 삭제: %s", name)
        return True

    def import_session(self, name: str) -> SessionDescriptor:
        """사용자 영역의 SSO 세션을 관리 영역으로 이동

        Raises:
            SectionNotFoundError / CollisionError
        """
        config_doc, credentials_doc = self._begin()
        ManagedRegionOrganizer(config_doc).import_section(SectionKind.SSO_SESSION, name)
        self._commit(config_doc, credentials_doc)
        block = config_doc.find(SectionKind.SSO_SESSION, name, managed=True)
        return self._session_from_block(block)

    # =========================================================================
    # 프로파일
    # =========================================================================

    @staticmethod
    def _default_access_key(credentials_doc: ConfigDocument) -> str | None:
        block = credentials_doc.find(SectionKind.PROFILE, DEFAULT_PROFILE)
        if block is None:
            return None
        return dict(block.items).get("aws_access_key_id")

    def _build_profile(
        self,
        name: str,
        config_doc: ConfigDocument,
        credentials_doc: ConfigDocument,
        default_key: str | None,
    ) -> ProfileDescriptor | None:
        config_block = config_doc.find(SectionKind.PROFILE, name)
        credentials_block = credentials_doc.find(SectionKind.PROFILE, name)
        if config_block is None and credentials_block is None:
            return None

        values = dict(config_block.items) if config_block else {}
        credentials = dict(credentials_block.items) if credentials_block else {}
        metadata = parse_metadata(credentials_block.comments) if credentials_block else {}

        expires_at = None
        if metadata.get("Valid"):
            try:
                expires_at = parse_timestamp(metadata["Valid"])
            except ValueError:
                logger.debug("프로파일 '%s'의 만료 시간 파싱 실패: %s", name, metadata["Valid"])

        access_key = credentials.get("aws_access_key_id")
        blocks = [block for block in (config_block, credentials_block) if block is not None]

        return ProfileDescriptor(
            profile_name=name,
            account_id=values.get("sso_account_id") or metadata.get("Account"),
            role_name=values.get("sso_role_name") or metadata.get("Role"),
            region=values.get("region"),
            output_format=values.get("output"),
            sso_session=values.get("sso_session"),
            is_default=name != DEFAULT_PROFILE and access_key is not None and access_key == default_key,
            expires_at=expires_at,
            managed=any(block.managed for block in blocks),
        )

    def get_profile(self, name: str) -> ProfileDescriptor | None:
        credentials_doc = self.load_credentials()
        return self._build_profile(
            name, self.load_config(), credentials_doc, self._default_access_key(credentials_doc)
        )

    def list_profiles(self) -> list[ProfileDescriptor]:
        """config / credentials 두 파일의 모든 프로파일 (이름순)"""
        config_doc = self.load_config()
        credentials_doc = self.load_credentials()
        default_key = self._default_access_key(credentials_doc)

        names = {block.name for block in config_doc.sections(kind=SectionKind.PROFILE)}
        names.update(block.name for block in credentials_doc.sections(kind=SectionKind.PROFILE))

        profiles = []
        for name in sorted(names):
            profile = self._build_profile(name, config_doc, credentials_doc, default_key)
            if profile is not None:
                profiles.append(profile)
        return profiles

    def find_profile(self, account_id: str, role_name: str) -> ProfileDescriptor | None:
        """계정+역할에 해당하는 기존 관리 프로파일 검색"""
        for profile in self.list_profiles():
            if profile.managed and profile.account_id == account_id and profile.role_name == role_name:
                return profile
        return None

    def write_profile(self, profile: ProfileDescriptor, credentials: RoleCredentials) -> ProfileDescriptor:
        """프로파일 설정과 자격증명을 두 파일의 관리 영역에 기록

        profile.is_default 이면 credentials 파일의 [default] 섹션도 같은 자격증명으로 갱신합니다.

        Raises:
            CollisionError: 어느 한 파일의 사용자 영역에 같은 이름이 있는 경우 (두 파일 모두 변경 없음)
        """
        name = profile.profile_name
        config_doc, credentials_doc = self._begin()
        for document in (config_doc, credentials_doc):
            if document.find(SectionKind.PROFILE, name, managed=False) is not None:
                raise CollisionError(SectionKind.PROFILE, name)

        comments = build_metadata(profile.account_id, profile.role_name, credentials.expires_at)
        credential_items = [
            ("aws_access_key_id", credentials.access_key_id),
            ("aws_secret_access_key", credentials.secret_access_key),
            ("aws_session_token", credentials.session_token),
        ]

        ManagedRegionOrganizer(config_doc).upsert_managed(SectionKind.PROFILE, name, profile.to_config_items())
        credentials_organizer = ManagedRegionOrganizer(credentials_doc)
        credentials_organizer.upsert_managed(SectionKind.PROFILE, name, credential_items, comments)
        if profile.is_default and name != DEFAULT_PROFILE:
            credentials_organizer.upsert_managed(SectionKind.PROFILE, DEFAULT_PROFILE, credential_items, comments)

        self._commit(config_doc, credentials_doc)
        logger.info("프로파일 기록: %s (%s/%s)", name, profile.account_id, profile.role_name)
        return self._build_profile(name, config_doc, credentials_doc, self._default_access_key(credentials_doc))

    def delete_profile(self, name: str) -> bool:
        """두 파일의 관리 영역에서 프로파일 삭제

        Raises:
            CollisionError: 사용자 영역에만 있는 경우
        """
        config_doc, credentials_doc = self._begin()
        removed = False
        for document in (config_doc, credentials_doc):
            removed = ManagedRegionOrganizer(document).remove(SectionKind.PROFILE, name) or removed

        if not removed:
            for document in (config_doc, credentials_doc):
                if document.find(SectionKind.PROFILE, name, managed=False) is not None:
                    raise CollisionError(SectionKind.PROFILE, name)
            return False

        self._commit(config_doc, credentials_doc)
        logger.info("프로파일 삭제: %s", name)
        return True

    def rename_profile(self, old_name: str, new_name: str) -> ProfileDescriptor:
        """관리 프로파일 이름 변경 (두 파일을 하나의 트랜잭션으로 저장)

        Raises:
            SectionNotFoundError: 관리 영역에 old_name 이 없는 경우
            CollisionError: new_name 이 이미 존재하는 경우
        """
        config_doc, credentials_doc = self._begin()
        documents = (config_doc, credentials_doc)

        sources = [document.find(SectionKind.PROFILE, old_name, managed=True) for document in documents]
        if all(block is None for block in sources):
            raise SectionNotFoundError(SectionKind.PROFILE, old_name, where="관리 영역")
        for document in documents:
            target = document.find(SectionKind.PROFILE, new_name)
            if target is not None:
                raise CollisionError(SectionKind.PROFILE, new_name, managed=target.managed)

        for document, block in zip(documents, sources):
            if block is None:
                continue
            organizer = ManagedRegionOrganizer(document)
            organizer.remove(SectionKind.PROFILE, old_name)
            organizer.upsert_managed(SectionKind.PROFILE, new_name, block.items, block.comments)

        self._commit(config_doc, credentials_doc)
        logger.info("프로파일 이름 변경: %s -> %s", old_name, new_name)
        return self._build_profile(new_name, config_doc, credentials_doc, self._default_access_key(credentials_doc))

    def import_profile(self, name: str) -> ProfileDescriptor:
        """사용자 영역의 프로파일을 두 파일 모두에서 관리 영역으로 이동

        Raises:
            SectionNotFoundError: 어느 파일의 사용자 영역에도 없는 경우
            CollisionError: 이미 관리 영역에 있는 경우
        """
        config_doc, credentials_doc = self._begin()
        imported = False
        for document in (config_doc, credentials_doc):
            if document.find(SectionKind.PROFILE, name, managed=True) is not None:
                raise CollisionError(SectionKind.PROFILE, name, managed=True)
            if document.find(SectionKind.PROFILE, name, managed=False) is not None:
                ManagedRegionOrganizer(document).import_section(SectionKind.PROFILE, name)
                imported = True

        if not imported:
            raise SectionNotFoundError(SectionKind.PROFILE, name, where="사용자 영역")

        self._commit(config_doc, credentials_doc)
        return self._build_profile(name, config_doc, credentials_doc, self._default_access_key(credentials_doc))

    def set_default_profile(self, name: str) -> ProfileDescriptor:
        """프로파일의 자격증명을 credentials 파일의 [default] 섹션에 복사

        Raises:
            SectionNotFoundError: credentials 파일에 프로파일이 없는 경우
            CollisionError: [default] 가 사용자 영역에 있는 경우
        """
        config_doc, credentials_doc = self._begin()
        block = credentials_doc.find(SectionKind.PROFILE, name)
        if block is None:
            raise SectionNotFoundError(SectionKind.PROFILE, name, where="credentials 파일")

        ManagedRegionOrganizer(credentials_doc).upsert_managed(
            SectionKind.PROFILE, DEFAULT_PROFILE, block.items, block.comments
        )
        self._commit(config_doc, credentials_doc)
        logger.info("기본 프로파일 설정: %s", name)
        return self._build_profile(name, config_doc, credentials_doc, self._default_access_key(credentials_doc))

    def remove_profiles_for_session(self, session_name: str) -> list[str]:
        """SSO 세션으로 발급된 관리 프로파일 모두 삭제

        삭제된 프로파일과 같은 자격증명을 가진 관리 영역의 [default] 도 함께 삭제합니다.

        Returns:
            삭제된 프로파일 이름 목록
        """
        config_doc, credentials_doc = self._begin()
        default_key = self._default_access_key(credentials_doc)

        names = [
            block.name
            for block in config_doc.sections(managed=True, kind=SectionKind.PROFILE)
            if dict(block.items).get("sso_session") == session_name
        ]
        if not names:
            return []

        config_organizer = ManagedRegionOrganizer(config_doc)
        credentials_organizer = ManagedRegionOrganizer(credentials_doc)
        clear_default = False
        for name in names:
            block = credentials_doc.find(SectionKind.PROFILE, name, managed=True)
            if block is not None and default_key and dict(block.items).get("aws_access_key_id") == default_key:
                clear_default = True
            config_organizer.remove(SectionKind.PROFILE, name)
            credentials_organizer.remove(SectionKind.PROFILE, name)

        if clear_default and DEFAULT_PROFILE not in names:
            credentials_organizer.remove(SectionKind.PROFILE, DEFAULT_PROFILE)

        self._commit(config_doc, credentials_doc)
        logger.info("세션 '%s'의 프로파일 %d개 삭제", session_name, len(names))
        return names
