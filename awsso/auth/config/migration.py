# awsso/auth/config/migration.py
"""
최초 실행 마이그레이션

awsso 가 처음으로 설정 파일을 수정할 때 한 번만 실행됩니다.
- config / credentials 파일에 관리 영역 marker 추가 (저장은 첫 변경과 함께)
- marker 가 없던 기존 파일은 <file>-before-awsso.bak 으로 백업 (ConfigDocument.save 에서 처리)
- ~/.aws/.awsso-initialized 상태 파일 기록

상태 파일이 이미 있으면 아무것도 하지 않습니다 (멱등).
SessionStore 는 prepare() 로 marker 를 메모리에만 추가하고, 변경이 모두 저장된 뒤
mark_completed() 를 호출합니다. 충돌 등으로 변경이 실패하면 디스크는 그대로입니다.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ...config import get_aws_dir, get_version, settings
from ...utils.fileio import atomic_write_text
from ..cache.cache import format_timestamp
from ..cache.expiry import utc_now
from ..types import ConfigIoError
from .document import ConfigDocument
from .managed import ManagedRegionOrganizer

logger = logging.getLogger(__name__)


class FirstRunMigration:
    """관리 영역 도입 마이그레이션

    Attributes:
        state_path: 상태 파일 경로 (기본: ~/.aws/.awsso-initialized)
    """

    def __init__(self, state_path: Path | None = None):
        self.state_path = Path(state_path) if state_path else get_aws_dir() / settings.STATE_FILENAME

    @property
    def completed(self) -> bool:
        return self.state_path.exists()

    def prepare(self, *documents: ConfigDocument) -> bool:
        """문서들에 marker 를 메모리에서만 도입 (저장은 호출자가 담당)

        존재하지 않는 파일은 건드리지 않습니다 (빈 파일을 새로 만들지 않음).

        Returns:
            마이그레이션이 아직 완료되지 않았으면 True
        """
        if self.completed:
            return False

        for document in documents:
            if document.path is None or not document.path.exists():
                continue
            if ManagedRegionOrganizer(document).ensure_marker():
                logger.debug("관리 영역 marker 준비: %s", document.path)
        return True

    def mark_completed(self) -> None:
        """상태 파일 기록

        Raises:
            ConfigIoError: 상태 파일 기록 실패 시
        """
        try:
            atomic_write_text(
                self.state_path,
                f"initialized_at = {format_timestamp(utc_now())}\nversion = {get_version()}\n",
            )
        except OSError as e:
            raise ConfigIoError(self.state_path, "쓰기", e) from e

        logger.debug("최초 실행 마이그레이션 완료: %s", self.state_path)

    def run(self, *documents: ConfigDocument) -> bool:
        """문서들에 marker 를 도입하고 저장한 뒤 상태 파일 기록

        Returns:
            마이그레이션을 실행했으면 True, 이미 완료된 상태면 False

        Raises:
            ConfigIoError: 백업/저장/상태 파일 기록 실패 시
        """
        if not self.prepare(*documents):
            return False

        for document in documents:
            if document.path is not None and document.dirty and document.save():
                logger.info("관리 영역 marker 도입: %s", document.path)

        self.mark_completed()
        return True
