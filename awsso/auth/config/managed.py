# awsso/auth/config/managed.py
"""
관리 영역(managed region) 정리

marker 줄 아래는 awsso 가 소유하는 관리 영역입니다.
- marker 위(사용자 영역)는 import 외에는 절대 수정하지 않음
- 관리 영역 섹션은 헤더 식별자(default, profile dev, sso-session corp) 기준 오름차순 정렬
- 같은 (kind, name) 이 두 영역에 동시에 존재할 수 없음
- 관리 영역 섹션은 정해진 형식([header], 메타데이터 주석, key = value)으로 다시 씀
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..types import CollisionError, SectionKind, SectionNotFoundError
from .document import ConfigDocument, Line, LineKind, newline_of

logger = logging.getLogger(__name__)

# 섹션 종류별 키 순서 (알 수 없는 키는 원래 순서대로 뒤에 붙음)
SESSION_KEY_ORDER = ("sso_start_url", "sso_region", "sso_registration_scopes")
CONFIG_PROFILE_KEY_ORDER = ("sso_session", "sso_account_id", "sso_role_name", "region", "output")
CREDENTIALS_KEY_ORDER = ("aws_access_key_id", "aws_secret_access_key", "aws_session_token")


def canonical_items(items: Iterable[tuple[str, str]], order: Sequence[str]) -> list[tuple[str, str]]:
    """key-value 목록을 정해진 키 순서로 정렬"""
    items = list(items)
    rank = {key: i for i, key in enumerate(order)}
    known = sorted((item for item in items if item[0] in rank), key=lambda item: rank[item[0]])
    unknown = [item for item in items if item[0] not in rank]
    return known + unknown


@dataclass
class ManagedSection:
    """관리 영역에 렌더링할 섹션"""

    header: str
    items: list[tuple[str, str]] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)


class ManagedRegionOrganizer:
    """ConfigDocument 의 관리 영역을 정렬된 상태로 유지

    Example:
        doc = ConfigDocument.load(path)
        organizer = ManagedRegionOrganizer(doc)
        organizer.upsert_managed(SectionKind.SSO_SESSION, "corp", items)
        doc.save()
    """

    def __init__(self, document: ConfigDocument):
        self.document = document

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    def key_order(self, header: str) -> Sequence[str]:
        """헤더에 해당하는 정해진 키 순서"""
        if self.document.bare_profiles:
            return CREDENTIALS_KEY_ORDER
        kind, _ = self.document.split_header(header)
        if kind == SectionKind.SSO_SESSION.value:
            return SESSION_KEY_ORDER
        return CONFIG_PROFILE_KEY_ORDER

    def managed_sections(self) -> list[ManagedSection]:
        """관리 영역 섹션 (파일 순서)"""
        return [
            ManagedSection(block.header, list(block.items), list(block.comments))
            for block in self.document.sections(managed=True)
        ]

    def is_sorted(self) -> bool:
        headers = [section.header for section in self.managed_sections()]
        return headers == sorted(headers)

    # -------------------------------------------------------------------------
    # 변경
    # -------------------------------------------------------------------------

    def ensure_marker(self) -> bool:
        """marker 가 없으면 파일 끝에 추가

        기존 내용은 그대로 두고, 마지막 줄에 개행이 없으면 개행만 보충합니다.

        Returns:
            marker 를 새로 추가했으면 True
        """
        doc = self.document
        if doc.has_marker:
            return False

        newline = doc.newline
        if doc.lines:
            last = doc.lines[-1]
            if not newline_of(last.raw):
                last.raw += newline
            doc.lines.append(Line(LineKind.BLANK, newline))
        doc.lines.append(Line(LineKind.MARKER, doc.marker + newline))
        logger.debug("관리 영역 marker 추가: %s", doc.path)
        return True

    def upsert_managed(
        self,
        kind: SectionKind | str,
        name: str,
        items: Iterable[tuple[str, str]],
        comments: Sequence[str] | None = None,
    ) -> None:
        """관리 영역에 섹션 추가 또는 교체

        Args:
            kind: 섹션 종류
            name: 섹션 이름
            items: key-value 목록 (정해진 키 순서로 재정렬됨)
            comments: 헤더 아래 주석 (None이면 기존 섹션의 주석 유지)

        Raises:
            CollisionError: 사용자 영역에 같은 섹션이 있는 경우 (문서 변경 없음)
        """
        kind = SectionKind(kind)
        header = self.document.make_header(kind, name)
        if self.document.find(kind, name, managed=False) is not None:
            raise CollisionError(kind, name)

        if comments is None:
            existing = self.document.find(kind, name, managed=True)
            comments = existing.comments if existing is not None else []

        self._insert(ManagedSection(header, canonical_items(items, self.key_order(header)), list(comments)))

    def remove(self, kind: SectionKind | str, name: str) -> bool:
        """관리 영역에서 섹션 삭제 (사용자 영역은 건드리지 않음)

        Returns:
            삭제했으면 True
        """
        if not self.document.has_marker:
            return False

        header = self.document.make_header(kind, name)
        sections = self.managed_sections()
        remaining = [section for section in sections if section.header != header]
        if len(remaining) == len(sections):
            return False

        self._write(remaining)
        return True

    def import_section(self, kind: SectionKind | str, name: str) -> None:
        """사용자 영역의 섹션을 관리 영역의 정렬된 위치로 이동

        헤더부터 다음 헤더/marker 직전까지의 줄을 사용자 영역에서 제거하고
        (다음 헤더 바로 위의 주석은 남김),
        정해진 키 순서로 관리 영역에 다시 씁니다. 확인 절차는 호출측 책임입니다.

        Raises:
            SectionNotFoundError: 사용자 영역에 섹션이 없는 경우
            CollisionError: 이미 관리 영역에 있는 경우
        """
        kind = SectionKind(kind)
        managed = self.document.find(kind, name, managed=True)
        if managed is not None:
            raise CollisionError(kind, name, managed=True)

        block = self.document.find(kind, name, managed=False)
        if block is None:
            raise SectionNotFoundError(kind, name)

        header = self.document.make_header(kind, name)
        section = ManagedSection(header, canonical_items(block.items, self.key_order(header)), list(block.comments))

        del self.document.lines[block.start : block.end]
        self._insert(section)
        logger.info("%s '%s' 을(를) 관리 영역으로 이동", kind, name)

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    def _insert(self, section: ManagedSection) -> None:
        self.ensure_marker()
        sections = sorted(self.managed_sections(), key=lambda s: s.header)
        headers = [s.header for s in sections]

        index = bisect_left(headers, section.header)
        if index < len(headers) and headers[index] == section.header:
            sections[index] = section
        else:
            sections.insert(index, section)

        self._write(sections)

    def _write(self, sections: list[ManagedSection]) -> None:
        """marker 다음 줄부터 파일 끝까지를 다시 씀"""
        doc = self.document
        marker = doc.marker_index
        if marker is None:
            raise RuntimeError("marker 없이 관리 영역을 쓸 수 없습니다")

        newline = doc.newline
        rendered: list[Line] = []
        for section in sorted(sections, key=lambda s: s.header):
            rendered.append(Line(LineKind.BLANK, newline))
            rendered.append(Line(LineKind.SECTION, f"[{section.header}]{newline}", header=section.header))
            for comment in section.comments:
                rendered.append(Line(LineKind.COMMENT, f"{comment}{newline}"))
            for key, value in canonical_items(section.items, self.key_order(section.header)):
                rendered.append(Line(LineKind.KEY_VALUE, _render_item(key, value, newline), key=key, value=value))

        doc.lines[marker + 1 :] = rendered


def _render_item(key: str, value: str, newline: str) -> str:
    first, sep, nested = value.partition("\n")
    text = f"{key} = {first}".rstrip()
    if sep:
        text = f"{text}\n{nested}"
    return text.replace("\n", newline) + newline
