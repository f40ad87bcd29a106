# awsso/auth/config/document.py
"""
~/.aws/config, ~/.aws/credentials 문서 모델

INI 형식 파일을 줄 단위로 보존하는 문서 모델입니다.
configparser 는 주석/빈 줄/키 순서를 보존하지 않으므로 사용하지 않습니다.
사용자가 직접 편집한 내용은 변경하지 않는 한 바이트 단위로 그대로 다시 기록됩니다.

줄 종류:
    - BLANK: 빈 줄
    - COMMENT: '#' 또는 ';' 로 시작하는 줄
    - SECTION: [kind name] 헤더
    - KEY_VALUE: key = value (들여쓴 연속 줄 포함)
    - MARKER: 관리 영역 시작 표시

섹션 식별:
    - config 파일: [default] -> (profile, default), [profile x] -> (profile, x),
      [sso-session x] -> (sso-session, x)
    - credentials 파일 (bare_profiles=True): [x] -> (profile, x)
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ...config import settings
from ...utils.fileio import atomic_write_text, read_text
from ..types import ConfigIoError, ConfigurationError, SectionKind

logger = logging.getLogger(__name__)


class LineKind(Enum):
    """문서 줄 종류"""

    BLANK = "blank"
    COMMENT = "comment"
    SECTION = "section"
    KEY_VALUE = "key-value"
    MARKER = "marker"


@dataclass
class Line:
    """문서의 한 줄

    Attributes:
        kind: 줄 종류
        raw: 원본 텍스트 (개행 문자 및 연속 줄 포함)
        header: SECTION 인 경우 대괄호 안의 텍스트
        key: KEY_VALUE 인 경우 키
        value: KEY_VALUE 인 경우 값 (연속 줄은 개행으로 이어붙임)
    """

    kind: LineKind
    raw: str
    header: str | None = None
    key: str | None = None
    value: str | None = None


@dataclass
class SectionBlock:
    """헤더부터 다음 헤더/marker 직전까지의 줄 범위

    다음 헤더 바로 위에 붙은 주석 줄은 다음 섹션의 설명으로 보고 블록에 포함하지 않습니다.

    Attributes:
        kind: 섹션 종류 문자열 (profile, sso-session 또는 그 외 헤더의 첫 단어)
        name: 섹션 이름
        header: 대괄호 안의 원본 헤더 텍스트
        start: 헤더 줄 인덱스
        end: 블록 끝 인덱스 (미포함)
        managed: 관리 영역 여부
        items: key-value 목록 (파일 순서)
        comments: 블록 내부 주석 줄 (개행 제외)
    """

    kind: str
    name: str
    header: str
    start: int
    end: int = -1
    managed: bool = False
    items: list[tuple[str, str]] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)

    @property
    def sort_key(self) -> str:
        """관리 영역 정렬 키 (헤더 식별자)"""
        return self.header


def newline_of(raw: str) -> str:
    if raw.endswith("\r\n"):
        return "\r\n"
    if raw.endswith("\n"):
        return "\n"
    return ""


def parse_lines(text: str, marker: str = settings.MANAGED_MARKER) -> list[Line]:
    """텍스트를 Line 목록으로 파싱

    "".join(line.raw for line in result) == text 가 항상 성립합니다.
    """
    lines: list[Line] = []
    for raw in text.splitlines(keepends=True):
        stripped = raw.strip()

        if not stripped:
            lines.append(Line(LineKind.BLANK, raw))
        elif stripped == marker:
            lines.append(Line(LineKind.MARKER, raw))
        elif stripped.startswith(("#", ";")):
            lines.append(Line(LineKind.COMMENT, raw))
        elif stripped.startswith("[") and stripped.endswith("]"):
            lines.append(Line(LineKind.SECTION, raw, header=stripped[1:-1].strip()))
        elif raw[0] in " \t" and lines and lines[-1].kind is LineKind.KEY_VALUE:
            # 중첩 값 (예: s3 =\n    max_concurrent_requests = 20)
            previous = lines[-1]
            previous.raw += raw
            previous.value = f"{previous.value}\n{raw.rstrip(chr(13) + chr(10))}"
        else:
            key, _, value = stripped.partition("=")
            lines.append(Line(LineKind.KEY_VALUE, raw, key=key.strip(), value=value.strip()))
    return lines


class ConfigDocument:
    """순서를 보존하는 AWS 설정 파일 문서

    load -> (수정) -> save 한 번의 주기로 사용합니다.
    저장은 항상 전체 파일의 원자적 재작성입니다 (임시 파일 + rename).

    Attributes:
        path: 파일 경로 (None이면 메모리 전용)
        bare_profiles: credentials 파일 형식 여부 ([name] == 프로파일)
        marker: 관리 영역 marker 줄
        lines: 줄 목록
    """

    def __init__(
        self,
        text: str = "",
        path: Path | None = None,
        bare_profiles: bool = False,
        marker: str = settings.MANAGED_MARKER,
        existed: bool = False,
    ):
        self.path = Path(path) if path is not None else None
        self.bare_profiles = bare_profiles
        self.marker = marker
        self.lines = parse_lines(text, marker)
        self._original = text
        self._existed = existed
        self._had_marker = self.has_marker

    # -------------------------------------------------------------------------
    # 생성
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path, bare_profiles: bool = False, marker: str = settings.MANAGED_MARKER) -> ConfigDocument:
        """파일에서 문서 로드

        파일이 없으면 빈 문서를 반환합니다.

        Raises:
            ConfigIoError: 파일을 읽을 수 없는 경우
        """
        path = Path(path)
        try:
            text = read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIoError(path, "읽기", e) from e

        if text is None:
            logger.debug("설정 파일이 없음, 빈 문서 사용: %s", path)
            return cls("", path=path, bare_profiles=bare_profiles, marker=marker, existed=False)

        return cls(text, path=path, bare_profiles=bare_profiles, marker=marker, existed=True)

    @classmethod
    def parse(cls, text: str, bare_profiles: bool = False, marker: str = settings.MANAGED_MARKER) -> ConfigDocument:
        """텍스트에서 메모리 전용 문서 생성"""
        return cls(text, bare_profiles=bare_profiles, marker=marker)

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    def render(self) -> str:
        """문서를 텍스트로 직렬화"""
        return "".join(line.raw for line in self.lines)

    @property
    def newline(self) -> str:
        """문서가 사용하는 개행 문자 (CRLF 파일은 CRLF 유지)"""
        for line in self.lines:
            ending = newline_of(line.raw)
            if ending:
                return ending
        return "\n"

    @property
    def marker_index(self) -> int | None:
        """첫 번째 marker 줄 인덱스 (없으면 None)"""
        for i, line in enumerate(self.lines):
            if line.kind is LineKind.MARKER:
                return i
        return None

    @property
    def has_marker(self) -> bool:
        return self.marker_index is not None

    @property
    def dirty(self) -> bool:
        """로드 이후 내용이 바뀌었는지 여부"""
        return self.render() != self._original

    def split_header(self, header: str) -> tuple[str, str]:
        """헤더 텍스트를 (kind, name) 으로 분리"""
        if self.bare_profiles:
            return SectionKind.PROFILE.value, header
        if header == "default":
            return SectionKind.PROFILE.value, "default"
        kind, _, name = header.partition(" ")
        return kind, name.strip()

    def make_header(self, kind: SectionKind | str, name: str) -> str:
        """(kind, name) 을 헤더 텍스트로 변환"""
        kind = SectionKind(kind)
        if self.bare_profiles:
            if kind is not SectionKind.PROFILE:
                raise ConfigurationError(f"credentials 파일에는 {kind} 섹션을 쓸 수 없습니다")
            return name
        if kind is SectionKind.PROFILE and name == "default":
            return "default"
        return f"{kind.value} {name}"

    def blocks(self) -> list[SectionBlock]:
        """모든 섹션 블록 (파일 순서)"""
        marker = self.marker_index
        result: list[SectionBlock] = []
        current: SectionBlock | None = None

        def close(block: SectionBlock, end: int) -> None:
            # 다음 헤더 바로 위의 주석은 다음 섹션에 속함 (그 앞의 빈 줄은 현재 블록에 남김)
            if end < len(self.lines) and self.lines[end].kind is LineKind.SECTION:
                cut = i = end
                while i - 1 > block.start and self.lines[i - 1].kind in (LineKind.BLANK, LineKind.COMMENT):
                    i -= 1
                    if self.lines[i].kind is LineKind.COMMENT:
                        cut = i
                end = cut
            block.end = end
            for line in self.lines[block.start + 1 : end]:
                if line.kind is LineKind.KEY_VALUE:
                    block.items.append((line.key or "", line.value or ""))
                elif line.kind is LineKind.COMMENT:
                    block.comments.append(line.raw.strip())
            result.append(block)

        for i, line in enumerate(self.lines):
            if line.kind not in (LineKind.SECTION, LineKind.MARKER):
                continue
            if current is not None:
                close(current, i)
                current = None
            if line.kind is LineKind.SECTION:
                kind, name = self.split_header(line.header or "")
                current = SectionBlock(
                    kind=kind,
                    name=name,
                    header=line.header or "",
                    start=i,
                    managed=marker is not None and i > marker,
                )

        if current is not None:
            close(current, len(self.lines))

        return result

    def sections(self, managed: bool | None = None, kind: SectionKind | str | None = None) -> list[SectionBlock]:
        """섹션 블록 조회

        Args:
            managed: True=관리 영역만, False=사용자 영역만, None=전체
            kind: 섹션 종류 필터
        """
        kind_value = SectionKind(kind).value if kind is not None else None
        return [
            block
            for block in self.blocks()
            if (managed is None or block.managed == managed)
            and (kind_value is None or block.kind == kind_value)
        ]

    def find(self, kind: SectionKind | str, name: str, managed: bool | None = None) -> SectionBlock | None:
        """(kind, name) 섹션 블록 검색 (없으면 None)"""
        for block in self.sections(managed=managed, kind=kind):
            if block.name == name:
                return block
        return None

    def section(self, kind: SectionKind | str, name: str) -> list[tuple[str, str]] | None:
        """(kind, name) 섹션의 key-value 목록 (사용자/관리 영역 모두 검색)"""
        block = self.find(kind, name)
        return list(block.items) if block is not None else None

    # -------------------------------------------------------------------------
    # 저장
    # -------------------------------------------------------------------------

    @property
    def backup_path(self) -> Path | None:
        """최초 marker 도입 시 생성하는 백업 파일 경로"""
        if self.path is None:
            return None
        return self.path.with_name(f"{self.path.name}{settings.BACKUP_SUFFIX}")

    def save(self) -> bool:
        """변경 사항을 원자적으로 저장

        marker 가 없던 기존 파일에 marker 를 처음 도입하는 경우,
        쓰기 전에 기존 파일을 백업 경로에 복사합니다 (기존 백업은 덮어쓰지 않음).

        Returns:
            실제로 파일을 기록했으면 True

        Raises:
            ConfigIoError: 백업 또는 쓰기 실패 시
        """
        if self.path is None:
            raise ConfigurationError("저장 경로가 없는 문서입니다")

        content = self.render()
        if content == self._original and (self._existed or not content):
            return False

        if self._existed and not self._had_marker and self.has_marker:
            self._write_backup()

        try:
            atomic_write_text(self.path, content)
        except OSError as e:
            raise ConfigIoError(self.path, "쓰기", e) from e

        logger.debug("설정 파일 저장: %s", self.path)
        self._original = content
        self._existed = True
        self._had_marker = self.has_marker
        return True

    def _write_backup(self) -> None:
        backup = self.backup_path
        if backup is None or self.path is None:
            return
        if backup.exists():
            logger.debug("백업 파일이 이미 존재하여 건너뜀: %s", backup)
            return
        try:
            shutil.copy2(self.path, backup)
        except OSError as e:
            raise ConfigIoError(backup, "백업", e) from e
        logger.info("백업 생성: %s", backup)
