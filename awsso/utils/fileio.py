"""
awsso/utils/fileio.py - 원자적 파일 쓰기

설정 파일과 캐시 파일은 다른 도구(AWS CLI)와 공유되므로 부분 쓰기를 허용하지 않습니다.
같은 디렉토리에 임시 파일을 만든 뒤 rename 으로 교체합니다.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

DEFAULT_FILE_MODE = 0o600


def atomic_write_text(path: Path, content: str, mode: int | None = None) -> None:
    """텍스트를 원자적으로 파일에 기록

    임시 파일에 먼저 권한을 설정한 뒤 데이터를 쓰고, 최종 경로로 rename 합니다.
    기존 파일이 있으면 그 권한을 유지합니다.

    Args:
        path: 대상 파일 경로
        content: 기록할 텍스트 (개행 변환 없이 그대로 기록)
        mode: 파일 권한 (None이면 기존 권한 또는 0o600)

    Raises:
        OSError: 디렉토리 생성/쓰기/rename 실패 시
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if mode is None:
        try:
            mode = path.stat().st_mode & 0o777
        except FileNotFoundError:
            mode = DEFAULT_FILE_MODE

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            os.fchmod(f.fileno(), mode)
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    finally:
        if os.path.exists(temp_path):
            os.unlink(temp_path)


def read_text(path: Path) -> str | None:
    """파일 내용을 개행 변환 없이 읽기 (파일이 없으면 None)"""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None
