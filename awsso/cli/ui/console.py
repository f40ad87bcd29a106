"""
awsso/cli/ui/console.py - Rich 콘솔 유틸리티

일관된 콘솔 출력을 위한 함수들
"""

from __future__ import annotations

import logging
import platform

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ...config import LogConfig

# botocore 노이즈 로그 제한
logging.getLogger("botocore.httpchecksum").setLevel(logging.WARNING)
logging.getLogger("botocore.credentials").setLevel(logging.WARNING)
logging.getLogger("botocore.loaders").setLevel(logging.WARNING)
logging.getLogger("botocore.session").setLevel(logging.WARNING)


def get_console(stderr: bool = False) -> Console:
    """Rich Console 인스턴스를 생성하고 반환합니다."""
    is_windows = platform.system().lower() == "windows"

    return Console(
        stderr=stderr,
        color_system="auto",
        highlight=False,
        soft_wrap=True,
        markup=True,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스 (로그는 stderr)
console = get_console()
err_console = get_console(stderr=True)


def setup_logging(level: str | None = None, config: LogConfig | None = None) -> logging.Logger:
    """awsso 패키지 logger 에 Rich 핸들러 설정

    Args:
        level: 로그 레벨 (None이면 LogConfig 값)
        config: 로깅 설정 (None이면 환경변수에서 로드)

    Returns:
        설정된 "awsso" logger
    """
    config = config or LogConfig.from_env()
    logger = logging.getLogger("awsso")
    logger.setLevel((level or config.level).upper())

    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt=config.date_format))
        logger.addHandler(handler)
        logger.propagate = False

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


# =============================================================================
# 표준 출력 스타일 (이모지 없이 Rich 스타일만 사용)
# =============================================================================

# 상태 심볼
SYMBOL_SUCCESS = "✓"  # 완료
SYMBOL_ERROR = "✗"  # 에러
SYMBOL_WARNING = "!"  # 경고
SYMBOL_INFO = "•"  # 정보

# 세션 상태별 색상
STATUS_STYLES = {
    "ACTIVE": "green",
    "EXPIRING": "yellow",
    "EXPIRED": "red",
    "INACTIVE": "dim",
}


def print_success(message: str) -> None:
    """성공 메시지 출력 (초록색 체크마크)"""
    console.print(f"[green]{SYMBOL_SUCCESS} {escape(message)}[/green]")


def print_error(message: str) -> None:
    """에러 메시지 출력 (빨간색 X, stderr)"""
    err_console.print(f"[red]{SYMBOL_ERROR} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """경고 메시지 출력 (노란색 경고)"""
    console.print(f"[yellow]{SYMBOL_WARNING} {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """정보 메시지 출력 (파란색 정보)"""
    console.print(f"[blue]{SYMBOL_INFO} {escape(message)}[/blue]")


def print_table(
    title: str,
    columns: list[str],
    rows: list[list],
) -> None:
    """테이블 형식으로 데이터를 출력합니다.

    Args:
        title: 테이블 제목
        columns: 컬럼 헤더 리스트
        rows: 행 데이터 리스트
    """
    table = Table(title=title, show_header=True, header_style="bold magenta")

    for column in columns:
        table.add_column(column, overflow="fold")

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def status_text(status: str) -> str:
    """세션 상태를 색상 마크업 문자열로 변환"""
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"
