"""CLI UI 유틸리티 (Rich 콘솔)"""

from .console import (
    console,
    err_console,
    print_error,
    print_info,
    print_success,
    print_table,
    print_warning,
    setup_logging,
    status_text,
)

__all__ = [
    "console",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_table",
    "print_warning",
    "setup_logging",
    "status_text",
]
