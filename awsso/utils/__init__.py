"""공용 유틸리티"""

from .fileio import atomic_write_text, read_text

__all__ = ["atomic_write_text", "read_text"]
