# awsso/auth/config/__init__.py
"""
AWS 설정 파일 관리 모듈

이 모듈은 ~/.aws/config 및 ~/.aws/credentials 파일을 순서 보존 문서로 읽고,
awsso 가 소유하는 관리 영역(marker 아래)에 세션/프로파일을 정렬된 상태로 기록합니다.

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = [
    # Document
    "ConfigDocument",
    "Line",
    "LineKind",
    "SectionBlock",
    # Managed region
    "ManagedRegionOrganizer",
    "ManagedSection",
    "canonical_items",
    # Migration
    "FirstRunMigration",
    # Store
    "SessionStore",
    "default_profile_name",
]

_IMPORT_MAPPING = {
    "ConfigDocument": (".document", "ConfigDocument"),
    "Line": (".document", "Line"),
    "LineKind": (".document", "LineKind"),
    "SectionBlock": (".document", "SectionBlock"),
    "ManagedRegionOrganizer": (".managed", "ManagedRegionOrganizer"),
    "ManagedSection": (".managed", "ManagedSection"),
    "canonical_items": (".managed", "canonical_items"),
    "FirstRunMigration": (".migration", "FirstRunMigration"),
    "SessionStore": (".store", "SessionStore"),
    "default_profile_name": (".store", "default_profile_name"),
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
