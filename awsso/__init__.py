"""
awsso - AWS SSO 세션/프로파일/자격증명 캐시 관리

IAM Identity Center(SSO)에 한 번 로그인하고, 명령마다 사용할 세션을 결정하며,
AWS CLI와 동일한 파일 레이아웃으로 세션 정의와 임시 자격증명을 저장합니다.

아키텍처:
    awsso/
    ├── auth/
    │   ├── types/      # 데이터 타입, 에러 계층, Provider 인터페이스
    │   ├── config/     # ~/.aws/config, ~/.aws/credentials 문서 모델 및 저장소
    │   ├── cache/      # SSO 토큰 / Role 자격증명 파일 캐시
    │   ├── provider/   # boto3 클라이언트, 디바이스 인증 플로우
    │   ├── resolver.py # 세션 결정 로직
    │   └── session.py  # 명령 단위 파사드 (SessionManager)
    ├── cli/            # Click CLI, Rich 콘솔
    ├── utils/          # 원자적 파일 쓰기
    ├── config.py       # 중앙 설정 관리
    └── exceptions.py   # 베이스 예외

Usage:
    from awsso.auth import SessionManager

    manager = SessionManager.from_defaults()
    session = manager.resolve_session(session_name="corp")
"""

__version__ = "0.4.0"
