# tests/auth/config/test_config_migration.py
"""
awsso/auth/config/migration.py 테스트

최초 실행 시 marker 도입, 백업, 상태 파일 기록을 확인합니다.
"""

from awsso.auth.config.document import ConfigDocument
from awsso.auth.config.migration import FirstRunMigration
from awsso.config import get_aws_dir, settings

MARKER = settings.MANAGED_MARKER

USER_CONFIG = "# hand written\n[default]\nregion = ap-northeast-2\n"
USER_CREDENTIALS = "[legacy]\naws_access_key_id = AKIAOLD\naws_secret_access_key = secret\n"


class TestFirstRunMigration:
    """FirstRunMigration 클래스 테스트"""

    def test_default_state_path(self, aws_dir):
        """기본 상태 파일: ~/.aws/.awsso-initialized"""
        migration = FirstRunMigration()
        assert migration.state_path == get_aws_dir() / ".awsso-initialized"
        assert migration.completed is False

    def test_introduces_marker_and_backup(self, aws_dir):
        """기존 파일: 원본 보존 + marker, 백업은 원본과 동일"""
        config_path = aws_dir / "config"
        credentials_path = aws_dir / "credentials"
        config_path.write_bytes(USER_CONFIG.encode())
        credentials_path.write_bytes(USER_CREDENTIALS.encode())

        migration = FirstRunMigration(aws_dir / "state")
        ran = migration.run(
            ConfigDocument.load(config_path),
            ConfigDocument.load(credentials_path, bare_profiles=True),
        )

        assert ran is True
        assert config_path.read_bytes() == (USER_CONFIG + "\n" + MARKER + "\n").encode()
        assert credentials_path.read_bytes() == (USER_CREDENTIALS + "\n" + MARKER + "\n").encode()
        assert (aws_dir / "config-before-awsso.bak").read_bytes() == USER_CONFIG.encode()
        assert (aws_dir / "credentials-before-awsso.bak").read_bytes() == USER_CREDENTIALS.encode()
        assert migration.completed is True

    def test_state_file_contents(self, aws_dir):
        """상태 파일에 시간과 버전 기록"""
        migration = FirstRunMigration(aws_dir / "state")
        migration.run()

        content = (aws_dir / "state").read_text()
        assert content.startswith("initialized_at = ")
        assert "version = " in content

    def test_missing_files_are_not_created(self, aws_dir):
        """없는 파일은 만들지 않음"""
        migration = FirstRunMigration(aws_dir / "state")
        migration.run(ConfigDocument.load(aws_dir / "config"))

        assert not (aws_dir / "config").exists()
        assert not (aws_dir / "config-before-awsso.bak").exists()
        assert migration.completed is True

    def test_idempotent(self, aws_dir):
        """두 번째 실행은 아무것도 하지 않음"""
        config_path = aws_dir / "config"
        config_path.write_text(USER_CONFIG)
        migration = FirstRunMigration(aws_dir / "state")
        migration.run(ConfigDocument.load(config_path))
        after_first = config_path.read_bytes()

        assert migration.run(ConfigDocument.load(config_path)) is False
        assert config_path.read_bytes() == after_first

    def test_existing_backup_is_not_overwritten(self, aws_dir):
        """이미 있는 백업은 덮어쓰지 않음"""
        config_path = aws_dir / "config"
        config_path.write_text(USER_CONFIG)
        backup = aws_dir / "config-before-awsso.bak"
        backup.write_text("older backup\n")

        FirstRunMigration(aws_dir / "state").run(ConfigDocument.load(config_path))

        assert backup.read_text() == "older backup\n"

    def test_file_with_marker_is_untouched(self, aws_dir):
        """이미 marker 가 있는 파일은 그대로"""
        text = USER_CONFIG + "\n" + MARKER + "\n\n[profile a]\nregion = x\n"
        config_path = aws_dir / "config"
        config_path.write_text(text)

        FirstRunMigration(aws_dir / "state").run(ConfigDocument.load(config_path))

        assert config_path.read_text() == text
        assert not (aws_dir / "config-before-awsso.bak").exists()
