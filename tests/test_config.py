# tests/test_config.py
"""
awsso/config.py 및 awsso/exceptions.py 테스트
"""

from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock

import pytest

from awsso.config import (
    LogConfig,
    get_aws_dir,
    get_config_path,
    get_credentials_path,
    get_env_bool,
    get_env_int,
    get_version,
    settings,
)
from awsso.exceptions import AwssoError, get_error_code, is_access_denied


class TestSettings:
    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            settings.CLIENT_NAME = "other"

    def test_values(self):
        assert settings.BACKUP_SUFFIX == "-before-awsso.bak"
        assert settings.STATE_FILENAME == ".awsso-initialized"
        assert settings.SLOW_DOWN_INCREMENT_SECONDS == 5


class TestEnvHelpers:
    @pytest.mark.parametrize("value, expected", [("1", True), ("Yes", True), ("off", False), ("", False)])
    def test_get_env_bool(self, monkeypatch, value, expected):
        monkeypatch.setenv("AWSSO_FLAG", value)
        assert get_env_bool("AWSSO_FLAG") is expected

    def test_get_env_bool_default(self, monkeypatch):
        monkeypatch.delenv("AWSSO_FLAG", raising=False)
        assert get_env_bool("AWSSO_FLAG", True) is True

    def test_get_env_int(self, monkeypatch):
        monkeypatch.setenv("AWSSO_NUM", "42")
        assert get_env_int("AWSSO_NUM") == 42
        monkeypatch.setenv("AWSSO_NUM", "x")
        assert get_env_int("AWSSO_NUM", 7) == 7


class TestLogConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = LogConfig.from_env()
        assert config.level == "DEBUG"
        assert "botocore" in config.quiet_loggers

    def test_default_level(self):
        assert LogConfig.from_env().level == "WARNING"


class TestPaths:
    def test_defaults(self, tmp_path):
        assert get_aws_dir() == tmp_path / ".aws"
        assert get_config_path() == tmp_path / ".aws" / "config"
        assert get_credentials_path() == tmp_path / ".aws" / "credentials"

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "custom-config"))
        monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "custom-creds"))
        assert get_config_path() == tmp_path / "custom-config"
        assert get_credentials_path() == tmp_path / "custom-creds"

    def test_version(self):
        parts = get_version().split(".")
        assert len(parts) >= 2
        assert all(part.isdigit() for part in parts[:2])


class TestExceptions:
    def test_str_with_cause(self):
        assert str(AwssoError("failed", ValueError("boom"))) == "failed: boom"
        assert str(AwssoError("failed")) == "failed"

    def test_to_dict(self):
        data = AwssoError("failed", details={"key": "value"}).to_dict()
        assert data == {"error_type": "AwssoError", "message": "failed", "cause": None, "details": {"key": "value"}}

    def test_error_code_helpers(self):
        error = MagicMock()
        error.response = {"Error": {"Code": "AccessDeniedException"}}
        assert get_error_code(error) == "AccessDeniedException"
        assert is_access_denied(error) is True
        assert get_error_code(ValueError("x")) is None
