# tests/cli/test_app.py
"""
awsso/cli/app.py 테스트

CliRunner 로 명령을 실행하고, ctx.obj 에 임시 디렉토리 기반 SessionManager 를 주입합니다.

Tests cover:
- 버전/도움말
- session / profile 그룹
- login / logout / accounts / credentials / status
- export / exec / status --json
- AwssoError -> 종료 코드 1
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from awsso.auth.cache.cache import CachedToken
from awsso.auth.session import SessionManager
from awsso.auth.types import SessionDescriptor
from awsso.cli.app import cli
from awsso.config import get_version

START_URL = "https://example.awsapps.com/start"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def manager(store, token_cache, role_cache, fake_provider, recorded_sleep):
    return SessionManager(
        store,
        token_cache,
        role_cache,
        provider_factory=lambda region: fake_provider,
        sleep=recorded_sleep,
    )


@pytest.fixture
def invoke(runner, manager):
    """manager 를 주입하여 CLI 실행"""

    def _invoke(*args, input=None):
        return runner.invoke(cli, list(args), obj={"manager": manager}, input=input)

    return _invoke


@pytest.fixture
def corp(store):
    return store.add_session(SessionDescriptor("corp", START_URL, "ap-northeast-2"))


def save_valid_token(token_cache):
    token_cache.save(
        CachedToken(START_URL, "ap-northeast-2", "cached-token", datetime.now(timezone.utc) + timedelta(hours=8))
    )


# =============================================================================
# 메인 그룹
# =============================================================================


class TestCLI:
    """메인 그룹 테스트"""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "awsso" in result.output
        assert get_version() in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("session", "profile", "login", "logout", "accounts", "credentials", "export", "exec", "status"):
            assert command in result.output

    def test_invalid_log_level(self, runner):
        result = runner.invoke(cli, ["--log-level", "LOUD", "status"])
        assert result.exit_code == 2

    def test_default_manager_uses_home(self, runner, aws_dir):
        """obj 가 없으면 기본 경로의 SessionManager 사용"""
        result = runner.invoke(cli, ["session", "add", "corp", "--start-url", START_URL, "--region", "us-east-1"])
        assert result.exit_code == 0
        assert "[sso-session corp]" in (aws_dir / "config").read_text()


# =============================================================================
# session
# =============================================================================


class TestSessionCommands:
    """session 그룹 테스트"""

    def test_add_and_list(self, invoke, store):
        result = invoke("session", "add", "corp", "--start-url", START_URL, "--region", "ap-northeast-2")
        assert result.exit_code == 0
        assert "corp" in result.output
        assert store.get_session("corp").region == "ap-northeast-2"

        result = invoke("session", "list")
        assert result.exit_code == 0
        assert "corp" in result.output
        assert "INACTIVE" in result.output

    def test_list_empty(self, invoke):
        result = invoke("session", "list")
        assert result.exit_code == 0
        assert "awsso session add" in result.output

    def test_add_requires_region(self, invoke):
        result = invoke("session", "add", "corp", "--start-url", START_URL)
        assert result.exit_code == 2

    def test_add_collision_exit_code(self, invoke, corp):
        result = invoke("session", "add", "corp", "--start-url", START_URL, "--region", "us-east-1")
        assert result.exit_code == 1
        assert "awsso session list" in result.output

    def test_edit(self, invoke, corp, store):
        result = invoke("session", "edit", "corp", "--region", "us-west-2")
        assert result.exit_code == 0
        assert store.get_session("corp").region == "us-west-2"

    def test_edit_without_changes(self, invoke, corp):
        result = invoke("session", "edit", "corp")
        assert result.exit_code == 2

    def test_delete_with_yes(self, invoke, corp, store):
        result = invoke("session", "delete", "corp", "--yes")
        assert result.exit_code == 0
        assert store.get_session("corp") is None

    def test_delete_aborted(self, invoke, corp, store):
        result = invoke("session", "delete", "corp", input="n\n")
        assert result.exit_code == 1
        assert store.get_session("corp") is not None

    def test_import(self, invoke, store):
        store.config_path.write_text(f"[sso-session legacy]\nsso_start_url = {START_URL}\nsso_region = us-east-1\n")
        result = invoke("session", "import", "legacy", "--yes")
        assert result.exit_code == 0
        assert store.get_session("legacy").managed is True


# =============================================================================
# login / logout / accounts / credentials / status
# =============================================================================


class TestLoginCommands:
    """인증 관련 명령 테스트"""

    def test_login_opens_browser(self, invoke, corp, token_cache):
        with patch("awsso.cli.app.webbrowser.open") as mock_open:
            result = invoke("login")

        assert result.exit_code == 0, result.output
        assert "ABCD-EFGH" in result.output
        mock_open.assert_called_once()
        assert token_cache.load(START_URL).access_token == "new-access-token"

    def test_login_no_browser(self, invoke, corp):
        with patch("awsso.cli.app.webbrowser.open") as mock_open:
            result = invoke("login", "--no-browser")
        assert result.exit_code == 0
        mock_open.assert_not_called()

    def test_login_no_browser_from_env(self, invoke, corp, monkeypatch):
        monkeypatch.setenv("AWSSO_NO_BROWSER", "1")
        with patch("awsso.cli.app.webbrowser.open") as mock_open:
            result = invoke("login")
        assert result.exit_code == 0
        mock_open.assert_not_called()

    def test_login_with_cached_token(self, invoke, corp, token_cache, fake_provider):
        save_valid_token(token_cache)
        result = invoke("login")
        assert result.exit_code == 0
        assert fake_provider.calls == []

    def test_login_ambiguous(self, invoke, store):
        store.add_session(SessionDescriptor("alpha", START_URL, "us-east-1"))
        store.add_session(SessionDescriptor("beta", "https://beta.awsapps.com/start", "us-east-1"))

        result = invoke("login")

        assert result.exit_code == 1
        assert "alpha" in result.output
        assert "beta" in result.output

    def test_login_explicit_pair_requires_both(self, invoke):
        result = invoke("login", "--start-url", START_URL)
        assert result.exit_code == 1

    def test_accounts_requires_token(self, invoke, corp):
        result = invoke("accounts")
        assert result.exit_code == 1
        assert "awsso login" in result.output

    def test_accounts_with_roles(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("accounts", "--roles")
        assert result.exit_code == 0
        assert "123456789012" in result.output
        assert "AdminRole" in result.output

    def test_credentials_writes_profile(self, invoke, corp, store):
        with patch("awsso.cli.app.webbrowser.open"):
            result = invoke(
                "credentials", "--account-id", "123456789012", "--role-name", "AdminRole", "-p", "prod", "--default"
            )

        assert result.exit_code == 0, result.output
        profile = store.get_profile("prod")
        assert profile.account_id == "123456789012"
        assert profile.is_default is True

    def test_status(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("status")
        assert result.exit_code == 0
        assert "corp" in result.output
        assert "ACTIVE" in result.output

    def test_credentials_by_account_name(self, invoke, corp, store, token_cache, fake_provider):
        save_valid_token(token_cache)
        result = invoke("credentials", "--account-name", "Prod Account", "--role-name", "AdminRole")

        assert result.exit_code == 0, result.output
        assert "list_accounts" in fake_provider.calls
        assert store.get_profile("prod-account_adminrole").account_id == "123456789012"

    def test_logout(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("logout", "-s", "corp")
        assert result.exit_code == 0
        assert token_cache.load(START_URL) is None


# =============================================================================
# profile
# =============================================================================


class TestProfileCommands:
    """profile 그룹 테스트"""

    @pytest.fixture
    def prod(self, store, corp, credentials_factory):
        from awsso.auth.types import ProfileDescriptor

        return store.write_profile(
            ProfileDescriptor("prod", "123456789012", "AdminRole", region="ap-northeast-2", sso_session="corp"),
            credentials_factory(),
        )

    def test_list(self, invoke, prod):
        result = invoke("profile", "list")
        assert result.exit_code == 0
        assert "prod" in result.output

    def test_rename(self, invoke, prod, store):
        result = invoke("profile", "rename", "prod", "production")
        assert result.exit_code == 0
        assert store.get_profile("production") is not None

    def test_default(self, invoke, prod, store):
        result = invoke("profile", "default", "prod")
        assert result.exit_code == 0
        assert store.get_profile("prod").is_default is True

    def test_delete(self, invoke, prod, store):
        result = invoke("profile", "delete", "prod", "--yes")
        assert result.exit_code == 0
        assert store.get_profile("prod") is None

    def test_delete_missing(self, invoke):
        result = invoke("profile", "delete", "ghost", "--yes")
        assert result.exit_code == 0
        assert "ghost" in result.output

    def test_import_user_profile_collision(self, invoke, store):
        store.config_path.write_text("[profile handmade]\nregion = us-east-1\n")
        result = invoke("profile", "rename", "handmade", "other")
        assert result.exit_code == 1

        result = invoke("profile", "import", "handmade", "--yes")
        assert result.exit_code == 0
        assert store.get_profile("handmade").managed is True


# =============================================================================
# export / exec / status --json
# =============================================================================


class TestScriptingCommands:
    """스크립트용 명령 테스트"""

    ROLE = ("--account-id", "123456789012", "--role-name", "AdminRole")

    def test_export_prints_shell_lines(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("export", *self.ROLE)

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert "export AWS_ACCESS_KEY_ID=ASIATEST123" in lines
        assert "export AWS_SECRET_ACCESS_KEY=test-secret" in lines
        assert "export AWS_SESSION_TOKEN=test-session-token" in lines
        assert "export AWS_REGION=ap-northeast-2" in lines
        assert lines[-1].startswith("# ")

    def test_export_region_override(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("export", *self.ROLE, "--profile-region", "us-west-2")
        assert "export AWS_REGION=us-west-2" in result.stdout.splitlines()

    def test_export_by_account_name(self, invoke, corp, token_cache, fake_provider):
        save_valid_token(token_cache)
        result = invoke("export", "--account-name", "Prod Account", "--role-name", "AdminRole")

        assert result.exit_code == 0, result.output
        assert fake_provider.calls == ["list_accounts", "get_role_credentials"]

    def test_export_unknown_account_name(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("export", "--account-name", "Ghost", "--role-name", "AdminRole")
        assert result.exit_code == 1
        assert "Ghost" in result.output

    def test_export_requires_account(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("export", "--role-name", "AdminRole")
        assert result.exit_code == 1
        assert "--account-id" in result.output

    def test_export_requires_login(self, invoke, corp, fake_provider):
        """토큰이 없으면 인증 창 없이 실패"""
        result = invoke("export", *self.ROLE)
        assert result.exit_code == 1
        assert "awsso login" in result.output
        assert fake_provider.calls == []

    def test_export_to_profile(self, invoke, corp, token_cache, store):
        save_valid_token(token_cache)
        result = invoke("export", *self.ROLE, "-p", "prod")

        assert result.exit_code == 0, result.output
        assert "export AWS_ACCESS_KEY_ID" not in result.stdout
        assert store.get_profile("prod").role_name == "AdminRole"

    def test_exec_injects_credentials(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        with patch("awsso.cli.app.subprocess.run", return_value=MagicMock(returncode=0)) as mock_run:
            result = invoke("exec", *self.ROLE, "--", "aws", "s3", "ls", "--recursive")

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[0] == ["aws", "s3", "ls", "--recursive"]
        env = mock_run.call_args.kwargs["env"]
        assert env["AWS_ACCESS_KEY_ID"] == "ASIATEST123"
        assert env["AWS_SESSION_TOKEN"] == "test-session-token"
        assert env["AWS_REGION"] == "ap-northeast-2"
        assert env["AWS_DEFAULT_REGION"] == "ap-northeast-2"

    def test_exec_propagates_exit_code(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        with patch("awsso.cli.app.subprocess.run", return_value=MagicMock(returncode=3)):
            result = invoke("exec", *self.ROLE, "false")
        assert result.exit_code == 3

    def test_exec_missing_program(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        with patch("awsso.cli.app.subprocess.run", side_effect=FileNotFoundError("no-such-tool")):
            result = invoke("exec", *self.ROLE, "no-such-tool")
        assert result.exit_code == 1
        assert "no-such-tool" in result.output

    def test_exec_requires_command(self, invoke, corp):
        result = invoke("exec", *self.ROLE)
        assert result.exit_code == 2

    def test_status_json_active(self, invoke, corp, token_cache):
        save_valid_token(token_cache)
        result = invoke("status", "--json")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["session"] == "corp"
        assert data[0]["active"] is True
        assert data[0]["status"] == "ACTIVE"
        assert data[0]["expires_in_minutes"] > 400

    def test_status_json_inactive_exit_code(self, invoke, corp):
        result = invoke("status", "--json")

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data == [
            {
                "session": "corp",
                "start_url": START_URL,
                "region": "ap-northeast-2",
                "status": "INACTIVE",
                "active": False,
                "expires_at": None,
                "expires_in_minutes": None,
            }
        ]

    def test_status_without_sessions(self, invoke):
        """세션이 없으면 유효한 세션도 없으므로 종료 코드 1"""
        result = invoke("status", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout) == []
