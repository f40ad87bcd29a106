"""
awsso/cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 CLI 애플리케이션 진입점입니다.
모든 명령은 SessionManager 파사드만 사용합니다.

명령어 구조:
    awsso --version                     # 버전 표시
    awsso session list|add|edit|delete|import
    awsso profile list|delete|rename|import|default
    awsso login [-s NAME | --start-url URL --region REGION] [--force]
    awsso logout [-s NAME]
    awsso accounts [-s NAME]            # 접근 가능한 계정/역할
    awsso credentials (--account-id ID | --account-name NAME) --role-name ROLE [--profile NAME] [--default]
    awsso export (--account-id ID | --account-name NAME) --role-name ROLE [--profile NAME]
    awsso exec (--account-id ID | --account-name NAME) --role-name ROLE -- COMMAND...
    awsso status [--json]

세션 결정 규칙:
    --start-url + --region > --session-name > 유효한 토큰이 있는 유일한 세션 > 유일한 설정 세션

Usage:
    $ awsso session add corp --start-url https://corp.awsapps.com/start --region ap-northeast-2
    $ awsso login
    $ awsso credentials --account-id 123456789012 --role-name AdminRole --default
    $ eval "$(awsso export --account-name prod --role-name AdminRole)"
    $ awsso exec --account-name prod --role-name AdminRole -- aws s3 ls
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import shlex
import subprocess
import webbrowser
from collections.abc import Callable
from typing import Any

import click
from click import Context

from ..auth.cache.expiry import classify
from ..auth.session import SessionManager, credential_environment
from ..auth.types import DeviceAuthorization, SessionDescriptor
from ..config import get_env_bool, get_version, settings
from ..exceptions import AwssoError
from .ui.console import (
    console,
    print_error,
    print_info,
    print_success,
    print_table,
    print_warning,
    setup_logging,
    status_text,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


# =============================================================================
# 공통 헬퍼
# =============================================================================


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """awsso 예외를 사용자 메시지로 변환하고 종료 코드 1로 종료"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except AwssoError as e:
            logger.debug("명령 실패", exc_info=True)
            print_error(str(e))
            raise SystemExit(1) from e
        except KeyboardInterrupt as e:
            print_warning("취소되었습니다")
            raise SystemExit(130) from e

    return wrapper


def session_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """세션 결정 옵션 (--session-name, --start-url, --region)"""
    func = click.option("--region", "explicit_region", default=None, help="SSO 리전 (--start-url 과 함께 사용)")(func)
    func = click.option("--start-url", "explicit_url", default=None, help="SSO 시작 URL (--region 과 함께 사용)")(func)
    func = click.option("-s", "--session-name", "session_name", default=None, help="SSO 세션 이름")(func)
    return func


def account_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """대상 계정/역할 옵션 (--account-id 또는 --account-name, --role-name)"""
    func = click.option("--role-name", required=True, help="역할 이름")(func)
    func = click.option("--account-name", default=None, help="AWS 계정 이름 (--account-id 대신 사용)")(func)
    func = click.option("--account-id", default=None, help="AWS 계정 ID")(func)
    return func


def get_manager(ctx: Context) -> SessionManager:
    """Context 에 저장된 SessionManager (없으면 기본 경로로 생성)"""
    ctx.ensure_object(dict)
    if ctx.obj.get("manager") is None:
        ctx.obj["manager"] = SessionManager.from_defaults()
    return ctx.obj["manager"]


def resolve(ctx: Context, session_name: str | None, explicit_url: str | None, explicit_region: str | None) -> SessionDescriptor:
    resolved = get_manager(ctx).resolve_session(explicit_url, explicit_region, session_name)
    logger.debug("세션 결정: %s (%s)", resolved.session.display_name, resolved.source.value)
    return resolved.session


def make_prompt(open_browser: bool) -> Callable[[DeviceAuthorization], None]:
    """디바이스 인증 URL/코드 표시 콜백"""

    def _prompt(authorization: DeviceAuthorization) -> None:
        url = authorization.verification_uri_complete or authorization.verification_uri
        console.print()
        console.print("[bold]브라우저에서 아래 URL을 열고 코드를 확인하세요[/bold]")
        console.print(f"  URL : [cyan]{url}[/cyan]")
        console.print(f"  코드: [bold yellow]{authorization.user_code}[/bold yellow]")
        console.print()
        if open_browser:
            try:
                webbrowser.open(url)
            except webbrowser.Error as e:
                logger.debug("브라우저 실행 실패: %s", e)
        print_info("승인을 기다리는 중... (Ctrl+C 로 취소)")

    return _prompt


def _format_time(value: Any) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S UTC") if value else "-"


# =============================================================================
# 메인 그룹
# =============================================================================


@click.group()
@click.version_option(get_version(), prog_name="awsso")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="로그 레벨 (기본: 환경변수 LOG_LEVEL 또는 WARNING)",
)
@click.pass_context
def cli(ctx: Context, log_level: str | None) -> None:
    """awsso - AWS SSO 세션/프로파일/자격증명 관리"""
    setup_logging(log_level)
    ctx.ensure_object(dict)


# =============================================================================
# session
# =============================================================================


@cli.group("session")
def session_group() -> None:
    """SSO 세션 관리 ([sso-session] 섹션)"""


@session_group.command("list")
@click.pass_context
@handle_errors
def session_list(ctx: Context) -> None:
    """설정된 SSO 세션 목록"""
    rows = get_manager(ctx).status()
    if not rows:
        print_info("설정된 SSO 세션이 없습니다. 'awsso session add' 로 추가하세요")
        return

    print_table(
        "SSO 세션",
        ["이름", "시작 URL", "리전", "관리", "상태", "남은 시간"],
        [
            [
                row.session.name,
                row.session.start_url,
                row.session.region,
                "awsso" if row.session.managed else "user",
                status_text(row.status.value),
                row.time_remaining,
            ]
            for row in rows
        ],
    )


@session_group.command("add")
@click.argument("name")
@click.option("--start-url", required=True, help="SSO 시작 URL")
@click.option("--region", required=True, help="SSO 리전")
@click.option("--scopes", default=settings.DEFAULT_REGISTRATION_SCOPES, show_default=True, help="등록 스코프")
@click.pass_context
@handle_errors
def session_add(ctx: Context, name: str, start_url: str, region: str, scopes: str) -> None:
    """SSO 세션 추가"""
    session = get_manager(ctx).store.add_session(SessionDescriptor(name, start_url, region, scopes))
    print_success(f"SSO 세션 '{session.name}' 추가됨")


@session_group.command("edit")
@click.argument("name")
@click.option("--start-url", default=None, help="새 SSO 시작 URL")
@click.option("--region", default=None, help="새 SSO 리전")
@click.option("--scopes", default=None, help="새 등록 스코프")
@click.pass_context
@handle_errors
def session_edit(ctx: Context, name: str, start_url: str | None, region: str | None, scopes: str | None) -> None:
    """SSO 세션 수정"""
    if start_url is None and region is None and scopes is None:
        raise click.UsageError("--start-url, --region, --scopes 중 하나 이상을 지정하세요")

    get_manager(ctx).store.edit_session(name, start_url=start_url, region=region, registration_scopes=scopes)
    print_success(f"SSO 세션 '{name}' 수정됨")
    if start_url is not None:
        print_info("시작 URL이 바뀌어 다시 로그인해야 합니다: awsso login -s " + name)


@session_group.command("delete")
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="확인 없이 삭제")
@click.pass_context
@handle_errors
def session_delete(ctx: Context, name: str, yes: bool) -> None:
    """SSO 세션 삭제 (관리 영역만)"""
    if not yes:
        click.confirm(f"SSO 세션 '{name}'을(를) 삭제할까요?", abort=True)

    if get_manager(ctx).store.delete_session(name):
        print_success(f"SSO 세션 '{name}' 삭제됨")
    else:
        print_warning(f"SSO 세션 '{name}'이(가) 없습니다")


@session_group.command("import")
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="확인 없이 이동")
@click.pass_context
@handle_errors
def session_import(ctx: Context, name: str, yes: bool) -> None:
    """사용자 영역의 SSO 세션을 awsso 관리 영역으로 이동"""
    if not yes:
        click.confirm(f"SSO 세션 '{name}'을(를) awsso 관리 영역으로 옮길까요?", abort=True)

    get_manager(ctx).store.import_session(name)
    print_success(f"SSO 세션 '{name}'을(를) 관리 영역으로 옮겼습니다")


# =============================================================================
# profile
# =============================================================================


@cli.group("profile")
def profile_group() -> None:
    """프로파일 관리 ([profile] / credentials 섹션)"""


@profile_group.command("list")
@click.pass_context
@handle_errors
def profile_list(ctx: Context) -> None:
    """프로파일 목록"""
    profiles = get_manager(ctx).store.list_profiles()
    if not profiles:
        print_info("프로파일이 없습니다. 'awsso credentials' 로 생성하세요")
        return

    print_table(
        "프로파일",
        ["이름", "계정", "역할", "세션", "리전", "기본", "관리", "상태"],
        [
            [
                profile.profile_name,
                profile.account_id or "-",
                profile.role_name or "-",
                profile.sso_session or "-",
                profile.region or "-",
                "*" if profile.is_default else "",
                "awsso" if profile.managed else "user",
                status_text(classify(profile.expires_at).value),
            ]
            for profile in profiles
        ],
    )


@profile_group.command("delete")
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="확인 없이 삭제")
@click.pass_context
@handle_errors
def profile_delete(ctx: Context, name: str, yes: bool) -> None:
    """프로파일 삭제 (config, credentials 두 파일의 관리 영역)"""
    if not yes:
        click.confirm(f"프로파일 '{name}'을(를) 삭제할까요?", abort=True)

    if get_manager(ctx).store.delete_profile(name):
        print_success(f"프로파일 '{name}' 삭제됨")
    else:
        print_warning(f"프로파일 '{name}'이(가) 없습니다")


@profile_group.command("rename")
@click.argument("old_name")
@click.argument("new_name")
@click.pass_context
@handle_errors
def profile_rename(ctx: Context, old_name: str, new_name: str) -> None:
    """프로파일 이름 변경"""
    get_manager(ctx).store.rename_profile(old_name, new_name)
    print_success(f"프로파일 이름 변경: {old_name} -> {new_name}")


@profile_group.command("import")
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="확인 없이 이동")
@click.pass_context
@handle_errors
def profile_import(ctx: Context, name: str, yes: bool) -> None:
    """사용자 영역의 프로파일을 awsso 관리 영역으로 이동"""
    if not yes:
        click.confirm(f"프로파일 '{name}'을(를) awsso 관리 영역으로 옮길까요?", abort=True)

    get_manager(ctx).store.import_profile(name)
    print_success(f"프로파일 '{name}'을(를) 관리 영역으로 옮겼습니다")


@profile_group.command("default")
@click.argument("name")
@click.pass_context
@handle_errors
def profile_default(ctx: Context, name: str) -> None:
    """프로파일을 [default] 자격증명으로 설정"""
    get_manager(ctx).store.set_default_profile(name)
    print_success(f"기본 프로파일: {name}")


# =============================================================================
# login / logout / accounts / credentials / export / exec / status
# =============================================================================


@cli.command("login")
@session_options
@click.option("--force", is_flag=True, help="유효한 토큰이 있어도 다시 인증")
@click.option(
    "--no-browser",
    is_flag=True,
    default=lambda: get_env_bool("AWSSO_NO_BROWSER"),
    help="브라우저를 자동으로 열지 않음 (AWSSO_NO_BROWSER)",
)
@click.pass_context
@handle_errors
def login_command(
    ctx: Context,
    session_name: str | None,
    explicit_url: str | None,
    explicit_region: str | None,
    force: bool,
    no_browser: bool,
) -> None:
    """SSO 디바이스 인증으로 로그인"""
    manager = get_manager(ctx)
    session = resolve(ctx, session_name, explicit_url, explicit_region)
    token = asyncio.run(
        manager.ensure_authenticated(session, force=force, on_prompt=make_prompt(not no_browser))
    )
    print_success(f"로그인됨: {session.display_name} (만료: {_format_time(token.expires_at)})")


@cli.command("logout")
@session_options
@click.pass_context
@handle_errors
def logout_command(
    ctx: Context,
    session_name: str | None,
    explicit_url: str | None,
    explicit_region: str | None,
) -> None:
    """SSO 토큰과 세션으로 발급된 프로파일 삭제"""
    session = resolve(ctx, session_name, explicit_url, explicit_region)
    removed = get_manager(ctx).logout(session)
    print_success(f"로그아웃됨: {session.display_name}")
    if removed:
        print_info(f"삭제된 프로파일: {', '.join(removed)}")


@cli.command("accounts")
@session_options
@click.option("--roles/--no-roles", default=False, help="계정별 역할 목록도 조회")
@click.pass_context
@handle_errors
def accounts_command(
    ctx: Context,
    session_name: str | None,
    explicit_url: str | None,
    explicit_region: str | None,
    roles: bool,
) -> None:
    """SSO로 접근 가능한 계정 목록"""
    manager = get_manager(ctx)
    session = resolve(ctx, session_name, explicit_url, explicit_region)

    async def _collect() -> list[list[str]]:
        accounts = await manager.list_accounts(session)
        rows = []
        for account in accounts:
            role_names = await manager.list_account_roles(session, account.id) if roles else []
            rows.append([account.id, account.name, account.email or "-", ", ".join(role_names) or "-"])
        return rows

    rows = asyncio.run(_collect())
    if not rows:
        print_info("접근 가능한 계정이 없습니다")
        return
    print_table(f"계정 ({session.display_name})", ["계정 ID", "이름", "이메일", "역할"], rows)


@cli.command("credentials")
@session_options
@account_options
@click.option("-p", "--profile", "profile_name", default=None, help="기록할 프로파일 이름")
@click.option("--profile-region", default=None, help="프로파일 기본 리전 (기본: SSO 리전)")
@click.option("--output", "output_format", type=click.Choice(settings.VALID_OUTPUT_FORMATS), default=None)
@click.option("--default", "set_default", is_flag=True, help="[default] 자격증명으로도 기록")
@click.option(
    "--no-browser",
    is_flag=True,
    default=lambda: get_env_bool("AWSSO_NO_BROWSER"),
    help="브라우저를 자동으로 열지 않음 (AWSSO_NO_BROWSER)",
)
@click.pass_context
@handle_errors
def credentials_command(
    ctx: Context,
    session_name: str | None,
    explicit_url: str | None,
    explicit_region: str | None,
    account_id: str | None,
    account_name: str | None,
    role_name: str,
    profile_name: str | None,
    profile_region: str | None,
    output_format: str | None,
    set_default: bool,
    no_browser: bool,
) -> None:
    """Role 자격증명을 발급받아 프로파일로 기록"""
    manager = get_manager(ctx)
    session = resolve(ctx, session_name, explicit_url, explicit_region)

    async def _activate():
        await manager.ensure_authenticated(session, on_prompt=make_prompt(not no_browser))
        resolved_id, resolved_name = await manager.resolve_account_id(session, account_id, account_name)
        return await manager.activate_profile(
            session,
            resolved_id,
            role_name,
            profile_name=profile_name,
            region=profile_region,
            output_format=output_format,
            set_default=set_default,
            account_name=resolved_name,
        )

    profile = asyncio.run(_activate())
    print_success(f"프로파일 '{profile.profile_name}' 기록됨 (만료: {_format_time(profile.expires_at)})")
    if profile.is_default:
        print_info("[default] 자격증명으로도 설정되었습니다")


@cli.command("export")
@session_options
@account_options
@click.option("-p", "--profile", "profile_name", default=None, help="export 문 대신 이 이름의 프로파일로 기록")
@click.option("--profile-region", default=None, help="AWS_REGION / 프로파일 리전 (기본: SSO 리전)")
@click.pass_context
@handle_errors
def export_command(
    ctx: Context,
    session_name: str | None,
    explicit_url: str | None,
    explicit_region: str | None,
    account_id: str | None,
    account_name: str | None,
    role_name: str,
    profile_name: str | None,
    profile_region: str | None,
) -> None:
    """Role 자격증명을 셸 export 문으로 출력

    로그인된 SSO 토큰이 필요합니다 (인증 창을 띄우지 않음).

    \b
    예:
        eval "$(awsso export --account-name prod --role-name AdminRole)"
    """
    manager = get_manager(ctx)
    session = resolve(ctx, session_name, explicit_url, explicit_region)

    if profile_name:

        async def _activate():
            resolved_id, resolved_name = await manager.resolve_account_id(session, account_id, account_name)
            return await manager.activate_profile(
                session,
                resolved_id,
                role_name,
                profile_name=profile_name,
                region=profile_region,
                account_name=resolved_name,
            )

        profile = asyncio.run(_activate())
        print_success(f"프로파일 '{profile.profile_name}' 기록됨 (만료: {_format_time(profile.expires_at)})")
        print_info(f"사용법: aws s3 ls --profile {profile.profile_name}")
        return

    async def _fetch():
        resolved_id, _ = await manager.resolve_account_id(session, account_id, account_name)
        return await manager.get_role_credentials(session, resolved_id, role_name)

    credentials = asyncio.run(_fetch())
    for key, value in credential_environment(credentials, profile_region or session.region).items():
        click.echo(f"export {key}={shlex.quote(value)}")
    click.echo(f"# 만료: {_format_time(credentials.expires_at)}")


@cli.command("exec", context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@session_options
@account_options
@click.option("--profile-region", default=None, help="AWS_REGION (기본: SSO 리전)")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
@handle_errors
def exec_command(
    ctx: Context,
    session_name: str | None,
    explicit_url: str | None,
    explicit_region: str | None,
    account_id: str | None,
    account_name: str | None,
    role_name: str,
    profile_region: str | None,
    command: tuple[str, ...],
) -> None:
    """Role 자격증명을 환경변수로 주입하여 명령 실행

    명령의 종료 코드를 그대로 반환합니다.

    \b
    예:
        awsso exec --account-id 123456789012 --role-name AdminRole -- aws s3 ls
    """
    manager = get_manager(ctx)
    session = resolve(ctx, session_name, explicit_url, explicit_region)

    async def _fetch():
        resolved_id, _ = await manager.resolve_account_id(session, account_id, account_name)
        return await manager.get_role_credentials(session, resolved_id, role_name)

    credentials = asyncio.run(_fetch())
    env = {**os.environ, **credential_environment(credentials, profile_region or session.region)}

    logger.debug("명령 실행: %s", command[0])
    try:
        result = subprocess.run(list(command), env=env, check=False)  # noqa: S603
    except OSError as e:
        raise AwssoError(f"명령을 실행할 수 없습니다: {command[0]}", e) from e

    if result.returncode != 0:
        raise SystemExit(result.returncode)


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, help="JSON 형식으로 출력 (스크립트용)")
@click.pass_context
@handle_errors
def status_command(ctx: Context, as_json: bool) -> None:
    """세션별 토큰 상태 (유효한 세션이 없으면 종료 코드 1)"""
    rows = get_manager(ctx).status()

    if as_json:
        click.echo(json.dumps([row.to_dict() for row in rows], ensure_ascii=False, indent=2))
    elif not rows:
        print_info("설정된 SSO 세션이 없습니다")
    else:
        print_table(
            "SSO 토큰 상태",
            ["세션", "상태", "남은 시간", "만료 시간"],
            [
                [row.session.name, status_text(row.status.value), row.time_remaining, _format_time(row.expires_at)]
                for row in rows
            ],
        )

    if not any(row.active for row in rows):
        raise SystemExit(1)


def main() -> None:
    """콘솔 스크립트 진입점"""
    cli(obj={})


if __name__ == "__main__":
    main()
