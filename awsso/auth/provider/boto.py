# awsso/auth/provider/boto.py
"""
boto3 기반 IdentityProviderClient 구현

SSO OIDC(sso-oidc) 와 SSO 포털(sso) API를 호출합니다.
boto3 클라이언트는 동기 API이므로 asyncio.to_thread 로 실행합니다.

botocore ClientError 코드 매핑:
    - AuthorizationPendingException -> AuthPending
    - SlowDownException -> AuthSlowDown
    - ExpiredTokenException -> AuthExpired
    - AccessDeniedException -> AuthDenied
    - UnauthorizedException (sso 포털) -> CredentialsExpired
    - 그 외 -> ProviderError
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...config import settings
from ...exceptions import get_error_code, is_access_denied
from ..types import (
    AccountInfo,
    AuthDenied,
    AuthExpired,
    AuthPending,
    AuthSlowDown,
    ClientRegistration,
    CredentialsExpired,
    DeviceAuthorization,
    IdentityProviderClient,
    ProviderError,
    RoleCredentials,
    TokenResponse,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "sso"

_CLIENT_CONFIG = Config(
    connect_timeout=5,
    read_timeout=15,
    retries={"max_attempts": 2},
)


class Boto3IdentityProviderClient(IdentityProviderClient):
    """boto3 sso-oidc / sso 클라이언트 기반 Provider

    Args:
        region: SSO 리전 (SessionDescriptor.region)
        session: 사용할 boto3.Session (None이면 새로 생성)
    """

    def __init__(self, region: str, session: boto3.Session | None = None):
        self.region = region
        self._session = session or boto3.Session(region_name=region)
        self._oidc_client: Any = None
        self._sso_client: Any = None

    # -------------------------------------------------------------------------
    # 클라이언트
    # -------------------------------------------------------------------------

    @property
    def oidc(self) -> Any:
        if self._oidc_client is None:
            self._oidc_client = self._session.client("sso-oidc", region_name=self.region, config=_CLIENT_CONFIG)
        return self._oidc_client

    @property
    def sso(self) -> Any:
        if self._sso_client is None:
            self._sso_client = self._session.client("sso", region_name=self.region, config=_CLIENT_CONFIG)
        return self._sso_client

    @staticmethod
    def _provider_error(operation: str, error: Exception) -> ProviderError:
        code = get_error_code(error)
        message = str(error)
        if isinstance(error, ClientError):
            message = error.response.get("Error", {}).get("Message") or message
        logger.warning("SSO 호출 실패: %s (%s: %s)", operation, code, message)
        return ProviderError(PROVIDER_NAME, operation, message, error_code=code, cause=error)

    # -------------------------------------------------------------------------
    # OIDC
    # -------------------------------------------------------------------------

    async def register_client(self, client_name: str, client_type: str, scopes: list[str]) -> ClientRegistration:
        return await asyncio.to_thread(self._register_client_sync, client_name, client_type, scopes)

    def _register_client_sync(self, client_name: str, client_type: str, scopes: list[str]) -> ClientRegistration:
        try:
            response = self.oidc.register_client(clientName=client_name, clientType=client_type, scopes=scopes)
        except (ClientError, BotoCoreError) as e:
            raise self._provider_error("register_client", e) from e

        expires_at = None
        if response.get("clientSecretExpiresAt"):
            expires_at = datetime.fromtimestamp(int(response["clientSecretExpiresAt"]), tz=timezone.utc)

        return ClientRegistration(
            client_id=response["clientId"],
            client_secret=response["clientSecret"],
            expires_at=expires_at,
        )

    async def start_device_authorization(
        self, registration: ClientRegistration, start_url: str
    ) -> DeviceAuthorization:
        return await asyncio.to_thread(self._start_device_authorization_sync, registration, start_url)

    def _start_device_authorization_sync(self, registration: ClientRegistration, start_url: str) -> DeviceAuthorization:
        try:
            response = self.oidc.start_device_authorization(
                clientId=registration.client_id,
                clientSecret=registration.client_secret,
                startUrl=start_url,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._provider_error("start_device_authorization", e) from e

        return DeviceAuthorization(
            device_code=response["deviceCode"],
            user_code=response.get("userCode", ""),
            verification_uri=response.get("verificationUri", ""),
            verification_uri_complete=response.get("verificationUriComplete"),
            interval=int(response.get("interval") or settings.DEFAULT_POLL_INTERVAL_SECONDS),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=int(response.get("expiresIn", 600))),
        )

    async def create_token(self, registration: ClientRegistration, device_code: str) -> TokenResponse:
        return await asyncio.to_thread(self._create_token_sync, registration, device_code)

    def _create_token_sync(self, registration: ClientRegistration, device_code: str) -> TokenResponse:
        try:
            response = self.oidc.create_token(
                clientId=registration.client_id,
                clientSecret=registration.client_secret,
                grantType="urn:ietf:params:oauth:grant-type:device_code",
                deviceCode=device_code,
            )
        except ClientError as e:
            code = get_error_code(e)
            if code == "AuthorizationPendingException":
                raise AuthPending() from e
            if code == "SlowDownException":
                raise AuthSlowDown() from e
            if code == "ExpiredTokenException":
                raise AuthExpired(cause=e) from e
            if is_access_denied(e):
                raise AuthDenied(cause=e) from e
            raise self._provider_error("create_token", e) from e
        except BotoCoreError as e:
            raise self._provider_error("create_token", e) from e

        return TokenResponse(
            access_token=response["accessToken"],
            expires_in=int(response.get("expiresIn", 0)),
            token_type=response.get("tokenType", "Bearer"),
        )

    # -------------------------------------------------------------------------
    # SSO 포털
    # -------------------------------------------------------------------------

    def _portal_error(self, operation: str, error: Exception) -> Exception:
        if get_error_code(error) == "UnauthorizedException":
            return CredentialsExpired(cause=error)
        return self._provider_error(operation, error)

    async def list_accounts(self, access_token: str) -> list[AccountInfo]:
        return await asyncio.to_thread(self._list_accounts_sync, access_token)

    def _list_accounts_sync(self, access_token: str) -> list[AccountInfo]:
        accounts: list[AccountInfo] = []
        try:
            paginator = self.sso.get_paginator("list_accounts")
            for page in paginator.paginate(accessToken=access_token):
                for entry in page.get("accountList", []):
                    accounts.append(
                        AccountInfo(
                            id=str(entry.get("accountId", "")),
                            name=entry.get("accountName", ""),
                            email=entry.get("emailAddress"),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._portal_error("list_accounts", e) from e

        return sorted(accounts, key=lambda account: account.name.lower())

    async def list_account_roles(self, access_token: str, account_id: str) -> list[str]:
        return await asyncio.to_thread(self._list_account_roles_sync, access_token, account_id)

    def _list_account_roles_sync(self, access_token: str, account_id: str) -> list[str]:
        roles: list[str] = []
        try:
            paginator = self.sso.get_paginator("list_account_roles")
            for page in paginator.paginate(accessToken=access_token, accountId=account_id):
                roles.extend(str(entry.get("roleName")) for entry in page.get("roleList", []))
        except (ClientError, BotoCoreError) as e:
            raise self._portal_error("list_account_roles", e) from e

        return sorted(roles)

    async def get_role_credentials(self, access_token: str, account_id: str, role_name: str) -> RoleCredentials:
        return await asyncio.to_thread(self._get_role_credentials_sync, access_token, account_id, role_name)

    def _get_role_credentials_sync(self, access_token: str, account_id: str, role_name: str) -> RoleCredentials:
        try:
            response = self.sso.get_role_credentials(
                accessToken=access_token,
                accountId=account_id,
                roleName=role_name,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._portal_error("get_role_credentials", e) from e

        creds = response.get("roleCredentials") or {}
        expiration_ms = int(creds.get("expiration", 0))
        return RoleCredentials(
            access_key_id=creds.get("accessKeyId", ""),
            secret_access_key=creds.get("secretAccessKey", ""),
            session_token=creds.get("sessionToken", ""),
            expires_at=datetime.fromtimestamp(expiration_ms / 1000, tz=timezone.utc),
        )
