# tests/auth/test_auth_resolver.py
"""
awsso/auth/resolver.py 테스트

우선순위:
    명시적 URL+리전 > 세션 이름 > 유효 토큰이 있는 유일한 세션 > 유일한 설정 세션
"""

from datetime import timedelta

import pytest

from awsso.auth.cache.cache import CachedToken
from awsso.auth.resolver import ResolutionSource, SessionResolver
from awsso.auth.types import (
    ConfigurationError,
    ResolutionAmbiguous,
    ResolutionNotFound,
    SessionDescriptor,
)

URL_A = "https://alpha.awsapps.com/start"
URL_B = "https://beta.awsapps.com/start"


@pytest.fixture
def resolver(store, token_cache):
    return SessionResolver(store, token_cache)


@pytest.fixture
def two_sessions(store):
    store.add_session(SessionDescriptor("alpha", URL_A, "ap-northeast-2"))
    store.add_session(SessionDescriptor("beta", URL_B, "us-east-1"))


def save_token(token_cache, url, expires_at):
    token_cache.save(CachedToken(url, "ap-northeast-2", "token", expires_at))


class TestExplicitInputs:
    """명시적 URL/리전"""

    def test_explicit_pair_wins(self, resolver, two_sessions):
        resolved = resolver.resolve("https://adhoc.awsapps.com/start", "eu-west-1", session_name="alpha")

        assert resolved.source is ResolutionSource.EXPLICIT
        assert resolved.session.name is None
        assert resolved.session.start_url == "https://adhoc.awsapps.com/start"
        assert resolved.session.display_name == "https://adhoc.awsapps.com/start"

    def test_url_without_region(self, resolver):
        with pytest.raises(ConfigurationError) as exc_info:
            resolver.resolve(explicit_url=URL_A)
        assert exc_info.value.config_key == "region"

    def test_region_without_url(self, resolver):
        with pytest.raises(ConfigurationError) as exc_info:
            resolver.resolve(explicit_region="us-east-1")
        assert exc_info.value.config_key == "start_url"


class TestNamedSession:
    """세션 이름 지정"""

    def test_named(self, resolver, two_sessions):
        resolved = resolver.resolve(session_name="beta")
        assert resolved.source is ResolutionSource.NAMED
        assert resolved.session.start_url == URL_B

    def test_named_missing_lists_available(self, resolver, two_sessions):
        with pytest.raises(ResolutionNotFound) as exc_info:
            resolver.resolve(session_name="gamma")
        assert exc_info.value.available == ["alpha", "beta"]
        assert "alpha, beta" in str(exc_info.value)


class TestImplicitResolution:
    """인자 없이 결정"""

    def test_cached_token_beats_ambiguity(self, resolver, two_sessions, token_cache, now):
        """유효한 토큰이 하나뿐이면 그 세션"""
        save_token(token_cache, URL_A, now + timedelta(hours=1))

        resolved = resolver.resolve(now=now)

        assert resolved.source is ResolutionSource.CACHED_TOKEN
        assert resolved.session.name == "alpha"
        assert resolved.token.start_url == URL_A

    def test_no_tokens_two_sessions_is_ambiguous(self, resolver, two_sessions, now):
        with pytest.raises(ResolutionAmbiguous) as exc_info:
            resolver.resolve(now=now)

        assert exc_info.value.candidates == ["alpha", "beta"]
        message = str(exc_info.value)
        assert "alpha" in message and "beta" in message
        assert "awsso login --session-name alpha" in message

    def test_expired_token_is_ignored(self, resolver, two_sessions, token_cache, now):
        save_token(token_cache, URL_A, now)
        with pytest.raises(ResolutionAmbiguous):
            resolver.resolve(now=now)

    def test_two_valid_tokens_is_ambiguous(self, resolver, two_sessions, token_cache, now):
        save_token(token_cache, URL_A, now + timedelta(hours=1))
        save_token(token_cache, URL_B, now + timedelta(hours=1))
        with pytest.raises(ResolutionAmbiguous):
            resolver.resolve(now=now)

    def test_single_configured_session(self, resolver, store, now):
        store.add_session(SessionDescriptor("only", URL_A, "ap-northeast-2"))
        resolved = resolver.resolve(now=now)
        assert resolved.source is ResolutionSource.SINGLE_SESSION
        assert resolved.session.name == "only"
        assert resolved.token is None

    def test_no_sessions(self, resolver, now):
        with pytest.raises(ResolutionNotFound) as exc_info:
            resolver.resolve(now=now)
        assert exc_info.value.name is None
        assert "awsso session add" in str(exc_info.value)
