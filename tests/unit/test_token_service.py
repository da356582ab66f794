"""Unit tests for session token issuing and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from config import JWTSettings
from errors import TokenInvalidError, TokenMissingError
from services.token_service import TokenService, extract_bearer_token

SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def settings() -> JWTSettings:
    return JWTSettings(
        jwt_secret=SECRET,
        jwt_private_key="",
        jwt_public_key="",
        jwt_issuer="gabinete",
        jwt_audience="gabinete.api",
        session_token_ttl_seconds=3600,
    )


@pytest.fixture
def service(settings) -> TokenService:
    return TokenService(settings)


@pytest.mark.parametrize(
    "header, expected",
    [
        (None, None),
        ("", None),
        ("Bearer", None),
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("Token xyz", "xyz"),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


class TestIssueVerify:
    def test_round_trip_claims(self, service):
        token = service.issue("user-1", "coordenador", "acct-1")
        claims = service.verify(token)
        assert claims.subject_id == "user-1"
        assert claims.role == "coordenador"
        assert claims.account_id == "acct-1"
        assert claims.expires_at - claims.issued_at == 3600

    def test_verify_is_repeatable(self, service):
        token = service.issue("user-1", "assessor")
        first, second = service.verify(token), service.verify(token)
        assert first.subject_id == second.subject_id == "user-1"
        assert first == second

    def test_default_ttl_is_thirty_days(self, settings):
        settings = settings.model_copy(update={"session_token_ttl_seconds": 2592000})
        svc = TokenService(settings)
        claims = svc.verify(svc.issue("u", "admin"))
        assert claims.expires_at - claims.issued_at == 30 * 24 * 3600
        assert claims.account_id is None

    def test_uses_hs256(self, service):
        header = jwt.get_unverified_header(service.issue("u", "admin"))
        assert header["alg"] == "HS256"


class TestVerifyRejects:
    @pytest.mark.parametrize("token", [None, ""])
    def test_missing(self, service, token):
        with pytest.raises(TokenMissingError):
            service.verify(token)

    def test_expired(self, service):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = service.issue("u", "admin", now=past)
        with pytest.raises(TokenInvalidError):
            service.verify(token)

    def test_wrong_signature(self, service, settings):
        other = TokenService(settings.model_copy(update={"jwt_secret": "another-secret-value-0123456789-abcdef"}))
        with pytest.raises(TokenInvalidError):
            service.verify(other.issue("u", "admin"))

    def test_wrong_audience(self, service, settings):
        other = TokenService(settings.model_copy(update={"jwt_audience": "elsewhere"}))
        with pytest.raises(TokenInvalidError):
            service.verify(other.issue("u", "admin"))

    def test_garbage(self, service):
        with pytest.raises(TokenInvalidError):
            service.verify("not.a.jwt")

    def test_missing_subject(self, service):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"iss": "gabinete", "aud": "gabinete.api", "iat": now, "exp": now + 60},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            service.verify(token)

    def test_alg_none_rejected(self, service):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"sub": "u", "iss": "gabinete", "aud": "gabinete.api", "iat": now, "exp": now + 60},
            key=None,
            algorithm="none",
        )
        with pytest.raises(TokenInvalidError):
            service.verify(token)


def test_missing_signing_material_refuses_to_start(settings):
    with pytest.raises(RuntimeError):
        TokenService(settings.model_copy(update={"jwt_secret": ""}))
