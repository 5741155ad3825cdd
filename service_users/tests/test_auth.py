"""
Unit tests for bearer token authentication and the authorization gate.
"""

from types import SimpleNamespace

import pytest
from jose import jwt

from shared.errors import AuthenticationError
from service_users.app.auth import CallerIdentity, TokenAuthenticator, UsernameMatchGate
from service_users.tests.helpers import TEST_JWT_SECRET, make_token


class FakeRequest:
    """Just enough of a Starlette request for the authenticator."""

    def __init__(self, headers=None):
        self.headers = headers or {}
        self.state = SimpleNamespace()


class TestTokenAuthenticator:
    """Test cases for TokenAuthenticator."""

    @pytest.fixture
    def authenticator(self):
        return TokenAuthenticator(TEST_JWT_SECRET)

    def test_verify_valid_token(self, authenticator):
        """Test a correctly signed token yields the caller."""
        identity = authenticator.verify(make_token("alice"))

        assert identity.username == "alice"
        assert identity.scopes == {"read"}
        assert identity.claims["username"] == "alice"

    def test_verify_wrong_secret(self, authenticator):
        """Test a token signed with another secret is rejected."""
        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(make_token("alice", secret="other-secret"))

        assert exc_info.value.status_code == 401

    def test_verify_garbage(self, authenticator):
        with pytest.raises(AuthenticationError):
            authenticator.verify("not-a-jwt")

    def test_verify_missing_username_claim(self, authenticator):
        """Test tokens without a username claim are rejected."""
        token = jwt.encode({"scope": "read"}, TEST_JWT_SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(token)

        assert exc_info.value.message == "Did not receive required data from JWT token"

    def test_issue_round_trip(self, authenticator):
        token = authenticator.issue("bob", scope="read write")

        assert authenticator.verify(token).scopes == {"read", "write"}

    @pytest.mark.asyncio
    async def test_authenticate_sets_request_state(self, authenticator):
        request = FakeRequest({"Authorization": f"Bearer {make_token('alice')}"})

        identity = await authenticator.authenticate(request)

        assert identity.username == "alice"
        assert request.state.caller is identity

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "Basic YWxpY2U6cHc=", "Bearer ", "Bearer    "])
    async def test_authenticate_rejects_bad_headers(self, authenticator, header):
        headers = {"Authorization": header} if header is not None else {}

        with pytest.raises(AuthenticationError):
            await authenticator.authenticate(FakeRequest(headers))


class TestUsernameMatchGate:
    """Test cases for UsernameMatchGate."""

    @pytest.fixture
    def gate(self):
        return UsernameMatchGate()

    def _caller(self, username):
        return CallerIdentity(username=username, scopes=set(), claims={})

    def test_own_record(self, gate):
        assert gate.is_authorized(self._caller("alice"), "alice")

    def test_case_insensitive(self, gate):
        assert gate.is_authorized(self._caller("ALICE"), "alice")
        assert gate.is_authorized(self._caller("alice"), "Alice")

    def test_other_record(self, gate):
        assert not gate.is_authorized(self._caller("eve"), "alice")
