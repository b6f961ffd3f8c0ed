import pytest
from httpx import AsyncClient

from src.core.auth.dependencies import get_current_actor, require_roles
from src.core.auth.jwt import create_access_token, decode_token
from src.core.auth.models import Actor, UserRole
from src.core.exceptions import AuthenticationError, AuthorizationError


class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token(42, UserRole.ACCOUNTANT.value, name="Cashier")
        payload = decode_token(token)

        assert payload["sub"] == "42"
        assert payload["role"] == "Accountant"
        assert payload["name"] == "Cashier"

    def test_wrong_token_type(self):
        token = create_access_token(42, UserRole.ADMIN.value)
        with pytest.raises(AuthenticationError):
            decode_token(token, token_type="refresh")

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            decode_token("not-a-jwt")


class TestCurrentActor:
    async def test_resolves_actor(self):
        token = create_access_token(7, UserRole.ADMIN.value)
        actor = await get_current_actor(authorization=f"Bearer {token}")

        assert actor == Actor(id=7, role="Admin", name=None)

    async def test_missing_header(self):
        with pytest.raises(AuthenticationError):
            await get_current_actor(authorization=None)

    async def test_wrong_scheme(self):
        with pytest.raises(AuthenticationError):
            await get_current_actor(authorization="Basic abc")


class TestRequireRoles:
    async def test_allowed_role(self):
        checker = require_roles(UserRole.ADMIN, UserRole.ACCOUNTANT)
        actor = Actor(id=1, role="Accountant")
        assert await checker(current_actor=actor) is actor

    async def test_forbidden_role(self):
        checker = require_roles(UserRole.SUPER_ADMIN)
        with pytest.raises(AuthorizationError):
            await checker(current_actor=Actor(id=1, role="User"))


class TestAuthApi:
    async def test_expired_or_invalid_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/payments", headers={"Authorization": "Bearer nonsense"}
        )
        assert response.status_code == 401
