from typing import Annotated

from fastapi import Depends, Header

from src.core.auth.jwt import decode_token
from src.core.auth.models import Actor, UserRole
from src.core.exceptions import AuthenticationError, AuthorizationError


async def get_current_actor(
    authorization: Annotated[str | None, Header()] = None,
) -> Actor:
    """
    Dependency resolving the authenticated actor from the bearer token.

    Usage:
        @router.get("/me")
        async def get_me(actor: Actor = Depends(get_current_actor)):
            return actor
    """
    if not authorization:
        raise AuthenticationError("Authorization header required")

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization.replace("Bearer ", "", 1)
    payload = decode_token(token, token_type="access")

    try:
        actor_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Token subject is missing or invalid")

    role = payload.get("role")
    if not role:
        raise AuthenticationError("Token has no role")

    return Actor(id=actor_id, role=role, name=payload.get("name"))


def require_roles(*roles: UserRole):
    """
    Dependency factory to require specific roles.

    Usage:
        @router.post("/ledger/accounts")
        async def create_account(
            actor: Actor = Depends(require_roles(UserRole.ADMIN))
        ):
            ...
    """

    async def role_checker(
        current_actor: Actor = Depends(get_current_actor),
    ) -> Actor:
        if not current_actor.has_role(*roles):
            allowed = ", ".join(r.value for r in roles)
            raise AuthorizationError(f"Required role: {allowed}")
        return current_actor

    return role_checker


# Convenience dependencies
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
LedgerWriter = Annotated[
    Actor, Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.ACCOUNTANT))
]
LedgerReader = Annotated[
    Actor,
    Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.ACCOUNTANT, UserRole.USER)),
]
