from src.core.auth.models import Actor, UserRole
from src.core.auth.jwt import create_access_token, decode_token
from src.core.auth.dependencies import get_current_actor, require_roles

__all__ = [
    "Actor",
    "UserRole",
    "create_access_token",
    "decode_token",
    "get_current_actor",
    "require_roles",
]
