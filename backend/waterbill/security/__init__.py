# Security module
from waterbill.security.auth import (
    get_password_hash, verify_password, create_access_token,
    get_current_user, get_actor, require_role
)
from waterbill.security.context import ActorContext

__all__ = [
    'get_password_hash', 'verify_password', 'create_access_token',
    'get_current_user', 'get_actor', 'require_role', 'ActorContext'
]
