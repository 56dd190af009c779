"""
Authentication and authorization
bcrypt password hashing, HS256 JWT and role guards for the routers
"""
import bcrypt
import logging
from datetime import datetime, timedelta, UTC
from typing import List, Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from waterbill.config import settings
from waterbill.database import get_db
from waterbill.models.ontology import User, UserRole
from waterbill.security.context import ActorContext

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_password_hash(password: str) -> str:
    """Hash a password"""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its hash"""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def create_access_token(user_id: int, role: UserRole, username: Optional[str] = None) -> str:
    """Create a JWT token"""
    expire = datetime.now(UTC) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else str(role),
        "exp": expire
    }
    if username is not None:
        to_encode["username"] = username
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode a JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the logged-in user"""
    payload = decode_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    user = db.query(User).filter(User.id == user_id).first()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    return user


def get_client_ip(request: Request) -> Optional[str]:
    """Client address, honouring the first X-Forwarded-For hop"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_actor(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> ActorContext:
    """Acting identity for audit entries"""
    return ActorContext(performed_by=current_user.username, ip_address=get_client_ip(request))


def require_role(allowed_roles: List[UserRole]):
    """Role guard dependency factory"""
    async def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.warning(f"Access denied for {current_user.username} (role {current_user.role.value})")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(r.value for r in allowed_roles)}"
            )
        return current_user
    return role_checker


# Convenience guards
require_admin = require_role([UserRole.ADMIN])
require_operator_or_admin = require_role([UserRole.ADMIN, UserRole.OPERATOR])
require_any_role = require_role([UserRole.ADMIN, UserRole.OPERATOR, UserRole.VIEWER])
