"""
User service
Operator accounts, login and the bootstrap admin
"""
import logging
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from waterbill.config import settings
from waterbill.exceptions import Conflict
from waterbill.models.ontology import User, UserRole, AuditAction
from waterbill.models.schemas import UserCreate
from waterbill.security.auth import get_password_hash, verify_password, create_access_token
from waterbill.security.context import ActorContext
from waterbill.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class UserService:
    """User service"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def list_users(self) -> List[User]:
        """All accounts, newest first"""
        return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    def create_user(self, data: UserCreate, actor: Optional[ActorContext] = None) -> User:
        """Create an account with the requested role"""
        if self.get_user_by_username(data.username):
            raise Conflict(f'Username "{data.username}" already exists')

        user = User(
            username=data.username,
            password_hash=get_password_hash(data.password),
            name=data.name,
            role=data.role,
            is_active=True,
        )
        try:
            self.db.add(user)
            self.db.flush()
            AuditService(self.db).log(
                action=AuditAction.CREATE,
                entity_type="users",
                entity_id=user.id,
                actor=actor,
                details={"username": user.username, "name": user.name, "role": user.role.value},
                description=f'Created user "{user.username}" with role {user.role.value}',
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict(f'Username "{data.username}" already exists')
        except Exception:
            self.db.rollback()
            logger.error(f"Creation of user '{data.username}' rolled back", exc_info=True)
            raise

        self.db.refresh(user)
        logger.info(f"Created user '{user.username}' with role {user.role.value}")
        return user

    def ensure_default_admin(self) -> dict:
        """Create the bootstrap admin if missing. Idempotent.

        Returns dict with count of created items.
        """
        stats = {"users": 0}
        if not self.get_user_by_username(settings.DEFAULT_ADMIN_USERNAME):
            self.db.add(User(
                username=settings.DEFAULT_ADMIN_USERNAME,
                password_hash=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
                name="Administrator",
                role=UserRole.ADMIN,
                is_active=True,
            ))
            self.db.commit()
            stats["users"] = 1
            logger.info(f"Created default admin user '{settings.DEFAULT_ADMIN_USERNAME}'")
        return stats

    def authenticate(self, username: str, password: str,
                     ip_address: Optional[str] = None) -> Optional[dict]:
        """Check credentials and issue a token; None on bad credentials"""
        user = self.get_user_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for '{username}'")
            return None

        if not user.is_active:
            raise ValueError("User account is inactive")

        token = create_access_token(user.id, user.role, username=user.username)

        AuditService(self.db).log(
            action=AuditAction.CREATE,
            entity_type="auth_login",
            entity_id=user.id,
            actor=ActorContext(performed_by=user.username, ip_address=ip_address),
            details={"username": user.username, "role": user.role.value},
            description=f'User "{user.username}" logged in',
        )
        self.db.commit()

        return {
            'access_token': token,
            'token_type': 'bearer',
            'user': user,
        }
