"""
Auth routes
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from waterbill.database import get_db
from waterbill.models.ontology import User
from waterbill.models.schemas import LoginRequest, LoginResponse, UserCreate, UserResponse
from waterbill.security.auth import get_actor, get_current_user, get_client_ip, require_admin
from waterbill.security.context import ActorContext
from waterbill.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Log in and receive a bearer token"""
    service = UserService(db)
    try:
        result = service.authenticate(data.username, data.password, ip_address=get_client_ip(request))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )
    return result


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Current user profile"""
    return current_user


@router.post("/register", response_model=UserResponse, status_code=201)
def register_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Create an operator, viewer or admin account"""
    return UserService(db).create_user(data, actor)


@router.get("/users", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """All accounts"""
    return UserService(db).list_users()
