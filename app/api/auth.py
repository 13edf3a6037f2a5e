from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.crud.user import authenticate_user, create_user, get_user, get_user_by_email
from app.database import get_session
from app.errors import UnauthorizedError
from app.models.user import User
from app.schemas.user import Token, UserCreate, UserLogin, UserResponse
from app.security import create_access_token, decode_access_token

router = APIRouter(tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session)
) -> User:
    """Resolve the bearer token to an active user or reject the request."""
    if creds is None or not creds.credentials:
        raise UnauthorizedError("Missing token")

    subject = decode_access_token(creds.credentials)
    if not subject or not subject.isdigit():
        raise UnauthorizedError("Invalid token")

    user = get_user(session, int(subject))
    if not user or not user.is_active:
        raise UnauthorizedError("User not found")
    return user


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user: UserCreate,
    session: Session = Depends(get_session)
) -> UserResponse:
    """Create an account"""
    if get_user_by_email(session, user.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    return create_user(session, user)


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    session: Session = Depends(get_session)
) -> Token:
    """Exchange email and password for a bearer token"""
    user = authenticate_user(session, credentials.email, credentials.password)
    if not user:
        raise UnauthorizedError("Invalid credentials")
    return Token(access_token=create_access_token(user.id), token_type="bearer")


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return current_user
