from sqlmodel import Session, select
from typing import Optional

from app.security import hash_password, verify_password
from app.models.user import User
from app.schemas.user import UserCreate

def get_user(session: Session, user_id: int) -> Optional[User]:
    """Get a user by ID"""
    return session.get(User, user_id)

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    """Get a user by email address"""
    return session.exec(select(User).where(User.email == email)).first()

def create_user(session: Session, user: UserCreate) -> User:
    """Create a new user with a hashed password"""
    data = user.model_dump(exclude={"password"})
    db_user = User(**data, hashed_password=hash_password(user.password))
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user

def authenticate_user(session: Session, email: str, password: str) -> Optional[User]:
    """Return the user if the credentials match"""
    user = get_user_by_email(session, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
