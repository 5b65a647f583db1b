"""Local identity provider: bcrypt password hashes in the ``users`` table."""

from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from database import User


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def register_user(db: Session, username: str, password: str) -> User:
    """Creates a user. Raises ``ValueError`` if the name is blank or taken."""
    username = username.strip()
    if not username or not password:
        raise ValueError("Username and password are required.")
    if db.query(User).filter(User.username == username).first():
        raise ValueError(f"User '{username}' already exists.")

    user = User(username=username, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, username: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.username == username).first()
    if user and verify_password(password, user.password_hash):
        return user
    return None
