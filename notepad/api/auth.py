import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notepad.api.config import (
    ACCESS_TOKEN_EXPIRE_DAYS,
    ALGORITHM,
    PASSWORD_HASH_ROUNDS,
    PASSWORD_MIN_LENGTH,
    SECRET_KEY,
)
from notepad.api.database import get_db
from notepad.api.errors import DuplicateEmail, InvalidCredentials, Unauthenticated, ValidationError
from notepad.api.models import User

logger = logging.getLogger(__name__)

# Setup password hashing, salted per hash with a fixed cost factor
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=PASSWORD_HASH_ROUNDS)

# Bearer scheme - missing headers are reported by verify_token, not by FastAPI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token for ``user_id``."""
    issued_at = datetime.now(tz=timezone.utc)
    expire = issued_at + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"sub": str(user_id), "iat": issued_at, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# PUBLIC_INTERFACE
def verify_token(token: Optional[str]) -> int:
    """
    Resolve the user id carried by a session token.

    Raises:
        Unauthenticated if the token is missing, malformed, badly signed or expired.
    """
    if not token:
        raise Unauthenticated("Not authenticated")
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise Unauthenticated()
        return int(subject)
    except (JWTError, ValueError, TypeError):
        raise Unauthenticated()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _validated_email(email: str) -> str:
    try:
        result = validate_email(normalize_email(email), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email address: {exc}")
    return result.normalized.lower()


# PUBLIC_INTERFACE
def register_user(db: Session, name: str, email: str, password: str) -> Tuple[str, User]:
    """
    Create a user and issue a session token for it.

    Raises:
        ValidationError if a field is missing or malformed.
        DuplicateEmail if the email is already registered, in any letter case.
    """
    email = _validated_email(email)
    if db.query(User).filter(User.email == email).first():
        raise DuplicateEmail()

    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    try:
        password_hash = get_password_hash(password)
    except ValueError as exc:
        # passlib refuses some inputs outright, e.g. NUL bytes for bcrypt
        raise ValidationError(f"Invalid password: {exc}")

    user = User(name=name, email=email, password_hash=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        db.rollback()
        raise DuplicateEmail()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return create_access_token(user.id), user


# PUBLIC_INTERFACE
def authenticate_user(db: Session, email: str, password: str) -> Tuple[str, User]:
    """
    Check credentials and issue a session token.

    Raises:
        InvalidCredentials for an unknown email and for a wrong password alike.
    """
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    try:
        matches = user is not None and verify_password(password or "", user.password_hash)
    except ValueError:
        matches = False
    if not matches:
        logger.info("Rejected login attempt")
        raise InvalidCredentials()
    return create_access_token(user.id), user


# PUBLIC_INTERFACE
def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> int:
    """Dependency that resolves the acting user id from the bearer token."""
    return verify_token(token)


# PUBLIC_INTERFACE
def get_current_user(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> User:
    """
    Dependency that returns the currently authenticated user.

    Raises:
        Unauthenticated if the token's user no longer exists.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthenticated()
    return user
