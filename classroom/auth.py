"""Account credentials and the bearer tokens the services accept.

Tokens carry the account email as ``sub`` and the role as a hint for
clients; authorization always re-reads the role from the database.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import get_settings
from .models import User
from .schemas import Token

logger = logging.getLogger(__name__)

# sha256_crypt hashes from older accounts still verify and are rewritten on login.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "sha256_crypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def issue_token(user: User, expires_delta: Optional[timedelta] = None) -> Token:
    settings = get_settings()
    issued_at = datetime.utcnow()
    claims = {
        "sub": user.email,
        "role": user.role.value,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
    }
    return Token(access_token=jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm))


def token_subject(token: str) -> str:
    """Email the token was issued for; 401 when it is invalid, expired or anonymous."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise _unauthorized("Invalid token") from exc
    subject = claims.get("sub")
    if not subject:
        raise _unauthorized("Missing subject in token")
    return subject


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user: Optional[User] = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None:
        return None
    valid, new_hash = pwd_context.verify_and_update(password, user.hashed_password)
    if not valid:
        return None
    if new_hash:
        user.hashed_password = new_hash
        db.commit()
        logger.info("Upgraded password hash for user %s", user.id)
    return user
