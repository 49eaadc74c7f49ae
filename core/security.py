from datetime import timedelta
from typing import Optional, Union, Any
from jose import jwt
from passlib.context import CryptContext
from core.config import settings

from core.time_utils import get_current_time

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def token_lifetime() -> timedelta:
    return timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

def create_access_token(subject: Union[str, Any], username: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    expire = get_current_time() + (expires_delta or token_lifetime())

    to_encode = {"exp": expire, "sub": str(subject)}
    if username:
        to_encode["username"] = username

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def decode_access_token(token: str) -> dict:
    """Raises jose.JWTError when the token is malformed, tampered or expired."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
