import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status, Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError

from core.config import settings
from core.database import get_store
from core.security import create_access_token, decode_access_token, get_password_hash, token_lifetime, verify_password
from models.user import LoginRequest, LoginResponse, Token, User, UserCreate, UserOut
from storage.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)

async def get_current_user(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme),
    store: RecordStore = Depends(get_store),
) -> User:
    """
    Identity from the session cookie, or from a bearer token when there is no cookie.
    Establishes who is calling; handlers still check ownership of what they touch.
    """
    token = request.cookies.get(settings.AUTH_COOKIE_NAME) or bearer_token
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise credentials_exception

    user = await store.get_user(user_id)
    if user is None:
        raise credentials_exception
    return user

@router.post("/register", response_model=UserOut)
async def register(user_in: UserCreate, store: RecordStore = Depends(get_store)):
    if len(user_in.password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
        )
    if await store.get_user_by_username(user_in.username):
        raise HTTPException(status_code=400, detail="Username already exists")

    user = await store.create_user(
        username=user_in.username,
        hashed_password=get_password_hash(user_in.password),
        api_key=user_in.api_key or None,
    )
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user.summary()

async def authenticate(store: RecordStore, username: str, password: str) -> User:
    user = await store.get_user_by_username(username)
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

@router.post("/login", response_model=LoginResponse)
async def login(credentials: LoginRequest, response: Response, store: RecordStore = Depends(get_store)):
    """Browser login: the token only travels in the httponly session cookie."""
    user = await authenticate(store, credentials.username, credentials.password)

    lifetime = token_lifetime()
    access_token = create_access_token(subject=user.id, username=user.username, expires_delta=lifetime)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        max_age=int(lifetime.total_seconds()),
    )
    return LoginResponse(message="Login successful", user=user.summary())

@router.post("/token", response_model=Token)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), store: RecordStore = Depends(get_store)):
    """OAuth2 password flow for API clients; the token is sent back as a Bearer header."""
    user = await authenticate(store, form_data.username, form_data.password)
    access_token = create_access_token(subject=user.id, username=user.username)
    return Token(access_token=access_token)

@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME, httponly=True, secure=settings.COOKIE_SECURE, samesite="strict")
    return {"message": "Logged out"}

@router.get("/me", response_model=UserOut)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user.summary()
