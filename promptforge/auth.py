"""
auth.py — promptforge lightweight token auth

- Email + password (hashed) based users table (in Supabase)
- Login returns access token (JWT-ish, signed with SECRET_KEY)
- get_current_user dependency for protected routes
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field
from supabase import Client

from .db import first_row, get_db
from .settings import Settings, get_settings

auth_router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer()

# --------------------------------------------------------------------
# MODELS
# --------------------------------------------------------------------


class User(BaseModel):
    id: uuid.UUID
    email: EmailStr


class UserInDB(User):
    password_hash: str


class AuthToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)


# --------------------------------------------------------------------
# HELPERS
# --------------------------------------------------------------------


def hash_password(password: str, settings: Settings) -> str:
    return hmac.new(settings.PASSWORD_SALT.encode(), password.encode(), hashlib.sha256).hexdigest()


def create_token(user_id: str, settings: Settings, now: Optional[int] = None) -> str:
    """
    Small JWT-like token:
    base64(user_id|expires|signature)
    """
    expires = int(now if now is not None else time.time()) + settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    raw = f"{user_id}|{expires}"
    sig = hmac.new(settings.SECRET_KEY.encode(), raw.encode(), hashlib.sha256).hexdigest()
    return base64.urlsafe_b64encode(f"{raw}|{sig}".encode()).decode()


def decode_token(token: str, settings: Settings) -> str:
    try:
        decoded = base64.urlsafe_b64decode(token.encode()).decode()
        user_id, exp, sig = decoded.split("|")
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"Cannot decode token: {exc}")

    raw = f"{user_id}|{exp}"
    expected_sig = hmac.new(settings.SECRET_KEY.encode(), raw.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected_sig, sig):
        raise ValueError("Invalid signature")
    if int(exp) < int(time.time()):
        raise ValueError("Token expired")
    return user_id


def _get_user_by_email(db: Client, email: str) -> Optional[UserInDB]:
    data = first_row(
        db.table("users")
        .select("id,email,password_hash")
        .eq("email", email.lower())
        .limit(1)
        .execute()
    )
    if not data:
        return None
    return UserInDB(id=uuid.UUID(data["id"]), email=data["email"], password_hash=data["password_hash"])


def _get_user_by_id(db: Client, user_id: str) -> Optional[User]:
    data = first_row(db.table("users").select("id,email").eq("id", user_id).limit(1).execute())
    if not data:
        return None
    return User(id=uuid.UUID(data["id"]), email=data["email"])


# --------------------------------------------------------------------
# API
# --------------------------------------------------------------------


@auth_router.post("/signup", response_model=AuthToken, status_code=status.HTTP_201_CREATED)
def signup(
    body: SignupRequest,
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if _get_user_by_email(db, body.email):
        raise HTTPException(status_code=409, detail="User already exists")

    row = first_row(
        db.table("users")
        .insert({"email": body.email.lower(), "password_hash": hash_password(body.password, settings)})
        .execute()
    )
    return AuthToken(access_token=create_token(row["id"], settings))


@auth_router.post("/login", response_model=AuthToken)
def login(
    body: LoginRequest,
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = _get_user_by_email(db, body.email)
    if not user or not hmac.compare_digest(user.password_hash, hash_password(body.password, settings)):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    return AuthToken(access_token=create_token(str(user.id), settings))


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(security),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    try:
        user_id = decode_token(creds.credentials, settings)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    user = _get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    request.state.user_id = user.id
    return user


@auth_router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)):
    return user
