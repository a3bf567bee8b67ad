"""
Authentication endpoints: login, signup, token refresh and the OTP password reset.

The same handlers are mounted for the storefront (`/auth`, `/public`) and the
back office (`/admin/auth`); each mount exposes only the routes it needs.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request

from storefront.auth import (
    REFRESH_TOKEN_TTL,
    SHORT_REFRESH_TOKEN_TTL,
    Principal,
    decode_token,
    get_current_user,
    hash_password,
    hash_token,
    issue_access_token,
    issue_refresh_token,
    verify_password,
)
from storefront.cache import KeyValueStore
from storefront.config import get_settings
from storefront.db import ConflictError, DbClient
from storefront.dependencies import get_db_client, get_kv_store, get_mailer
from storefront.mailer import OTP_EXPIRY_MINUTES, Mailer
from storefront.models import utcnow
from storefront.routes.common import client_ip
from storefront.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyOtpRequest,
)

logger = logging.getLogger(__name__)

LOGIN_ATTEMPT_LIMIT = 5
LOGIN_WINDOW_SECONDS = 60
OTP_TTL_SECONDS = OTP_EXPIRY_MINUTES * 60
VERIFIED_TTL_SECONDS = 5 * 60
OTP_ATTEMPT_LIMIT = 5


def _user_model(user: dict) -> dict:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user["full_name"] or "",
        "roles": user["roles"],
        "created_at": user["created_at"],
    }


def _token_response(
    db: DbClient,
    request: Request,
    user: dict,
    ttl: timedelta,
    remember_me: bool,
) -> dict:
    access = issue_access_token(user["id"], user["roles"])
    refresh = issue_refresh_token(user["id"], user["roles"], ttl)
    db.store_refresh_token(
        user["id"],
        hash_token(refresh),
        utcnow() + ttl,
        remember_me=remember_me,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return {
        "accessToken": access,
        "refreshToken": refresh,
        "user": _user_model(user),
    }


def login(
    payload: LoginRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
    kv: KeyValueStore = Depends(get_kv_store),
):
    attempts = kv.incr(f"login:ip:{client_ip(request)}", LOGIN_WINDOW_SECONDS)
    if attempts > LOGIN_ATTEMPT_LIMIT:
        raise HTTPException(
            status_code=429, detail="too many login attempts, please try again later"
        )
    user = db.get_user_credentials(payload.email)
    if (
        not user
        or not user["is_active"]
        or not verify_password(payload.password, user["password_hash"])
    ):
        raise HTTPException(status_code=401, detail="invalid credentials")
    return _token_response(db, request, user, REFRESH_TOKEN_TTL, remember_me=True)


def signup(
    payload: SignupRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    try:
        user = db.create_user(
            email=payload.email,
            password_hash=hash_password(payload.password),
            full_name=payload.name,
            roles=["customer"],
        )
    except ConflictError:
        raise HTTPException(status_code=409, detail="user already exists")
    ttl = REFRESH_TOKEN_TTL if payload.remember_me else SHORT_REFRESH_TOKEN_TTL
    return _token_response(db, request, user, ttl, remember_me=payload.remember_me)


def refresh(payload: RefreshRequest, db: DbClient = Depends(get_db_client)):
    try:
        principal = decode_token(
            get_settings().refresh_secret, payload.refresh_token, token_type="refresh"
        )
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid refresh token")
    if not db.refresh_token_valid(hash_token(payload.refresh_token)):
        raise HTTPException(status_code=401, detail="invalid refresh token")
    return {"accessToken": issue_access_token(principal.user_id, principal.roles)}


def logout(payload: LogoutRequest, db: DbClient = Depends(get_db_client)):
    if payload.refresh_token:
        db.delete_refresh_token(hash_token(payload.refresh_token))
    return {"success": True}


def me(
    db: DbClient = Depends(get_db_client),
    principal: Principal = Depends(get_current_user),
):
    user = db.get_user(principal.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")
    return _user_model(user)


def forgot_password(
    payload: ForgotPasswordRequest,
    db: DbClient = Depends(get_db_client),
    kv: KeyValueStore = Depends(get_kv_store),
    mailer: Mailer = Depends(get_mailer),
):
    email = payload.email.lower()
    if not db.get_user_credentials(email):
        return {"message": "If email exists, OTP will be sent"}
    otp = f"{secrets.randbelow(1_000_000):06d}"
    kv.set(f"otp:{email}", otp, OTP_TTL_SECONDS)
    kv.delete(f"otp_attempts:{email}")
    try:
        mailer.send_otp(email, otp)
    except OSError:
        # SMTPException subclasses OSError.
        logger.exception("Failed to send OTP email to %s", email)
    return {"message": "OTP sent to your email"}


def verify_otp(
    payload: VerifyOtpRequest,
    kv: KeyValueStore = Depends(get_kv_store),
):
    email = payload.email.lower()
    stored = kv.get(f"otp:{email}")
    if stored is None:
        raise HTTPException(status_code=400, detail="OTP not found or expired")
    if not secrets.compare_digest(stored.encode(), payload.otp.strip().encode()):
        attempts = kv.incr(f"otp_attempts:{email}", OTP_TTL_SECONDS)
        if attempts >= OTP_ATTEMPT_LIMIT:
            # The code is burned; the user must request a new one.
            kv.delete(f"otp:{email}", f"otp_attempts:{email}")
            raise HTTPException(
                status_code=429, detail="too many OTP attempts, please request a new OTP"
            )
        raise HTTPException(status_code=400, detail="invalid OTP")
    kv.set(f"verified:{email}", "true", VERIFIED_TTL_SECONDS)
    kv.delete(f"otp:{email}", f"otp_attempts:{email}")
    return {"message": "OTP verified successfully"}


def reset_password(
    payload: ResetPasswordRequest,
    db: DbClient = Depends(get_db_client),
    kv: KeyValueStore = Depends(get_kv_store),
):
    email = payload.email.lower()
    if kv.get(f"verified:{email}") != "true":
        raise HTTPException(
            status_code=400, detail="OTP not verified or verification expired"
        )
    user = db.get_user_credentials(email)
    if user and user["is_active"]:
        db.update_user(user["id"], {"password_hash": hash_password(payload.new_password)})
    kv.delete(f"verified:{email}", f"otp:{email}")
    return {"message": "Password reset successfully"}


ENDPOINTS = {
    "login": ("/login", "POST", login, 200),
    "signup": ("/signup", "POST", signup, 201),
    "refresh": ("/refresh", "POST", refresh, 200),
    "logout": ("/logout", "POST", logout, 200),
    "me": ("/me", "GET", me, 200),
    "forgot-password": ("/forgot-password", "POST", forgot_password, 200),
    "verify-otp": ("/verify-otp", "POST", verify_otp, 200),
    "reset-password": ("/reset-password", "POST", reset_password, 200),
}


def build_router(*names: str) -> APIRouter:
    """Router exposing the named auth endpoints."""
    router = APIRouter()
    for name in names:
        path, method, endpoint, status_code = ENDPOINTS[name]
        router.add_api_route(
            path, endpoint, methods=[method], status_code=status_code
        )
    return router


router = build_router(*ENDPOINTS)
public_router = build_router(
    "login", "signup", "refresh", "forgot-password", "reset-password", "me"
)
admin_router = build_router(
    "login", "refresh", "logout", "forgot-password", "verify-otp", "reset-password"
)
admin_me_router = build_router("me")
