from fastapi import APIRouter, Depends, status, Body
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from typing import Annotated, Optional
from datetime import timedelta
from enum import Enum

from config import settings
from database.auth import create_access_token, decode_access_token
from database.operations import get_user_by_id
from errors import Forbidden, Unauthorized
from logging_config import logger
from models.user import CurrentUser, UserRole, UserRegister, ProfileUpdate, PasswordChange
from services import users as user_service

# auto_error is off so a missing token goes through the same Unauthorized envelope as a bad one
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

router = APIRouter()


class Capability(str, Enum):
    NONE = "none"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


# Helper to get current user from token
async def get_current_user(token: Annotated[Optional[str], Depends(oauth2_scheme)]) -> CurrentUser:
    if not token:
        raise Unauthorized("Authentication required")

    payload = decode_access_token(token)
    if payload is None:
        logger.warning("Rejected invalid or expired token")
        raise Unauthorized("Authentication required")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("User id missing from token")
        raise Unauthorized("Authentication required")

    # Reload so deleted accounts and role changes take effect immediately
    user = await get_user_by_id(user_id)
    if user is None:
        logger.warning(f"User not found for token: {user_id}")
        raise Unauthorized("Authentication required")

    return CurrentUser(id=user["id"], name=user["name"], email=user["email"], role=user["role"])


def require_capability(capability: Capability):
    """Build the dependency that gates a route behind ``capability``.

    ``none`` lets everyone through and yields None; ``authenticated`` yields
    the caller's identity; ``admin`` additionally requires the admin role.
    """
    if capability == Capability.NONE:
        async def _anyone():
            return None
        return _anyone

    async def _check(current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
        if capability == Capability.ADMIN and current_user.role != UserRole.ADMIN:
            logger.warning(f"Insufficient permissions. User: {current_user.id}, role: {current_user.role.value}")
            raise Forbidden("Admin access required")
        return current_user
    return _check


Authenticated = Annotated[CurrentUser, Depends(require_capability(Capability.AUTHENTICATED))]
Admin = Annotated[CurrentUser, Depends(require_capability(Capability.ADMIN))]


def _user_payload(user) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


# Register a new user
@router.post(
    "/register",
    dependencies=[Depends(require_capability(Capability.NONE))],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Register a new account. Self-registered accounts always get the **user** role;
    admins are created through `/users` or `scripts/create_admin.py`.

    ### curl Example
    ```bash
    curl -X 'POST' \\
      'http://localhost:8000/auth/register' \\
      -H 'Content-Type: application/json' \\
      -d '{"name": "Amaka", "email": "a@x.com", "password": "secret1"}'
    ```
    """,
)
async def register_user(
    user_data: UserRegister = Body(
        ...,
        example={"name": "Amaka", "email": "a@x.com", "password": "secret1"}
    )
):
    user = await user_service.register_user(user_data.name, user_data.email, user_data.password)
    return {"success": True, "message": "Registration successful", "user": _user_payload(user)}


# Login user
@router.post(
    "/login",
    dependencies=[Depends(require_capability(Capability.NONE))],
    summary="Login to get access token",
    description="""
    Login with email (sent as the OAuth2 `username` field) and password.

    The access token must be sent on every other endpoint as
    `Authorization: Bearer <token>`.
    """,
)
async def login_for_access_token(form_data: Annotated[OAuth2PasswordRequestForm, Depends()]):
    logger.info(f"Login attempt: {form_data.username}")
    user = await user_service.authenticate(form_data.username, form_data.password)
    if not user:
        logger.warning(f"Invalid credentials for: {form_data.username}")
        raise Unauthorized("Incorrect email or password")

    access_token = create_access_token(
        data={"sub": user.id, "email": user.email, "role": user.role.value},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )
    logger.info(f"Login successful: {user.id}")
    return {
        "success": True,
        "access_token": access_token,
        "token_type": "bearer",
        "user": _user_payload(user),
    }


# Get current user info
@router.get("/me", summary="Get current user information")
async def read_users_me(current_user: Authenticated):
    user = await user_service.get_user(current_user.id)
    return {"success": True, "user": _user_payload(user)}


# Update own profile
@router.put("/me", summary="Update own profile (name only)")
async def update_users_me(current_user: Authenticated, profile: ProfileUpdate = Body(...)):
    user = await user_service.update_profile(current_user, profile.name)
    return {"success": True, "message": "Profile updated successfully", "user": _user_payload(user)}


# Change own password
@router.put("/password", summary="Change own password")
async def change_password(current_user: Authenticated, passwords: PasswordChange = Body(...)):
    await user_service.change_password(current_user, passwords.current_password, passwords.new_password)
    return {"success": True, "message": "Password updated successfully"}
