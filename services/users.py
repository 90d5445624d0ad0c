"""
User directory: account creation, lookup, updates and password handling.

Only ``authenticate`` and ``change_password`` ever read the password hash;
every other read goes through projections that drop it.
"""

from typing import List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from database import operations
from database.auth import get_password_hash, verify_password
from errors import Conflict, InvalidInput, InvalidOperation, NotFound, unexpected_errors
from logging_config import logger
from models.user import CurrentUser, User, UserRole

MIN_PASSWORD_LENGTH = 6


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")

def _check_password_length(password: str, message: str = "Password must be at least 6 characters"):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(message)

def _check_role(role: Optional[str]):
    if role is not None and role not in UserRole.values():
        raise InvalidInput("Role must be either 'user' or 'admin'")

def _check_user_id(user_id: str):
    if not ObjectId.is_valid(user_id):
        raise InvalidInput("Invalid user ID")

async def _ensure_email_available(email: str, exclude_user_id: Optional[str] = None):
    existing_user = await operations.get_user_by_email(email)
    if existing_user and existing_user["id"] != exclude_user_id:
        logger.warning(f"Email already in use: {email}")
        raise Conflict("Email already in use")


async def _insert_user(name: str, email: str, password: str, role: str) -> User:
    if _is_blank(name) or _is_blank(email) or _is_blank(password):
        raise InvalidInput("Name, email and password are required")
    _check_password_length(password)
    _check_role(role)

    await _ensure_email_available(email)

    user_dict = {
        "name": name.strip(),
        "email": email,
        "hashed_password": get_password_hash(password),
        "role": role,
    }
    try:
        user_id = await operations.create_user(user_dict)
    except DuplicateKeyError:
        # Unique index caught a concurrent insert of the same address
        raise Conflict("Email already in use")

    user_dict.pop("hashed_password")
    logger.info(f"User created successfully: {user_dict['email']}, ID: {user_id}")
    return User(id=user_id, **user_dict)


@unexpected_errors("Registration failed")
async def register_user(name: str, email: str, password: str) -> User:
    """Self-service registration; the account always gets the ``user`` role."""
    logger.info(f"Registering new user: {email}")
    return await _insert_user(name, email, password, UserRole.USER.value)


@unexpected_errors("Failed to create user")
async def create_user(actor: CurrentUser, name: str, email: str, password: str, role: Optional[str] = None) -> User:
    logger.info(f"Admin {actor.id} creating user: {email}, role: {role or UserRole.USER.value}")
    return await _insert_user(name, email, password, role or UserRole.USER.value)


@unexpected_errors("Failed to fetch user")
async def get_user(user_id: str) -> User:
    _check_user_id(user_id)
    user = await operations.get_user_by_id(user_id)
    if not user:
        logger.warning(f"User not found with ID: {user_id}")
        raise NotFound("User not found")
    return User(**user)


@unexpected_errors("Failed to fetch users")
async def list_users(actor: CurrentUser) -> List[User]:
    users = await operations.get_users()
    logger.info(f"Retrieved {len(users)} users for admin {actor.id}")
    return [User(**user) for user in users]


@unexpected_errors("Failed to update user")
async def update_user(
    actor: CurrentUser,
    user_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    role: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    """Admin edit of any account; unset or blank fields stay unchanged."""
    _check_user_id(user_id)
    _check_role(role)

    user = await operations.get_user_by_id(user_id)
    if not user:
        logger.warning(f"User not found with ID: {user_id}")
        raise NotFound("User not found")

    update_data = {}
    if not _is_blank(email) and operations.normalize_email(email) != user["email"]:
        await _ensure_email_available(email, exclude_user_id=user["id"])
        update_data["email"] = email
    if not _is_blank(name):
        update_data["name"] = name.strip()
    if role:
        update_data["role"] = role
    if password:
        _check_password_length(password)
        update_data["hashed_password"] = get_password_hash(password)
        logger.debug("Password hashed for update")

    if not update_data:
        return User(**user)

    try:
        updated_user = await operations.update_user(user_id, update_data)
    except DuplicateKeyError:
        raise Conflict("Email already in use")
    if not updated_user:
        raise NotFound("User not found")

    logger.info(f"User {user_id} updated by admin {actor.id}")
    return User(**updated_user)


@unexpected_errors("Failed to delete user")
async def delete_user(actor: CurrentUser, user_id: str) -> None:
    _check_user_id(user_id)
    if user_id == actor.id:
        logger.warning("User attempted to delete their own account")
        raise InvalidOperation("You cannot delete your own account")

    if not await operations.delete_user(user_id):
        logger.warning(f"User not found with ID: {user_id}")
        raise NotFound("User not found")

    logger.info(f"User deleted successfully: {user_id}")


@unexpected_errors("Failed to update profile")
async def update_profile(actor: CurrentUser, name: Optional[str]) -> User:
    if _is_blank(name):
        raise InvalidInput("Name cannot be empty")

    updated_user = await operations.update_user(actor.id, {"name": name.strip()})
    if not updated_user:
        raise NotFound("User not found")
    return User(**updated_user)


@unexpected_errors("Failed to update password")
async def change_password(actor: CurrentUser, current_password: Optional[str], new_password: Optional[str]) -> None:
    if _is_blank(current_password) or _is_blank(new_password):
        raise InvalidInput("Current password and new password are required")
    _check_password_length(new_password, "New password must be at least 6 characters long")

    user = await operations.get_user_by_id(actor.id, include_password=True)
    if not user:
        raise NotFound("User not found")

    if not verify_password(current_password, user["hashed_password"]):
        logger.warning(f"Incorrect current password for user: {actor.id}")
        raise InvalidInput("Current password is incorrect")

    await operations.update_user(actor.id, {"hashed_password": get_password_hash(new_password)})
    logger.info(f"Password updated for user: {actor.id}")


@unexpected_errors("Error during login")
async def authenticate(email: Optional[str], password: Optional[str]) -> Optional[User]:
    """Return the user when the credentials match, otherwise None."""
    if _is_blank(email) or _is_blank(password):
        return None
    user = await operations.get_user_by_email(email, include_password=True)
    if not user:
        # Constant effort for unknown emails
        get_password_hash(password)
        return None
    if not verify_password(password, user.pop("hashed_password")):
        return None
    return User(**user)
