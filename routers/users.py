from fastapi import APIRouter, Body, status

from models.user import UserCreate, UserUpdate
from routers.auth import Admin
from services import users as user_service
from logging_config import logger

router = APIRouter()

def _user_payload(user) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "createdAt": user.created_at,
    }

# Get all users (admin only)
@router.get(
    "",
    summary="Get all users (Admin only)",
    description="""
    Retrieve a list of all users in the system, without password hashes.
    """,
)
async def read_users(current_user: Admin):
    logger.info("Getting all users")
    users = await user_service.list_users(current_user)
    return {"success": True, "users": [_user_payload(user) for user in users]}

# Create user (admin only)
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create a user (Admin only)",
    description="""
    Create a new account with an explicit role (`user` by default, or `admin`).
    """,
)
async def create_user(
    current_user: Admin,
    user_data: UserCreate = Body(
        ...,
        example={
            "name": "Facilities Desk",
            "email": "facilities@example.edu",
            "password": "StaffPassword123",
            "role": "admin"
        }
    ),
):
    user = await user_service.create_user(
        current_user, user_data.name, user_data.email, user_data.password, user_data.role
    )
    return {"success": True, "message": "User created successfully", "user": _user_payload(user)}

# Get user by ID (admin only)
@router.get("/{user_id}", summary="Get user by ID (Admin only)")
async def read_user(user_id: str, current_user: Admin):
    logger.info(f"Getting user with ID: {user_id}")
    user = await user_service.get_user(user_id)
    return {"success": True, "user": _user_payload(user)}

# Update user by ID (admin only)
@router.put(
    "/{user_id}",
    summary="Update user by ID (Admin only)",
    description="""
    Update any user's name, email, role, and password.
    Fields that are not provided will remain unchanged.
    """,
)
async def update_user_by_id(
    user_id: str,
    current_user: Admin,
    user_update: UserUpdate = Body(
        ...,
        example={
            "name": "Updated Name",
            "email": "updated.email@example.edu",
            "role": "user",
            "password": "NewSecurePassword456"
        }
    ),
):
    user = await user_service.update_user(
        current_user,
        user_id,
        name=user_update.name,
        email=user_update.email,
        role=user_update.role,
        password=user_update.password,
    )
    return {"success": True, "message": "User updated successfully", "user": _user_payload(user)}

# Delete user by ID (admin only)
@router.delete("/{user_id}", summary="Delete user by ID (Admin only)")
async def delete_user_by_id(user_id: str, current_user: Admin):
    await user_service.delete_user(current_user, user_id)
    return {"success": True, "message": "User deleted successfully"}
