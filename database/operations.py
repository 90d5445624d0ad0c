from bson import ObjectId
from datetime import datetime
from typing import List, Dict, Any, Iterable, Optional

from database.db import users_collection, requests_collection, notifications_collection

NOTIFICATION_LIST_LIMIT = 50
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]

# Helper to convert ObjectId to string
def serialize_object_id(doc):
    if doc.get("_id"):
        doc["id"] = str(doc["_id"])
        del doc["_id"]
    return doc

def normalize_email(email: str) -> str:
    return email.strip().lower()

def _object_ids(ids: Iterable[str]) -> List[ObjectId]:
    return [ObjectId(value) for value in ids if isinstance(value, str) and ObjectId.is_valid(value)]

# User operations
async def create_user(user_data: Dict[str, Any]) -> str:
    user_data["email"] = normalize_email(user_data["email"])
    user_data["created_at"] = datetime.utcnow()
    result = await users_collection().insert_one(user_data)
    return str(result.inserted_id)

async def get_user_by_email(email: str, include_password: bool = False) -> Optional[Dict[str, Any]]:
    projection = None if include_password else {"hashed_password": 0}
    user = await users_collection().find_one({"email": normalize_email(email)}, projection)
    if user:
        return serialize_object_id(user)
    return None

async def get_user_by_id(user_id: str, include_password: bool = False) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(user_id):
        return None
    projection = None if include_password else {"hashed_password": 0}
    user = await users_collection().find_one({"_id": ObjectId(user_id)}, projection)
    if user:
        return serialize_object_id(user)
    return None

async def get_users() -> List[Dict[str, Any]]:
    cursor = users_collection().find({}, {"hashed_password": 0}).sort(NEWEST_FIRST)
    users = []
    async for user in cursor:
        users.append(serialize_object_id(user))
    return users

async def get_users_by_ids(user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Batch-load name and email for the given ids, keyed by id."""
    object_ids = _object_ids(set(user_ids))
    if not object_ids:
        return {}
    cursor = users_collection().find({"_id": {"$in": object_ids}}, {"name": 1, "email": 1})
    users = {}
    async for user in cursor:
        user = serialize_object_id(user)
        users[user["id"]] = user
    return users

async def update_user(user_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(user_id):
        return None

    if "email" in update_data:
        update_data["email"] = normalize_email(update_data["email"])

    result = await users_collection().update_one(
        {"_id": ObjectId(user_id)},
        {"$set": update_data}
    )

    if result.matched_count == 0:
        return None

    # Return the updated user
    return await get_user_by_id(user_id)

async def delete_user(user_id: str) -> bool:
    if not ObjectId.is_valid(user_id):
        return False

    result = await users_collection().delete_one({"_id": ObjectId(user_id)})
    return result.deleted_count > 0

# Request operations
async def create_request(request_data: Dict[str, Any]) -> Dict[str, Any]:
    now = datetime.utcnow()
    request_data["created_at"] = now
    request_data["updated_at"] = now
    request_data["status"] = "pending"  # Initial status
    result = await requests_collection().insert_one(request_data)
    request_data["_id"] = result.inserted_id
    return serialize_object_id(request_data)

async def get_request(request_id: str) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(request_id):
        return None
    request = await requests_collection().find_one({"_id": ObjectId(request_id)})
    if request:
        return serialize_object_id(request)
    return None

async def get_requests(
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """Get requests newest first, optionally filtered by owner and status."""
    query = {}

    if user_id:
        query["user_id"] = user_id

    if status:
        query["status"] = status

    cursor = requests_collection().find(query).sort(NEWEST_FIRST)
    if limit:
        cursor = cursor.limit(limit)

    requests = []
    async for request in cursor:
        requests.append(serialize_object_id(request))
    return requests

async def count_requests_by_status(user_id: Optional[str] = None) -> Dict[str, int]:
    pipeline = []
    if user_id:
        pipeline.append({"$match": {"user_id": user_id}})
    pipeline.append({"$group": {"_id": "$status", "count": {"$sum": 1}}})

    counts = {}
    async for row in requests_collection().aggregate(pipeline):
        counts[row["_id"]] = row["count"]
    return counts

async def update_request_status(request_id: str, status: str) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(request_id):
        return None

    result = await requests_collection().update_one(
        {"_id": ObjectId(request_id)},
        {"$set": {"status": status, "updated_at": datetime.utcnow()}}
    )

    if result.matched_count == 0:
        return None

    return await get_request(request_id)

async def delete_request(request_id: str) -> bool:
    if not ObjectId.is_valid(request_id):
        return False

    result = await requests_collection().delete_one({"_id": ObjectId(request_id)})
    return result.deleted_count > 0

# Notification operations
async def create_notification(notification_data: Dict[str, Any]) -> Dict[str, Any]:
    notification_data.setdefault("read", False)
    notification_data["created_at"] = datetime.utcnow()
    result = await notifications_collection().insert_one(notification_data)
    notification_data["_id"] = result.inserted_id
    return serialize_object_id(notification_data)

async def get_notifications(
    user_id: str,
    read: Optional[bool] = None,
    limit: int = NOTIFICATION_LIST_LIMIT
) -> List[Dict[str, Any]]:
    query = {"user_id": user_id}
    if read is not None:
        query["read"] = read

    cursor = notifications_collection().find(query).sort(NEWEST_FIRST).limit(limit)
    notifications = []
    async for notification in cursor:
        notifications.append(serialize_object_id(notification))
    return notifications

async def count_unread_notifications(user_id: str) -> int:
    return await notifications_collection().count_documents({"user_id": user_id, "read": False})

async def mark_notifications_read(user_id: str, notification_ids: Iterable[str]) -> int:
    """Flip read=True on the given ids that belong to user_id; returns the modified count."""
    object_ids = _object_ids(notification_ids)
    if not object_ids:
        return 0

    result = await notifications_collection().update_many(
        {"_id": {"$in": object_ids}, "user_id": user_id},
        {"$set": {"read": True}}
    )
    return result.modified_count

async def delete_notifications_for_request(request_id: str) -> int:
    result = await notifications_collection().delete_many({"request_id": request_id})
    return result.deleted_count
