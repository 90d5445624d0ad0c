"""
Service request workflow and request queries.

Every function takes the caller as an explicit ``CurrentUser``. Role gating
(authenticated vs admin) is done by the session guard before these run;
ownership checks that depend on the loaded document are done here.
"""

import traceback
from typing import Any, Dict, List, Optional

from bson import ObjectId

from database import operations
from errors import Forbidden, InvalidInput, NotFound, unexpected_errors
from logging_config import logger
from models.request import RequestStatus, RequestSummary, ServiceRequest, ServiceRequestWithUser
from models.user import CurrentUser
from services import notifications

UNKNOWN_USER_NAME = "Unknown User"
UNKNOWN_USER_EMAIL = "No Email"
RECENT_REQUESTS_LIMIT = 5


def _is_blank(value) -> bool:
    return not isinstance(value, str) or value.strip() == ""

def _check_request_id(request_id: str):
    if not ObjectId.is_valid(request_id):
        raise InvalidInput("Invalid request ID")


@unexpected_errors("Failed to create service request")
async def create_request(
    actor: CurrentUser,
    service_type: Optional[str],
    location: Optional[str],
    description: Optional[str],
) -> ServiceRequest:
    """Submit a new request owned by the caller, in ``pending`` state.

    The caller also gets a notification recording the submission.
    """
    if _is_blank(service_type) or _is_blank(location) or _is_blank(description):
        raise InvalidInput("Service type, location, and description are required")

    request = await operations.create_request({
        "user_id": actor.id,
        "service_type": service_type.strip(),
        "location": location.strip(),
        "description": description.strip(),
    })
    logger.info(f"Request {request['id']} created by user {actor.id}")

    await notifications.notify(
        actor.id,
        f"New {request['service_type']} service request submitted by {actor.name}",
        request_id=request["id"],
    )
    return ServiceRequest(**request)


@unexpected_errors("Failed to fetch request")
async def get_request(actor: CurrentUser, request_id: str) -> ServiceRequest:
    _check_request_id(request_id)

    request = await operations.get_request(request_id)
    if not request:
        raise NotFound("Request not found")

    if not actor.is_admin and request["user_id"] != actor.id:
        logger.warning(f"User {actor.id} denied access to request {request_id}")
        raise Forbidden("Not authorized to view this request")

    return ServiceRequest(**request)


@unexpected_errors("Failed to update request")
async def update_request_status(actor: CurrentUser, request_id: str, status: Any) -> ServiceRequest:
    """Set a request's status (admin) and tell the owner about it.

    Any status may follow any other, including the current one. The owner
    notification is best effort: if writing it fails the new status is kept
    and the failure is only logged.
    """
    _check_request_id(request_id)

    new_status = RequestStatus.parse(status)
    if new_status is None:
        raise InvalidInput("Valid status is required")

    request = await operations.update_request_status(request_id, new_status.value)
    if not request:
        raise NotFound("Request not found")
    logger.info(f"Request {request_id} set to {new_status.value} by admin {actor.id}")

    try:
        await notifications.notify(
            request["user_id"],
            f"Your service request has been updated to: {new_status.value}",
            request_id=request["id"],
        )
    except Exception as e:
        logger.error(f"Status of request {request_id} updated but owner notification failed: {str(e)}")
        logger.error(traceback.format_exc())

    return ServiceRequest(**request)


@unexpected_errors("Failed to delete request")
async def delete_request(actor: CurrentUser, request_id: str) -> int:
    """Delete a request and every notification that refers to it.

    Returns the number of notifications removed.
    """
    _check_request_id(request_id)

    if not await operations.delete_request(request_id):
        raise NotFound("Request not found")

    removed = await operations.delete_notifications_for_request(request_id)
    logger.info(f"Request {request_id} deleted by admin {actor.id} ({removed} notifications removed)")
    return removed


async def _attach_submitters(requests: List[Dict[str, Any]]) -> List[ServiceRequestWithUser]:
    users = await operations.get_users_by_ids(request["user_id"] for request in requests)
    enriched = []
    for request in requests:
        user = users.get(request["user_id"], {})
        enriched.append(ServiceRequestWithUser(
            **request,
            user_name=user.get("name") or UNKNOWN_USER_NAME,
            user_email=user.get("email") or UNKNOWN_USER_EMAIL,
        ))
    return enriched


@unexpected_errors("Failed to fetch requests")
async def list_requests(
    actor: CurrentUser,
    status: Optional[str] = None,
    include_user_details: bool = False,
) -> List[ServiceRequest]:
    """Requests visible to the caller, newest first.

    Non-admins only see their own. An unknown ``status`` is ignored rather
    than rejected. Submitter name/email are attached only for admins who ask.
    """
    status_filter = RequestStatus.parse(status)
    requests = await operations.get_requests(
        user_id=None if actor.is_admin else actor.id,
        status=status_filter.value if status_filter else None,
    )

    if actor.is_admin and include_user_details and requests:
        return await _attach_submitters(requests)
    return [ServiceRequest(**request) for request in requests]


@unexpected_errors("Failed to fetch request summary")
async def summarize_requests(actor: CurrentUser):
    """Per-status counts plus the most recent requests, scoped like ``list_requests``."""
    owner_id = None if actor.is_admin else actor.id

    counts = await operations.count_requests_by_status(user_id=owner_id)
    summary = RequestSummary(
        pending=counts.get(RequestStatus.PENDING.value, 0),
        in_progress=counts.get(RequestStatus.IN_PROGRESS.value, 0),
        completed=counts.get(RequestStatus.COMPLETED.value, 0),
        rejected=counts.get(RequestStatus.REJECTED.value, 0),
    )

    recent = await operations.get_requests(user_id=owner_id, limit=RECENT_REQUESTS_LIMIT)
    return summary, [ServiceRequest(**request) for request in recent]
