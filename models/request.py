from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from enum import Enum

class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @classmethod
    def values(cls):
        return [status.value for status in cls]

    @classmethod
    def parse(cls, value) -> Optional["RequestStatus"]:
        """Return the matching status, or None for anything outside the enumeration."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value in cls.values():
            return cls(value)
        return None

class RequestCreate(BaseModel):
    service_type: Optional[str] = Field(None, alias="serviceType")
    location: Optional[str] = None
    description: Optional[str] = None

    class Config:
        populate_by_name = True

class RequestStatusUpdate(BaseModel):
    # Any JSON value is accepted here; the workflow rejects values outside RequestStatus
    status: Optional[Any] = None

class ServiceRequest(BaseModel):
    id: str
    user_id: str = Field(..., alias="userId")
    service_type: str = Field(..., alias="serviceType")
    location: str
    description: str
    status: RequestStatus
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    class Config:
        populate_by_name = True

class ServiceRequestWithUser(ServiceRequest):
    user_name: str = Field(..., alias="userName")
    user_email: str = Field(..., alias="userEmail")

class RequestSummary(BaseModel):
    pending: int = 0
    in_progress: int = Field(0, alias="inProgress")
    completed: int = 0
    rejected: int = 0

    class Config:
        populate_by_name = True
