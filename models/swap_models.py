from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class SwapStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


LIVE_STATUSES = (SwapStatus.PENDING, SwapStatus.ACCEPTED)


class SwapListType(str, Enum):
    SENT = "sent"
    RECEIVED = "received"
    ALL = "all"


class SwapRequest(BaseModel):
    requestedBookId: str
    offeredBookId: str
    message: str = Field("", max_length=500)


class SwapAcceptance(BaseModel):
    responseMessage: str = Field("", max_length=500)
    meetingLocation: Optional[str] = Field(None, max_length=200)
    meetingDate: Optional[datetime] = None


class SwapDecline(BaseModel):
    responseMessage: str = Field("", max_length=500)
