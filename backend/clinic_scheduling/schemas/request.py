from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Any
from clinic_scheduling.models.request import Interval, ScheduleRequest

class ScheduleRequestCreate(BaseModel):
    """Request body for create and update.

    Values are kept loose on purpose; the lifecycle reports every problem
    in one validation error instead of failing on the first field.
    """
    providerId: Optional[str] = None
    providerName: Optional[str] = None
    providerEmail: Optional[str] = None
    requestType: Optional[str] = None  # 'specific_time' | 'full_day' | 'multiple_days' | 'recurring'
    startDate: Optional[str] = None    # YYYY-MM-DD
    endDate: Optional[str] = None      # YYYY-MM-DD, multiple_days
    startTime: Optional[str] = None    # HH:MM, specific_time
    endTime: Optional[str] = None      # HH:MM, specific_time
    recurringPattern: Optional[str] = None  # 'weekly' | 'monthly' | 'yearly'
    recurringDays: Optional[List[str]] = None
    recurringMonths: Optional[List[int]] = None
    reason: Optional[str] = None
    ptoRequired: bool = False

class StatusUpdate(BaseModel):
    status: str  # 'approved' | 'rejected' | 'cancelled'
    notes: Optional[str] = None

class NotesUpdate(BaseModel):
    notes: Optional[str] = None

class ClarificationRequest(BaseModel):
    clarificationMessage: str

class PaginatedRequestsResponse(BaseModel):
    items: List[ScheduleRequest]
    total: int
    page: int
    limit: int
    totalPages: int

class PtoFormInfo(BaseModel):
    requestId: str
    filename: str
    size: int
    uploadedAt: datetime

class PtoFormInfoResponse(BaseModel):
    success: bool = True
    data: PtoFormInfo

class ConflictsResponse(BaseModel):
    success: bool = True
    data: List[Interval] = Field(default_factory=list)
    total: int = 0

class ActionResult(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
