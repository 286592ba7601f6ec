from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional
from enum import Enum
import uuid

class RequestType(str, Enum):
    SPECIFIC_TIME = "specific_time"
    FULL_DAY = "full_day"
    MULTIPLE_DAYS = "multiple_days"
    RECURRING = "recurring"

class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

TERMINAL_STATUSES = (RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED)

class RecurringPattern(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

REQUEST_TYPE_DISPLAY = {
    RequestType.SPECIFIC_TIME: "Specific Time Period",
    RequestType.FULL_DAY: "Full Day",
    RequestType.MULTIPLE_DAYS: "Multiple Days",
    RequestType.RECURRING: "Recurring",
}

DATE_FORMAT = "%b %d, %Y"
TIME_FORMAT = "%H:%M"

# Fields a requester may set; everything else is owned by the lifecycle
EDITABLE_FIELDS = (
    "providerId", "providerName", "providerEmail",
    "requestType", "startDate", "endDate", "startTime", "endTime",
    "recurringPattern", "recurringDays", "recurringMonths",
    "reason", "ptoRequired",
)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex}"


class Interval(BaseModel):
    """An inclusive range of calendar days."""
    id: Optional[str] = None
    label: Optional[str] = None
    start: date
    end: date

    def overlaps(self, other: "Interval") -> bool:
        # Whole days: [start, end + 1 day) on both sides
        return self.start < other.end + timedelta(days=1) and self.end + timedelta(days=1) > other.start


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class ScheduleRequest(BaseModel):
    id: str = Field(default_factory=new_request_id)

    # Submitter identity
    providerId: Optional[str] = None
    providerName: Optional[str] = None
    providerEmail: Optional[str] = None

    # What is being blocked
    requestType: Optional[RequestType] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None  # multiple_days only
    startTime: Optional[time] = None  # specific_time only
    endTime: Optional[time] = None
    recurringPattern: Optional[RecurringPattern] = None  # recurring only
    recurringDays: List[Weekday] = Field(default_factory=list)  # weekly pattern
    recurringMonths: List[int] = Field(default_factory=list)  # yearly pattern, 1-12
    reason: Optional[str] = None

    # PTO paperwork
    ptoRequired: bool = False
    ptoFormRef: Optional[str] = None

    # Review workflow
    status: RequestStatus = RequestStatus.PENDING
    adminNotes: Optional[str] = None
    directorNotes: Optional[str] = None
    approvedAt: Optional[datetime] = None
    approvedBy: Optional[str] = None
    rejectedAt: Optional[datetime] = None
    rejectedBy: Optional[str] = None
    rejectionReason: Optional[str] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[str] = None

    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)

    @field_validator(
        "requestType", "startDate", "endDate", "startTime", "endTime", "recurringPattern",
        mode="before",
    )
    @classmethod
    def blank_as_missing(cls, v):
        # Forms send "" for untouched inputs
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("recurringDays", "recurringMonths", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    @field_validator("recurringMonths")
    @classmethod
    def check_months(cls, v: List[int]) -> List[int]:
        for month in v:
            if not 1 <= month <= 12:
                raise ValueError(f"Invalid month: {month}")
        return v

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def validate_request(self) -> ValidationResult:
        """Check the record's shape against the rules of its request type.

        Pure: never raises and never touches the record.
        """
        errors = []

        if not (self.providerId and self.providerName and self.providerEmail):
            errors.append("Provider information is required")

        if not self.requestType:
            errors.append("Request type is required")

        if not self.startDate:
            errors.append("Start date is required")

        if self.requestType == RequestType.SPECIFIC_TIME:
            if not self.startTime or not self.endTime:
                errors.append("Start and end times are required for specific time requests")
            elif self.startTime >= self.endTime:
                errors.append("End time must be after start time")

        if self.requestType == RequestType.MULTIPLE_DAYS:
            if not self.endDate:
                errors.append("End date is required for multiple day requests")
            elif self.startDate and self.endDate < self.startDate:
                errors.append("End date cannot be before start date")

        if self.requestType == RequestType.RECURRING and not self.recurringPattern:
            errors.append("Recurring pattern is required for recurring requests")

        if not self.reason or not self.reason.strip():
            errors.append("Reason is required")

        return ValidationResult(valid=not errors, errors=errors)

    def normalized(self) -> "ScheduleRequest":
        """Copy with the fields that do not belong to the request type cleared."""
        cleared = {}
        if self.requestType != RequestType.MULTIPLE_DAYS:
            cleared["endDate"] = None
        if self.requestType != RequestType.SPECIFIC_TIME:
            cleared["startTime"] = None
            cleared["endTime"] = None
        if self.requestType != RequestType.RECURRING:
            cleared["recurringPattern"] = None
        if self.requestType != RequestType.RECURRING or self.recurringPattern != RecurringPattern.WEEKLY:
            cleared["recurringDays"] = []
        if self.requestType != RequestType.RECURRING or self.recurringPattern != RecurringPattern.YEARLY:
            cleared["recurringMonths"] = []
        if self.requestType is None:
            return self.model_copy()
        return self.model_copy(update=cleared)

    def formatted_range(self) -> str:
        """Human readable date/time summary, used in emails and listings."""
        if self.requestType == RequestType.SPECIFIC_TIME:
            return (
                f"{_fmt_date(self.startDate)} "
                f"{_fmt_time(self.startTime)} - {_fmt_time(self.endTime)}"
            )
        if self.requestType == RequestType.FULL_DAY:
            return _fmt_date(self.startDate)
        if self.requestType == RequestType.MULTIPLE_DAYS:
            return f"{_fmt_date(self.startDate)} - {_fmt_date(self.endDate)}"
        if self.requestType == RequestType.RECURRING:
            pattern = self.recurringPattern.value if self.recurringPattern else "unspecified"
            summary = f"Recurring: {pattern}"
            if self.recurringDays:
                summary += " (" + ", ".join(d.value[:3].title() for d in self.recurringDays) + ")"
            elif self.recurringMonths:
                summary += " (" + ", ".join(date(2000, m, 1).strftime("%b") for m in self.recurringMonths) + ")"
            return summary
        return "Unknown"

    @property
    def request_type_display(self) -> str:
        if self.requestType is None:
            return "Unknown"
        return REQUEST_TYPE_DISPLAY[self.requestType]

    def as_interval(self) -> Optional[Interval]:
        """The day range the request blocks; time of day is ignored."""
        if self.startDate is None:
            return None
        return Interval(
            id=self.id,
            label=self.reason,
            start=self.startDate,
            end=self.endDate or self.startDate,
        )

    def conflicts_with(self, intervals: Iterable[Interval]) -> List[Interval]:
        own = self.as_interval()
        if own is None:
            return []
        return [interval for interval in intervals if own.overlaps(interval)]


def _fmt_date(value: Optional[date]) -> str:
    return value.strftime(DATE_FORMAT) if value else "?"


def _fmt_time(value: Optional[time]) -> str:
    return value.strftime(TIME_FORMAT) if value else "?"
