"""
Schedule request lifecycle.

Owns every state change of a ``ScheduleRequest``: creation, edits while
pending, the pending -> approved / rejected / cancelled transitions, notes,
PTO form attachment and deletion. Mutations run under the repository lock;
lifecycle events are handed to the post-commit hooks once the change is
stored and the lock is released.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from fastapi import Depends
from pydantic import BaseModel, ValidationError as PydanticValidationError

from clinic_scheduling.db import get_request_repository
from clinic_scheduling.errors import (
    EditNotAllowed, Forbidden, InvalidStateTransition, NotFound, ValidationError
)
from clinic_scheduling.models.notification import EventKind, LifecycleEvent, SendResult
from clinic_scheduling.models.request import (
    EDITABLE_FIELDS, TERMINAL_STATUSES, Interval, RequestStatus, ScheduleRequest
)
from clinic_scheduling.models.user import Actor, Role
from clinic_scheduling.repositories.request_repository import RequestFilter, RequestRepository
from clinic_scheduling.services.notification_service import NotificationDispatcher, get_dispatcher
from clinic_scheduling.utils.auth import can_modify, can_transition
from clinic_scheduling.utils.logger import log_event, EventTypes

logger = logging.getLogger(__name__)

PostCommitHook = Callable[[LifecycleEvent], Awaitable[Any]]

TRANSITION_EVENTS = {
    RequestStatus.APPROVED: EventKind.APPROVED,
    RequestStatus.REJECTED: EventKind.REJECTED,
    RequestStatus.CANCELLED: EventKind.CANCELLED,
}

# Statuses that still block the provider's schedule
ACTIVE_STATUSES = (RequestStatus.PENDING, RequestStatus.APPROVED)

IDENTITY_FIELDS = ("providerId", "providerName", "providerEmail")


def _payload_dict(payload: Union[BaseModel, dict]) -> dict:
    """Requester-settable fields only; lifecycle fields are never taken from input."""
    data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
    return {key: value for key, value in data.items() if key in EDITABLE_FIELDS}


def _format_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error['msg']}" if location else error["msg"]


def _build(data: dict, **fixed) -> ScheduleRequest:
    try:
        return ScheduleRequest(**{**data, **fixed})
    except PydanticValidationError as e:
        raise ValidationError([_format_error(err) for err in e.errors()])


def _touch(request: ScheduleRequest) -> datetime:
    # updatedAt never goes backwards, even if the clock does
    now = max(datetime.utcnow(), request.updatedAt, request.createdAt)
    request.updatedAt = now
    return now


class RequestService:
    def __init__(
        self,
        repository: RequestRepository,
        dispatcher: Optional[NotificationDispatcher] = None,
        hooks: Optional[Iterable[PostCommitHook]] = None
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.hooks: List[PostCommitHook] = list(hooks or [])
        if dispatcher is not None:
            self.hooks.append(dispatcher.handle)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_requests(self, filters: Optional[RequestFilter] = None) -> List[ScheduleRequest]:
        return await self.repository.list(filters)

    async def get(self, request_id: str) -> ScheduleRequest:
        request = await self.repository.get(request_id)
        if request is None:
            raise NotFound(request_id)
        return request

    async def find_conflicts(self, request_id: str) -> List[Interval]:
        """Overlaps with the same provider's other pending or approved requests."""
        request = await self.get(request_id)
        others = await self.repository.list(RequestFilter(providerId=request.providerId))
        intervals = [
            other.as_interval() for other in others
            if other.id != request.id and other.status in ACTIVE_STATUSES and other.startDate
        ]
        return request.conflicts_with(intervals)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, payload: Union[BaseModel, dict], actor: Optional[Actor] = None) -> ScheduleRequest:
        data = _payload_dict(payload)
        if actor is not None and actor.role == Role.PROVIDER:
            if data.get("providerId") and data["providerId"] != actor.id:
                raise Forbidden("Providers can only submit requests for themselves")
            data["providerId"] = actor.id
            if not data.get("providerName"):
                data["providerName"] = actor.name
            if not data.get("providerEmail"):
                data["providerEmail"] = actor.email

        request = _build(data).normalized()
        result = request.validate_request()
        if not result.valid:
            raise ValidationError(result.errors)

        now = datetime.utcnow()
        request.createdAt = now
        request.updatedAt = now

        async with self.repository.lock:
            await self.repository.put(request)

        await log_event(
            EventTypes.REQUEST_CREATED,
            {"request_id": request.id, "type": request.requestType.value},
            user_id=actor.id if actor else request.providerId
        )
        await self._emit([
            LifecycleEvent(kind=EventKind.SUBMITTED, request=request, actorId=actor.id if actor else None),
            LifecycleEvent(kind=EventKind.ADMIN_NEW, request=request, actorId=actor.id if actor else None),
        ])
        return request

    async def update(
        self,
        request_id: str,
        payload: Union[BaseModel, dict],
        actor: Optional[Actor] = None
    ) -> ScheduleRequest:
        """Replace the editable fields of a pending request. No notification."""
        async with self.repository.lock:
            existing = await self.get(request_id)
            if actor is not None and not can_modify(actor, existing):
                raise Forbidden("Only the requesting provider or a reviewer can edit this request")
            if not existing.is_pending:
                raise EditNotAllowed(existing.status.value)

            data = _payload_dict(payload)
            for field in IDENTITY_FIELDS:
                data[field] = getattr(existing, field)

            updated = _build(
                data,
                id=existing.id,
                status=existing.status,
                ptoFormRef=existing.ptoFormRef,
                adminNotes=existing.adminNotes,
                directorNotes=existing.directorNotes,
                createdAt=existing.createdAt,
                updatedAt=existing.updatedAt,
            ).normalized()
            # Once a form is attached the request stays flagged
            updated.ptoRequired = updated.ptoRequired or bool(existing.ptoFormRef)

            result = updated.validate_request()
            if not result.valid:
                raise ValidationError(result.errors)

            _touch(updated)
            await self.repository.put(updated)

        await log_event(EventTypes.REQUEST_UPDATED, {"request_id": request_id}, user_id=actor.id if actor else None)
        return updated

    async def transition(
        self,
        request_id: str,
        target: Union[RequestStatus, str],
        actor: Actor,
        notes: Optional[str] = None
    ) -> ScheduleRequest:
        try:
            target = RequestStatus(target)
        except ValueError:
            raise ValidationError([f"Invalid status: {target}"])

        async with self.repository.lock:
            request = await self.get(request_id)
            if target not in TERMINAL_STATUSES or not request.is_pending:
                raise InvalidStateTransition(request.status.value, target.value)
            if not can_transition(actor, target, request):
                raise Forbidden(f"Role '{actor.role.value}' cannot mark a request as {target.value}")

            now = _touch(request)
            request.status = target
            if target == RequestStatus.APPROVED:
                request.approvedAt = now
                request.approvedBy = actor.display_name
            elif target == RequestStatus.REJECTED:
                request.rejectedAt = now
                request.rejectedBy = actor.display_name
                request.rejectionReason = notes
            else:
                request.cancelledAt = now
                request.cancelledBy = actor.display_name

            await self.repository.put(request)

        await log_event(
            EventTypes.REQUEST_STATUS_CHANGED,
            {"request_id": request_id, "status": target.value},
            user_id=actor.id
        )
        await self._emit([LifecycleEvent(kind=TRANSITION_EVENTS[target], request=request, actorId=actor.id)])
        return request

    async def add_note(self, request_id: str, actor: Actor, text: Optional[str]) -> ScheduleRequest:
        """Replace the admin or director note, whatever the request's status."""
        if actor.role == Role.ADMIN:
            field = "adminNotes"
        elif actor.role == Role.DIRECTOR:
            field = "directorNotes"
        else:
            raise Forbidden("Only admins and directors can add notes")

        async with self.repository.lock:
            request = await self.get(request_id)
            setattr(request, field, text)
            _touch(request)
            await self.repository.put(request)

        await log_event(EventTypes.REQUEST_NOTES_UPDATED, {"request_id": request_id, "field": field}, user_id=actor.id)
        return request

    async def attach_pto_form(self, request_id: str, form_ref: str, actor: Optional[Actor] = None) -> ScheduleRequest:
        async with self.repository.lock:
            request = await self.get(request_id)
            if actor is not None and not can_modify(actor, request):
                raise Forbidden("Only the requesting provider or a reviewer can upload a PTO form")
            if not request.is_pending:
                raise EditNotAllowed(request.status.value, "given a PTO form")

            request.ptoFormRef = form_ref
            request.ptoRequired = True
            _touch(request)
            await self.repository.put(request)

        await log_event(EventTypes.PTO_FORM_UPLOADED, {"request_id": request_id, "form": form_ref},
                        user_id=actor.id if actor else None)
        await self._emit([LifecycleEvent(kind=EventKind.DIRECTOR_PTO_UPLOAD, request=request,
                                         actorId=actor.id if actor else None)])
        return request

    async def send_clarification(self, request_id: str, message: str, actor: Actor) -> SendResult:
        if not actor.is_reviewer:
            raise Forbidden("Only admins and directors can request clarification")
        if not message or not message.strip():
            raise ValidationError(["Clarification message is required"])

        request = await self.get(request_id)
        if self.dispatcher is None:
            return SendResult(success=False, error="Notifications are not configured")

        result = await self.dispatcher.dispatch(
            EventKind.CLARIFICATION, request, {"message": message, "adminName": actor.display_name},
            actor_id=actor.id
        )
        await log_event(
            EventTypes.CLARIFICATION_SENT,
            {"request_id": request_id, "success": result.success},
            user_id=actor.id
        )
        return result

    async def delete(self, request_id: str, actor: Optional[Actor] = None) -> ScheduleRequest:
        async with self.repository.lock:
            request = await self.get(request_id)
            if actor is not None and not can_modify(actor, request):
                raise Forbidden("Only the requesting provider or a reviewer can delete this request")
            if not request.is_pending:
                raise EditNotAllowed(request.status.value, "deleted")
            removed = await self.repository.remove_by_id(request_id)

        await log_event(EventTypes.REQUEST_DELETED, {"request_id": request_id}, user_id=actor.id if actor else None)
        return removed or request

    # ------------------------------------------------------------------

    async def _emit(self, events: List[LifecycleEvent]) -> None:
        for event in events:
            for hook in self.hooks:
                try:
                    await hook(event)
                except Exception:
                    logger.exception("Post-commit hook failed for %s on %s", event.kind.value, event.request.id)


def get_request_service(dispatcher: NotificationDispatcher = Depends(get_dispatcher)) -> RequestService:
    return RequestService(get_request_repository(), dispatcher=dispatcher)
