from fastapi import APIRouter, Depends, Query, UploadFile, File
from fastapi.responses import FileResponse
from typing import Optional
from clinic_scheduling.schemas.request import (
    ScheduleRequestCreate, StatusUpdate, NotesUpdate, ClarificationRequest,
    PaginatedRequestsResponse, ConflictsResponse, ActionResult, PtoFormInfo, PtoFormInfoResponse
)
from clinic_scheduling.errors import EditNotAllowed, Forbidden, NotFound, ScheduleRequestError
from clinic_scheduling.models.request import RequestStatus, RequestType, ScheduleRequest
from clinic_scheduling.models.user import Actor, Role
from clinic_scheduling.repositories.request_repository import RequestFilter
from clinic_scheduling.services.request_service import RequestService, get_request_service
from clinic_scheduling.services.pto_storage import LocalBlobStore, get_blob_store
from clinic_scheduling.utils.auth import get_current_actor, verify_role, is_owner

router = APIRouter()

def _check_visible(request: ScheduleRequest, actor: Actor):
    # Providers only ever see their own requests
    if actor.role == Role.PROVIDER and not is_owner(actor, request):
        raise Forbidden("Access denied")

@router.get("/", response_model=PaginatedRequestsResponse)
async def list_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[RequestStatus] = None,
    providerId: Optional[str] = None,
    requestType: Optional[RequestType] = None,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    if actor.role == Role.PROVIDER:
        providerId = actor.id

    requests = await service.list_requests(
        RequestFilter(status=status, providerId=providerId, requestType=requestType)
    )
    total = len(requests)
    skip = (page - 1) * limit

    return PaginatedRequestsResponse(
        items=requests[skip:skip + limit],
        total=total,
        page=page,
        limit=limit,
        totalPages=(total + limit - 1) // limit
    )

@router.post("/", response_model=ScheduleRequest, status_code=201)
async def create_request(
    payload: ScheduleRequestCreate,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    return await service.create(payload, actor)

@router.get("/{request_id}", response_model=ScheduleRequest)
async def get_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    request = await service.get(request_id)
    _check_visible(request, actor)
    return request

@router.put("/{request_id}", response_model=ScheduleRequest)
async def update_request(
    request_id: str,
    payload: ScheduleRequestCreate,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    return await service.update(request_id, payload, actor)

@router.patch("/{request_id}/status", response_model=ScheduleRequest)
async def update_request_status(
    request_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    return await service.transition(request_id, body.status, actor, body.notes)

@router.patch("/{request_id}/admin-notes", response_model=ScheduleRequest)
async def add_admin_notes(
    request_id: str,
    body: NotesUpdate,
    actor: Actor = Depends(verify_role([Role.ADMIN])),
    service: RequestService = Depends(get_request_service)
):
    return await service.add_note(request_id, actor, body.notes)

@router.patch("/{request_id}/director-notes", response_model=ScheduleRequest)
async def add_director_notes(
    request_id: str,
    body: NotesUpdate,
    actor: Actor = Depends(verify_role([Role.DIRECTOR])),
    service: RequestService = Depends(get_request_service)
):
    return await service.add_note(request_id, actor, body.notes)

@router.post("/{request_id}/upload-pto", response_model=ScheduleRequest)
async def upload_pto_form(
    request_id: str,
    ptoForm: UploadFile = File(...),
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service),
    store: LocalBlobStore = Depends(get_blob_store)
):
    request = await service.get(request_id)
    _check_visible(request, actor)
    if not request.is_pending:
        raise EditNotAllowed(request.status.value, "given a PTO form")

    # Oversized uploads are refused before they are read into memory
    if ptoForm.size is not None:
        store.validate(ptoForm.filename, size=ptoForm.size)
    content = await ptoForm.read(store.max_size + 1)
    ref = store.save(ptoForm.filename, content)

    try:
        return await service.attach_pto_form(request_id, ref, actor)
    except ScheduleRequestError:
        store.delete(ref)
        raise

async def _stored_form(request_id: str, actor: Actor, service: RequestService, store: LocalBlobStore) -> str:
    request = await service.get(request_id)
    _check_visible(request, actor)
    if not store.exists(request.ptoFormRef):
        raise NotFound(request_id, f"No PTO form stored for request {request_id}")
    return request.ptoFormRef

@router.get("/{request_id}/pto-form")
async def download_pto_form(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service),
    store: LocalBlobStore = Depends(get_blob_store)
):
    ref = await _stored_form(request_id, actor, service, store)
    return FileResponse(store.path_for(ref), filename=ref)

@router.get("/{request_id}/pto-form/info", response_model=PtoFormInfoResponse)
async def get_pto_form_info(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service),
    store: LocalBlobStore = Depends(get_blob_store)
):
    ref = await _stored_form(request_id, actor, service, store)
    return PtoFormInfoResponse(data=PtoFormInfo(requestId=request_id, **store.info(ref)))

@router.post("/{request_id}/send-clarification", response_model=ActionResult)
async def send_clarification(
    request_id: str,
    body: ClarificationRequest,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    result = await service.send_clarification(request_id, body.clarificationMessage, actor)
    return ActionResult(
        success=result.success,
        message="Clarification email sent successfully" if result.success else "Failed to send clarification email",
        data=result
    )

@router.get("/{request_id}/conflicts", response_model=ConflictsResponse)
async def get_request_conflicts(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    request = await service.get(request_id)
    _check_visible(request, actor)

    conflicts = await service.find_conflicts(request_id)
    return ConflictsResponse(data=conflicts, total=len(conflicts))

@router.delete("/{request_id}", response_model=ActionResult)
async def delete_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RequestService = Depends(get_request_service)
):
    removed = await service.delete(request_id, actor)
    return ActionResult(success=True, message="Request deleted successfully", data=removed)
