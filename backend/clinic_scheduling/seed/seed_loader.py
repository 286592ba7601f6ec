import logging
from datetime import date, datetime, time
from typing import List
from clinic_scheduling.db import get_request_repository
from clinic_scheduling.models.request import (
    RequestStatus, RequestType, ScheduleRequest
)
from clinic_scheduling.repositories.request_repository import RequestRepository

logger = logging.getLogger(__name__)

def demo_requests() -> List[ScheduleRequest]:
    provider = {
        "providerId": "prov_1",
        "providerName": "Dr. John Provider",
        "providerEmail": "provider@clinic.com",
    }
    return [
        ScheduleRequest(
            id="req_1",
            **provider,
            requestType=RequestType.FULL_DAY,
            startDate=date(2025, 1, 15),
            reason="Personal day off",
            ptoRequired=True,
            createdAt=datetime(2025, 1, 10, 10, 0),
            updatedAt=datetime(2025, 1, 10, 10, 0),
        ),
        ScheduleRequest(
            id="req_2",
            **provider,
            requestType=RequestType.SPECIFIC_TIME,
            startDate=date(2025, 1, 20),
            startTime=time(14, 0),
            endTime=time(16, 0),
            reason="Medical appointment",
            status=RequestStatus.APPROVED,
            approvedAt=datetime(2025, 1, 11, 9, 0),
            approvedBy="Admin Staff",
            createdAt=datetime(2025, 1, 9, 14, 30),
            updatedAt=datetime(2025, 1, 11, 9, 0),
        ),
    ]

async def seed_requests(repository: RequestRepository) -> int:
    """Insert the demo requests that are not stored yet."""
    added = 0
    for request in demo_requests():
        if await repository.get(request.id) is None:
            await repository.put(request)
            added += 1
    return added

async def run_seed():
    added = await seed_requests(get_request_repository())
    logger.info("Seeded %d demo schedule requests", added)
