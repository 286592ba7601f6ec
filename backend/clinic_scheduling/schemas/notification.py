from pydantic import BaseModel, Field
from typing import Dict, List
from clinic_scheduling.models.notification import NotificationRecord

class NotificationTestRequest(BaseModel):
    recipient: str = Field(..., min_length=3)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)

class NotificationHistoryResponse(BaseModel):
    success: bool = True
    data: List[NotificationRecord]
    total: int

class NotificationStats(BaseModel):
    total: int
    byType: Dict[str, int]
    byStatus: Dict[str, int]
    byRecipient: Dict[str, int]
    recentActivity: List[NotificationRecord]

class NotificationStatsResponse(BaseModel):
    success: bool = True
    data: NotificationStats

class TemplateInfo(BaseModel):
    id: str
    name: str
    subject: str
    description: str

class TemplateListResponse(BaseModel):
    success: bool = True
    data: List[TemplateInfo]
