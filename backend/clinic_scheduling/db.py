import os
import logging
from motor.motor_asyncio import AsyncIOMotorClient
from clinic_scheduling.repositories.request_repository import (
    RequestRepository, InMemoryRequestRepository, MongoRequestRepository
)
from clinic_scheduling.repositories.notification_repository import (
    NotificationLog, InMemoryNotificationLog, MongoNotificationLog
)

logger = logging.getLogger(__name__)

# Storage setup
client = None
db = None
request_repository: RequestRepository = None
notification_log: NotificationLog = None

def init_db(app=None):
    """Build the stores selected by STORAGE_BACKEND (memory | mongo)."""
    global client, db, request_repository, notification_log
    backend = os.getenv("STORAGE_BACKEND", "memory").lower()

    if backend == "mongo":
        MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/clinic_scheduling")
        client = AsyncIOMotorClient(MONGODB_URI)
        db = client.get_default_database()
        request_repository = MongoRequestRepository(db)
        notification_log = MongoNotificationLog(db)
    else:
        # Process memory only: all data is lost on restart
        client = None
        db = None
        request_repository = InMemoryRequestRepository()
        notification_log = InMemoryNotificationLog()

    logger.info("Storage backend initialised: %s", backend)
    if app is not None:
        app.state.db = db
        app.state.request_repository = request_repository

def get_db():
    return db

def get_request_repository() -> RequestRepository:
    return request_repository

def get_notification_log() -> NotificationLog:
    return notification_log
