from fastapi import APIRouter, HTTPException
from datetime import datetime
from clinic_scheduling.db import get_db, get_request_repository

router = APIRouter()

VERSION = "1.0.0"

async def _check_storage() -> dict:
    db = get_db()
    if db is None:
        repository = get_request_repository()
        if repository is None:
            return {"status": "unhealthy", "error": "Storage not initialised"}
        # In-memory store: nothing to ping, and nothing survives a restart
        return {"status": "healthy", "backend": "memory", "persistent": False}

    try:
        await db.command("ping")
        return {"status": "healthy", "backend": "mongo", "persistent": True}
    except Exception as e:
        return {"status": "unhealthy", "backend": "mongo", "error": str(e)}

@router.get("/health")
async def health_check():
    """
    Basic health check endpoint for production monitoring
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": VERSION,
        "checks": {}
    }

    storage = await _check_storage()
    health_status["checks"]["storage"] = storage
    if storage["status"] != "healthy":
        health_status["status"] = "degraded"

    return health_status

@router.get("/health/ready")
async def readiness_check():
    """
    Readiness probe: storage must answer
    """
    storage = await _check_storage()
    if storage["status"] != "healthy":
        raise HTTPException(
            status_code=503,
            detail={
                "status": "not_ready",
                "timestamp": datetime.utcnow().isoformat(),
                "error": storage.get("error")
            }
        )

    return {
        "status": "ready",
        "timestamp": datetime.utcnow().isoformat()
    }

@router.get("/health/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat()
    }
