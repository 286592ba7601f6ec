import os # os needs to be imported before dotenv for getenv to work as expected in some cases
from dotenv import load_dotenv
load_dotenv() # Load .env file at the very beginning

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from clinic_scheduling.db import init_db
from clinic_scheduling.routes import requests, notifications, health
from clinic_scheduling.seed.seed_loader import run_seed
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from clinic_scheduling.middleware.error_handler import (
    ErrorHandlerMiddleware, http_exception_handler, request_validation_exception_handler
)
import logging

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = FastAPI(
    title="Clinic Schedule Requests API",
    description="Schedule blocking requests for clinic providers: submission, review, PTO forms and email notifications",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    if os.getenv("SEED_DEMO_DATA", "0") == "1":
        await run_seed()
    logging.info("Application startup completed")

# HTTPException and body validation errors are handled inside the router,
# so they get the same envelope through exception handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Error handler sits inside CORS so error responses still get CORS headers
app.add_middleware(ErrorHandlerMiddleware)

# Multiple origins can be provided via the CORS_ORIGINS environment variable, comma-separated.
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000")
cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize storage
init_db(app)

app.include_router(health.router, tags=["Health"])

@app.get("/")
async def root():
    return {
        "message": "Welcome to the Clinic Schedule Requests API",
        "docs": "/docs",
        "health": "/health"
    }

app.include_router(requests.router, prefix="/api/requests", tags=["Schedule Requests"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
