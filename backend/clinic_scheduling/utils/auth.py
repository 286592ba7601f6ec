from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from datetime import datetime, timedelta
from typing import Optional
from pydantic import ValidationError
from clinic_scheduling.errors import Forbidden
from clinic_scheduling.models.user import Actor, Role
from clinic_scheduling.models.request import RequestStatus, ScheduleRequest
import os
import secrets
import logging

# ---------------------------------------------------------------------------
# Tokens are issued by the clinic's identity provider; this service only
# verifies them and reads the role-tagged principal out of the claims.
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)

security = HTTPBearer()

SECRET_KEY = os.getenv("SECRET_KEY", "testing_secret_key_for_development_only")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

def create_access_token(
    actor_id: str,
    role: Role,
    name: Optional[str] = None,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None
) -> str:
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": actor_id,
        "role": Role(role).value,
        "name": name,
        "email": email,
        "exp": expire,
        "type": "access",
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_actor(token: str) -> Actor:
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    if payload.get("sub") is None:
        raise JWTError("Token has no subject")
    return Actor(
        id=payload["sub"],
        role=payload.get("role"),
        name=payload.get("name"),
        email=payload.get("email"),
    )

async def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        actor = decode_actor(credentials.credentials)
    except (JWTError, ValidationError) as e:
        logger.debug("Rejected bearer token: %s", e)
        raise credentials_exception

    return actor

def verify_role(required_roles: list):
    def role_checker(actor: Actor = Depends(get_current_actor)):
        if actor.role not in required_roles:
            raise Forbidden("Insufficient permissions")
        return actor
    return role_checker

# Role-specific dependencies
require_reviewer = verify_role([Role.ADMIN, Role.DIRECTOR])

def is_owner(actor: Actor, request: ScheduleRequest) -> bool:
    return actor.role == Role.PROVIDER and request.providerId == actor.id

def can_transition(actor: Actor, target: RequestStatus, request: Optional[ScheduleRequest] = None) -> bool:
    """Single authorisation policy for status changes.

    Approve / reject are reviewer-only; the owning provider may also cancel.
    """
    if target in (RequestStatus.APPROVED, RequestStatus.REJECTED):
        return actor.is_reviewer
    if target == RequestStatus.CANCELLED:
        return actor.is_reviewer or (request is not None and is_owner(actor, request))
    return False

def can_modify(actor: Actor, request: ScheduleRequest) -> bool:
    """Edit / delete / upload rights: the owner or a reviewer."""
    return actor.is_reviewer or is_owner(actor, request)
