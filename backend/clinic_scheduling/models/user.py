from pydantic import BaseModel
from typing import Optional
from enum import Enum

class Role(str, Enum):
    PROVIDER = "provider"
    ADMIN = "admin"
    DIRECTOR = "director"

# Roles allowed to review requests (approve / reject / annotate)
REVIEWER_ROLES = (Role.ADMIN, Role.DIRECTOR)

class Actor(BaseModel):
    """Role-tagged principal handed to every mutating operation.

    Built from the bearer token issued by the identity provider; the core
    trusts these values as given.
    """
    id: str
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_reviewer(self) -> bool:
        return self.role in REVIEWER_ROLES
