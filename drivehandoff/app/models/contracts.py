"""
Models for Drive permission records and transfer options.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PermissionRole(str, Enum):
    """Roles a Drive permission can hold."""
    OWNER = "owner"
    ORGANIZER = "organizer"
    FILE_ORGANIZER = "fileOrganizer"
    WRITER = "writer"
    COMMENTER = "commenter"
    READER = "reader"


class PrincipalType(str, Enum):
    """Kinds of grantee."""
    USER = "user"
    GROUP = "group"
    DOMAIN = "domain"
    ANYONE = "anyone"


class PermissionRecord(BaseModel):
    """One principal's access to a file, as Drive reports it."""
    id: str
    type: Optional[str] = None
    email_address: Optional[str] = Field(None, alias="emailAddress")
    role: Optional[str] = None
    pending_owner: bool = Field(False, alias="pendingOwner")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "P9",
                "type": "user",
                "emailAddress": "bob@example.com",
                "role": "writer",
                "pendingOwner": True,
            }
        }

    @property
    def is_owner(self) -> bool:
        return self.role == PermissionRole.OWNER.value


class PermissionGrant(BaseModel):
    """Request body for creating a permission."""
    role: PermissionRole
    type: PrincipalType = PrincipalType.USER
    email_address: str = Field(..., alias="emailAddress")
    pending_owner: bool = Field(False, alias="pendingOwner")

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class TransferOptions(BaseModel):
    """Knobs for a single ownership transfer."""
    lookup_attempts: int = Field(1, ge=1, description="Attempts to find the recipient's permission")
    lookup_backoff: float = Field(1.0, ge=0.0, description="Exponential backoff multiplier in seconds")
    lookup_backoff_max: float = Field(10.0, ge=0.0, description="Upper bound on a single backoff sleep")
    revoke_on_failure: bool = Field(False, description="Delete the pending grant if a later step fails")
    supports_all_drives: bool = Field(True, description="Allow files that live in shared drives")


class TransferPreview(BaseModel):
    """What a transfer would do, computed without mutating anything."""
    file_id: str
    recipient_email: str
    current_owners: List[str] = Field(default_factory=list)
    existing_permission: Optional[PermissionRecord] = None
    steps: List[str] = Field(default_factory=list)
