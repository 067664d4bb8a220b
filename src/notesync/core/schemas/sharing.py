"""
Note sharing schemas.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from ..models.share import ShareRole


class ShareRequest(BaseModel):
    """Grant or change a user's role on a note."""

    email: EmailStr = Field(description="Email of a registered user")
    role: ShareRole = Field(description="viewer or editor")

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "colleague@example.com", "role": "editor"}}
    )


class UnshareRequest(BaseModel):
    """Remove a user's share entry, by email or by user id."""

    email: Optional[EmailStr] = Field(default=None)
    user_id: Optional[uuid.UUID] = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def require_target(self):
        if self.email is None and self.user_id is None:
            raise ValueError("Email or userId required")
        return self
