import uuid
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ADMIN_ROLE = "admin"
CUSTOMER_ROLE = "customer"


class AuthUser(BaseModel):
    """
    Represents an authenticated user decoded from an access token.

    ``sub`` must be a UUID; tokens carrying anything else are rejected at the
    boundary rather than coerced further down.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: uuid.UUID = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: Literal["admin", "customer"] = CUSTOMER_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
