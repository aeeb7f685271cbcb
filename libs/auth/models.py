import enum
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, enum.Enum):
    ADMIN = "Admin"
    CUSTOMER = "Customer"
    DISTRIBUTOR = "Distributor"
    WHOLESALE_BUYER = "Wholesale Buyer"
    RETAIL_REFERRER = "Retail Referrer"


class AuthUser(BaseModel):
    """
    Claims carried by an access token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: Role = Role.CUSTOMER
    token_type: str = Field(default="access", alias="type")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)

    @property
    def is_distributor(self) -> bool:
        return self.role == Role.DISTRIBUTOR
