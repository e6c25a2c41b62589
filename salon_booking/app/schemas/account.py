"""
Pydantic models for operator accounts.

Accounts are local to the store: the owner of the salon and any staff
members allowed to view bookings.  The first account ever created
becomes the owner.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

Role = Literal["owner", "viewer"]

OWNER = "owner"
VIEWER = "viewer"


class Account(BaseModel):
    id: int
    username: str
    password_hash: str
    salt: str
    created_at: datetime
    role: Role = VIEWER

    model_config = {
        "from_attributes": True,
    }

    @property
    def is_owner(self) -> bool:
        return self.role == OWNER
