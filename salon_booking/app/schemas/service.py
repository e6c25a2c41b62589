"""
Pydantic models for the service catalog.
"""

from typing import Optional

from pydantic import BaseModel, Field

# Lowercase slug: letters, digits and underscores/dashes.
SERVICE_ID_PATTERN = r"^[a-z0-9][a-z0-9_\-]*$"


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Gumgell"])
    price_minor_units: int = Field(..., ge=0, examples=[1500])
    duration_minutes: int = Field(..., gt=0, examples=[60])


class ServiceCreate(ServiceBase):
    """Schema for adding a service to the catalog."""

    id: str = Field(..., pattern=SERVICE_ID_PATTERN, examples=["gumgell"])


class ServiceUpdate(BaseModel):
    """Schema for updating a service.

    All fields are optional; only provided fields will be updated.  The
    id itself can never change.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    price_minor_units: Optional[int] = Field(default=None, ge=0)
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    active: Optional[bool] = None


class Service(ServiceBase):
    """A catalog entry as stored."""

    id: str
    active: bool = True

    model_config = {
        "from_attributes": True,
    }
