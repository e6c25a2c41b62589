"""
Pydantic models returned by the statistics service.
"""

from pydantic import BaseModel


class PopularService(BaseModel):
    service_id: str
    service_name: str
    booking_count: int
    total_revenue: int
