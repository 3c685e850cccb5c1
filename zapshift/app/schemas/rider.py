"""
Rider Pydantic schemas.
"""

from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional
from zapshift.app.models.enums import RiderStatus, WorkStatus
from zapshift.app.schemas.common import CamelModel


class RiderApplication(CamelModel):
    """Schema for the rider application form."""
    email: EmailStr
    rider_district: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    age: Optional[int] = Field(None, ge=18, le=100)
    nid: Optional[str] = Field(None, max_length=50)
    bike_brand: Optional[str] = Field(None, max_length=100)
    bike_registration: Optional[str] = Field(None, max_length=50)


class RiderStatusUpdate(CamelModel):
    """Admin decision on an application."""
    status: RiderStatus


class RiderResponse(CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    rider_district: str
    age: Optional[int] = None
    nid: Optional[str] = None
    bike_brand: Optional[str] = None
    bike_registration: Optional[str] = None
    status: RiderStatus
    work_status: Optional[WorkStatus] = None
    created_at: datetime
