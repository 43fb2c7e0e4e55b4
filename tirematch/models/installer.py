from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tirematch.core.enums import InstallerStatus, JobStatus

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class InstallerRecord(BaseModel):
    """An installation shop from the Airtable Installers table."""

    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: str = ""
    city: str = ""
    province: str = ""
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    calendly_link: Optional[str] = None
    service_radius_km: Optional[float] = None
    price_per_tire: Optional[float] = None
    status: str = InstallerStatus.PENDING.value
    rating: float = 0.0
    total_installations: int = 0
    distance_km: Optional[float] = None  # set by find_nearby only

    @property
    def is_active(self) -> bool:
        return self.status == InstallerStatus.ACTIVE.value

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class InstallerApplication(BaseModel):
    """Installer sign-up form. Stored as an installer with status Pending."""

    business_name: str = Field(..., min_length=1, max_length=200)
    contact_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=_EMAIL_PATTERN)
    phone: str = Field(..., min_length=7, max_length=30)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    province: str = "QC"
    postal_code: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    service_radius_km: float = Field(default=50, gt=0, le=500)
    price_per_tire: Optional[float] = Field(default=None, ge=0)
    license_number: str = ""
    calendar_link: str = ""
    notes: str = ""


class JobCreate(BaseModel):
    """Fields a caller supplies when booking an installation."""

    customer_name: str = Field(..., min_length=1)
    customer_email: str = Field(..., pattern=_EMAIL_PATTERN)
    customer_phone: str = ""
    installer_id: str = Field(..., min_length=1)
    tire_product: str = Field(..., min_length=1)  # e.g. "Michelin Defender LTX"
    quantity: int = Field(default=4, ge=1, le=8)
    installation_price: float = Field(default=0.0, ge=0)
    reference: Optional[str] = None
    shopify_order_id: Optional[str] = None
    notes: Optional[str] = None
    # Accepted for compatibility and ignored: new jobs always start Pending
    status: Optional[str] = None


class JobUpdate(BaseModel):
    status: JobStatus
    notes: Optional[str] = None
    expected_status: Optional[JobStatus] = None


class InstallationJob(BaseModel):
    """A booking linking a customer, an installer and a tire selection."""

    id: str
    reference: Optional[str] = None
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    customer_address: Optional[str] = None
    installer_id: Optional[str] = None
    tire_product: str = ""
    quantity: int = 0
    installation_price: float = 0.0
    status: JobStatus = JobStatus.PENDING
    shopify_order_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
