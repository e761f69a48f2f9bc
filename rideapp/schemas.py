import math
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import PaymentMethod, PaymentStatus, RideStatus
from .roles import Role


# ------------------------------------------------------------------
# Base classes
# ------------------------------------------------------------------
class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RequestModel(BaseModel):
    # unknown fields are a malformed request
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ------------------------------------------------------------------
# Auth / users
# ------------------------------------------------------------------
class RegisterRequest(RequestModel):
    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)
    phone: Optional[str] = None


class LoginRequest(RequestModel):
    # unknown or odd addresses are just bad credentials
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserRead(ORMModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    role: Role
    created_at: datetime


class UserSummary(ORMModel):
    id: int
    name: str
    email: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    user: UserRead


class UserActionResponse(BaseModel):
    message: str
    user: UserRead


# ------------------------------------------------------------------
# Vehicles
# ------------------------------------------------------------------
class VehicleCreate(RequestModel):
    type: str = Field(min_length=1)
    plate: str = Field(min_length=1)
    driver: Optional[str] = None
    active: bool = True


class VehicleRead(ORMModel):
    id: int
    type: str
    plate: str
    driver: Optional[str] = None
    active: bool
    created_at: datetime


class NearbyVehicles(BaseModel):
    radius_km: float
    vehicles: List[VehicleRead]


# ------------------------------------------------------------------
# Rides
# ------------------------------------------------------------------
class RideCreate(RequestModel):
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    vehicle_id: Optional[int] = None
    origin_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    origin_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    dest_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    dest_lng: Optional[float] = Field(default=None, ge=-180, le=180)


class RideStatusUpdate(RequestModel):
    status: RideStatus


class PaymentRead(ORMModel):
    id: int
    user_id: int
    ride_id: int
    amount: float
    currency: str
    method: PaymentMethod
    status: PaymentStatus
    created_at: datetime


class RideRead(ORMModel):
    id: int
    user_id: int
    vehicle_id: Optional[int] = None
    origin: str
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    destination: str
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    status: RideStatus
    created_at: datetime


class RideReadFull(RideRead):
    user: Optional[UserSummary] = None
    vehicle: Optional[VehicleRead] = None
    payments: List[PaymentRead] = []


# ------------------------------------------------------------------
# Payments
# ------------------------------------------------------------------
class PaymentCreate(RequestModel):
    ride_id: int
    amount: float
    currency: str = Field(default="USD", min_length=3, max_length=3)
    method: PaymentMethod = PaymentMethod.QR

    @field_validator("amount")
    @classmethod
    def positive_amount(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError("amount must be a positive number")
        return v

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class PaymentResult(BaseModel):
    payment: PaymentRead
    qr_payload: Optional[str] = None
