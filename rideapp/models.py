from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel, UniqueConstraint

from .roles import Role


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RideStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"


class PaymentMethod(str, Enum):
    QR = "QR"
    CASH = "CASH"
    CARD = "CARD"
    WALLET = "WALLET"


class User(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("email"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    password_hash: str
    name: str
    phone: Optional[str] = None
    role: Role = Field(default=Role.USER)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    rides: List["Ride"] = Relationship(back_populates="user")


class Vehicle(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("plate"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    type: str
    plate: str
    driver: Optional[str] = None
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Ride(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    vehicle_id: Optional[int] = Field(default=None, foreign_key="vehicle.id", index=True)
    origin: str
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    destination: str
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    status: RideStatus = Field(default=RideStatus.pending)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)

    user: Optional[User] = Relationship(back_populates="rides")
    vehicle: Optional[Vehicle] = Relationship()
    payments: List["Payment"] = Relationship(back_populates="ride")


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    ride_id: int = Field(foreign_key="ride.id", index=True)
    amount: float
    currency: str = "USD"
    method: PaymentMethod = Field(default=PaymentMethod.QR)
    status: PaymentStatus = Field(default=PaymentStatus.pending)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    ride: Optional[Ride] = Relationship(back_populates="payments")
