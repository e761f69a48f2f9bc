# rideapp/rides.py
import logging
from typing import List

from sqlmodel import Session, col, select

from .auth import CurrentUser, ensure_self_or_admin
from .errors import BadRequest, NotFound
from .models import Ride, RideStatus, Vehicle
from . import schemas as s

logger = logging.getLogger(__name__)


# --------------- Vehicles ---------------
def create_vehicle(session: Session, payload: s.VehicleCreate) -> Vehicle:
    v = Vehicle(**payload.model_dump())
    session.add(v)
    session.commit()
    session.refresh(v)
    return v


def list_vehicles(session: Session, requester: CurrentUser) -> List[Vehicle]:
    # admins see all; regular users only active vehicles
    stmt = select(Vehicle)
    if not requester.is_admin:
        stmt = stmt.where(Vehicle.active == True)  # noqa: E712
    return session.exec(
        stmt.order_by(col(Vehicle.created_at).desc(), col(Vehicle.id).desc())
    ).all()


def active_vehicles(session: Session) -> List[Vehicle]:
    # vehicles carry no position yet, so "nearby" means every active one
    return session.exec(
        select(Vehicle).where(Vehicle.active == True).order_by(col(Vehicle.id))  # noqa: E712
    ).all()


# ---------------- Rides -----------------
def create_ride(session: Session, requester: CurrentUser, payload: s.RideCreate) -> Ride:
    if payload.vehicle_id is not None and not session.get(Vehicle, payload.vehicle_id):
        raise BadRequest("Invalid vehicle_id")

    ride = Ride(user_id=requester.id, status=RideStatus.pending, **payload.model_dump())
    session.add(ride)
    session.commit()
    session.refresh(ride)
    logger.info("ride %s created by user %s", ride.id, requester.id)
    return ride


def list_rides(session: Session, requester: CurrentUser) -> List[Ride]:
    return session.exec(
        select(Ride)
        .where(Ride.user_id == requester.id)
        .order_by(col(Ride.created_at).desc(), col(Ride.id).desc())
    ).all()


def list_all_rides(session: Session) -> List[Ride]:
    return session.exec(
        select(Ride).order_by(col(Ride.created_at).desc(), col(Ride.id).desc())
    ).all()


def get_ride(session: Session, ride_id: int, requester: CurrentUser) -> Ride:
    ride = session.get(Ride, ride_id)
    if not ride:
        raise NotFound("Ride not found")
    # users can only view their own ride unless admin
    ensure_self_or_admin(ride.user_id, requester)
    return ride


def update_ride_status(
    session: Session, ride_id: int, new_status: RideStatus, requester: CurrentUser
) -> Ride:
    ride = get_ride(session, ride_id, requester)
    old = ride.status
    ride.status = RideStatus(new_status)
    session.add(ride)
    session.commit()
    session.refresh(ride)
    logger.info("ride %s status %s -> %s", ride.id, old.value, ride.status.value)
    return ride
