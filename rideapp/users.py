# rideapp/users.py
import logging
from typing import List

from sqlmodel import Session, col, or_, select

from .auth import ensure_not_reserved
from .config import Settings
from .errors import NotFound
from .models import Payment, Ride, User
from .roles import Role, at_least

logger = logging.getLogger(__name__)


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def list_users(session: Session) -> List[User]:
    return session.exec(
        select(User).order_by(col(User.created_at).desc(), col(User.id).desc())
    ).all()


def promote_user(session: Session, settings: Settings, user_id: int) -> User:
    user = get_user(session, user_id)
    ensure_not_reserved(user, settings)
    if at_least(user.role, Role.ADMIN):
        # never lowers a SUPERADMIN
        return user
    user.role = Role.ADMIN
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("user %s promoted to ADMIN", user.id)
    return user


def delete_user(session: Session, settings: Settings, user_id: int) -> None:
    """Delete a user with their rides and every payment touching them."""
    user = get_user(session, user_id)
    ensure_not_reserved(user, settings)

    rides = session.exec(select(Ride).where(Ride.user_id == user_id)).all()
    ride_ids = [r.id for r in rides]
    payments = session.exec(
        select(Payment).where(
            or_(Payment.user_id == user_id, col(Payment.ride_id).in_(ride_ids))
        )
    ).all()
    for row in [*payments, *rides]:
        session.delete(row)
    session.flush()
    session.delete(user)
    session.commit()
    logger.info("user %s deleted", user_id)
