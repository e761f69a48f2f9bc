# rideapp/seed.py
"""Create the reserved superadmin account.

    python -m rideapp.seed

Reads SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD (plus optional _NAME and _PHONE)
from the environment or .env.
"""
import logging
import sys

from sqlmodel import Session, select

from .auth import hash_password
from .config import Settings, configure_logging, get_settings
from .database import init_db, make_engine
from .models import User
from .roles import Role

logger = logging.getLogger(__name__)


def ensure_superadmin(session: Session, settings: Settings) -> User:
    if not settings.superadmin_password:
        raise RuntimeError("SUPERADMIN_EMAIL and SUPERADMIN_PASSWORD must be set")

    existing = session.exec(select(User).where(User.email == settings.superadmin_email)).first()
    if existing:
        logger.info("superadmin already exists: %s", existing.email)
        return existing

    user = User(
        email=settings.superadmin_email,
        password_hash=hash_password(settings.superadmin_password),
        name=settings.superadmin_name,
        phone=settings.superadmin_phone,
        role=Role.SUPERADMIN,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("superadmin created: %s", user.email)
    return user


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    engine = make_engine(settings)
    try:
        init_db(engine)
        with Session(engine) as session:
            ensure_superadmin(session, settings)
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
