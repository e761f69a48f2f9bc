"""Payment stub.

QR payments stay ``pending`` and hand the client an unsigned JSON payload to
render; it is not a settlement proof. Every other method is treated as paid
on the spot, so the payment and its ride are completed together.
"""

import json
import logging
from typing import Optional, Tuple

from sqlmodel import Session

from .auth import CurrentUser, ensure_self_or_admin
from .errors import BadRequest
from .models import Payment, PaymentMethod, PaymentStatus, Ride, RideStatus
from . import schemas as s

logger = logging.getLogger(__name__)


def qr_payload(payment: Payment) -> str:
    return json.dumps({
        "payment_id": payment.id,
        "amount": payment.amount,
        "currency": payment.currency,
        "ride_id": payment.ride_id,
    })


def create_payment(
    session: Session, requester: CurrentUser, payload: s.PaymentCreate
) -> Tuple[Payment, Optional[str]]:
    """Return the stored payment and, for QR, the payload to render."""
    ride = session.get(Ride, payload.ride_id)
    if not ride:
        raise BadRequest("Invalid ride_id")
    ensure_self_or_admin(ride.user_id, requester)

    payment = Payment(
        user_id=requester.id,
        ride_id=ride.id,
        amount=payload.amount,
        currency=payload.currency,
        method=payload.method,
        status=PaymentStatus.pending,
    )

    if payload.method == PaymentMethod.QR:
        session.add(payment)
        session.commit()
        session.refresh(payment)
        logger.info("payment %s pending (QR) for ride %s", payment.id, ride.id)
        return payment, qr_payload(payment)

    # no acquirer behind the other methods; both rows commit together
    payment.status = PaymentStatus.completed
    ride.status = RideStatus.completed
    session.add(payment)
    session.add(ride)
    session.commit()
    session.refresh(payment)
    logger.info("payment %s completed (%s), ride %s completed",
                payment.id, payment.method.value, ride.id)
    return payment, None
