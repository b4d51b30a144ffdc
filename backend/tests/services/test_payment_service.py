"""
Tests for payment initiation.

Covers:
- First initiation creates a pending payment with checkout handles
- Reuse of a live checkout, reissue of an expired one
- Cancelled reservations, paid and failed payments
- Gateway failures leave the pending payment in place
- Ownership checks
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import re
from unittest.mock import MagicMock

import pytest

from reservation_api.core.config import settings
from reservation_api.core.exceptions import (
    AlreadyPaidException,
    GatewayUnavailableException,
    NotFoundException,
    OwnershipException,
    ReservationCancelledException,
)
from reservation_api.integrations.midtrans_client import (
    CheckoutSession,
    DummyPaymentGateway,
    PaymentGatewayError,
)
from reservation_api.models import AuditLog, Payment
from reservation_api.services.payment_service import PaymentService, generate_transaction_id


@pytest.fixture
def gateway():
    return MagicMock(wraps=DummyPaymentGateway(url_base="http://pay.test/checkout"))


@pytest.fixture
def service(db, gateway):
    return PaymentService(db, gateway=gateway)


@pytest.fixture
def reservation(make_reservation, user, court, timeslot, tomorrow):
    return make_reservation(user, court, timeslot, tomorrow)


def test_transaction_id_format():
    assert re.fullmatch(r"TRX-[0-9a-f]{8}-\d+", generate_transaction_id())
    assert generate_transaction_id() != generate_transaction_id()


class TestInitiate:
    def test_creates_pending_payment_with_checkout(self, service, gateway, db, reservation, user):
        payment = service.initiate(reservation.id, user.id)

        assert payment.status == "pending"
        assert payment.amount == Decimal(str(settings.session_price))
        assert payment.gateway_token == f"DUMMY_TOKEN_{payment.transaction_id}"
        assert payment.gateway_redirect_url == (
            f"http://pay.test/checkout?transaction_id={payment.transaction_id}"
        )
        assert payment.expired_at is not None
        gateway.create_transaction.assert_called_once()

        request = gateway.create_transaction.call_args.args[0]
        assert request.transaction_id == payment.transaction_id
        assert request.customer_email == user.email
        assert request.customer_phone == user.phone
        assert request.item_name == "Pilates Class - Reformer Court A at 07:00"
        assert db.query(Payment).count() == 1

    def test_default_phone_when_user_has_none(self, service, gateway, make_reservation, other_user, court, timeslot, tomorrow):
        reservation = make_reservation(other_user, court, timeslot, tomorrow)
        service.initiate(reservation.id, other_user.id)

        request = gateway.create_transaction.call_args.args[0]
        assert request.customer_phone == settings.default_payer_phone

    def test_live_checkout_is_reused(self, service, gateway, db, reservation, user):
        first = service.initiate(reservation.id, user.id)
        second = service.initiate(reservation.id, user.id)

        assert second.id == first.id
        assert second.transaction_id == first.transaction_id
        assert gateway.create_transaction.call_count == 1
        assert db.query(Payment).count() == 1

    def test_expired_checkout_is_reissued(self, service, gateway, db, reservation, user):
        first = service.initiate(reservation.id, user.id)
        old_transaction_id = first.transaction_id
        first.expired_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        second = service.initiate(reservation.id, user.id)

        assert second.id == first.id
        assert second.status == "pending"
        assert second.transaction_id != old_transaction_id
        assert second.expired_at > datetime.now(timezone.utc)
        assert gateway.create_transaction.call_count == 2
        reissue = (
            db.query(AuditLog)
            .filter_by(entity_type="payment", entity_id=first.id, action="payment.reissue")
            .one()
        )
        assert reissue.after["previous_transaction_id"] == old_transaction_id

    def test_cancelled_reservation_rejected(self, service, gateway, db, reservation, user):
        reservation.mark_cancelled("user_cancelled")
        db.commit()

        with pytest.raises(ReservationCancelledException) as exc_info:
            service.initiate(reservation.id, user.id)

        assert exc_info.value.code == "RESERVATION_CANCELLED"
        assert db.query(Payment).count() == 0
        gateway.create_transaction.assert_not_called()

    def test_paid_reservation_rejected(self, service, db, reservation, user):
        payment = service.initiate(reservation.id, user.id)
        payment.mark_paid()
        db.commit()

        with pytest.raises(AlreadyPaidException):
            service.initiate(reservation.id, user.id)

    def test_failed_payment_rejected(self, service, db, reservation, user):
        payment = service.initiate(reservation.id, user.id)
        payment.mark_failed()
        db.commit()

        with pytest.raises(ReservationCancelledException):
            service.initiate(reservation.id, user.id)

    def test_other_users_reservation_rejected(self, service, reservation, other_user):
        with pytest.raises(OwnershipException):
            service.initiate(reservation.id, other_user.id)

    def test_unknown_reservation(self, service, user):
        with pytest.raises(NotFoundException):
            service.initiate("01HZZZZZZZZZZZZZZZZZZZZZZZ", user.id)


class TestGatewayFailure:
    def test_failure_keeps_pending_payment(self, db, reservation, user):
        gateway = MagicMock()
        gateway.create_transaction.side_effect = PaymentGatewayError("boom", status_code=500)
        service = PaymentService(db, gateway=gateway)

        with pytest.raises(GatewayUnavailableException) as exc_info:
            service.initiate(reservation.id, user.id)

        payment = db.query(Payment).filter_by(reservation_id=reservation.id).one()
        assert payment.status == "pending"
        assert payment.gateway_token is None
        assert exc_info.value.details == {
            "payment_id": payment.id,
            "transaction_id": payment.transaction_id,
        }

    def test_retry_after_failure_reuses_payment(self, db, reservation, user):
        gateway = MagicMock()
        gateway.create_transaction.side_effect = [
            PaymentGatewayError("boom"),
            CheckoutSession(token="snap-token", redirect_url="https://pay.example/snap-token"),
        ]
        service = PaymentService(db, gateway=gateway)

        with pytest.raises(GatewayUnavailableException):
            service.initiate(reservation.id, user.id)
        payment = service.initiate(reservation.id, user.id)

        assert db.query(Payment).count() == 1
        assert payment.gateway_token == "snap-token"
        first_request, second_request = [c.args[0] for c in gateway.create_transaction.call_args_list]
        assert first_request.transaction_id == second_request.transaction_id == payment.transaction_id


class TestGetPaymentForUser:
    def test_owner_can_read(self, service, reservation, user):
        payment = service.initiate(reservation.id, user.id)
        assert service.get_payment_for_user(payment.id, user.id).id == payment.id

    def test_other_user_rejected(self, service, reservation, user, other_user):
        payment = service.initiate(reservation.id, user.id)
        with pytest.raises(OwnershipException):
            service.get_payment_for_user(payment.id, other_user.id)

    def test_unknown_payment(self, service, user):
        with pytest.raises(NotFoundException):
            service.get_payment_for_user("missing", user.id)
