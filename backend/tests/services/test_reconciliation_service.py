"""
Tests for gateway reconciliation.

Covers:
- Settlement: payment paid, reservation confirmed, replays are no-ops
- Failure codes: payment failed, reservation cancelled
- Pending and unhandled codes change nothing
- Unknown transactions
- Conflicting events after a terminal outcome
- Settlement into a slot that filled up
- Callback ledger bookkeeping
- Concurrent settlements racing for the last seats
- Events for expired or reissued checkouts
- Settlement racing a user cancellation
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
import threading
from unittest.mock import patch

import pytest

from reservation_api.core.exceptions import PaymentNotFoundException
from reservation_api.integrations.midtrans_client import DummyPaymentGateway
from reservation_api.models import AuditLog, Payment, Reservation, WebhookEvent
from reservation_api.repositories.audit_repository import AuditRepository
from reservation_api.services.payment_service import PaymentService
from reservation_api.services.reconciliation_service import (
    ReconciliationService,
    classify_status_code,
)
from reservation_api.services.reservation_lifecycle import ReservationLifecycleService


@pytest.fixture
def service(db):
    return ReconciliationService(db)


@pytest.fixture
def make_payment(db):
    counter = {"n": 0}

    def _make(reservation: Reservation, **overrides) -> Payment:
        counter["n"] += 1
        values = {
            "reservation_id": reservation.id,
            "amount": 100000,
            "status": "pending",
            "transaction_id": f"TRX-{counter['n']:08x}-1900000000",
        }
        values.update(overrides)
        payment = Payment(**values)
        db.add(payment)
        db.commit()
        return payment

    return _make


@pytest.fixture
def reservation(make_reservation, user, court, timeslot, tomorrow):
    return make_reservation(user, court, timeslot, tomorrow)


@pytest.fixture
def payment(make_payment, reservation):
    return make_payment(reservation)


def _reload(db, *rows):
    for row in rows:
        db.refresh(row)


@pytest.mark.parametrize(
    "code,expected",
    [
        ("capture", "settle"),
        ("settlement", "settle"),
        ("SETTLEMENT", "settle"),
        ("pending", "pending"),
        ("deny", "fail"),
        ("expire", "fail"),
        ("cancel", "fail"),
        ("refund", "ignore"),
        ("", "ignore"),
    ],
)
def test_classify_status_code(code, expected):
    assert classify_status_code(code) == expected


class TestSettlement:
    def test_settlement_pays_and_confirms(self, service, db, payment, reservation):
        result = service.apply_gateway_event(payment.transaction_id, "settlement")

        _reload(db, payment, reservation)
        assert result.outcome == "processed"
        assert result.payment_status == "paid"
        assert result.reservation_status == "confirmed"
        assert payment.status == "paid"
        assert payment.paid_at is not None
        assert reservation.status == "confirmed"

    def test_replay_is_noop(self, service, db, payment, reservation):
        service.apply_gateway_event(payment.transaction_id, "settlement")
        _reload(db, payment)
        paid_at = payment.paid_at
        audit_count = db.query(AuditLog).count()

        result = service.apply_gateway_event(payment.transaction_id, "settlement")

        _reload(db, payment, reservation)
        assert result.payment_status == "paid"
        assert result.reservation_status == "confirmed"
        assert payment.paid_at == paid_at
        assert db.query(AuditLog).count() == audit_count

    def test_capture_behaves_like_settlement(self, service, db, payment, reservation):
        service.apply_gateway_event(payment.transaction_id, "capture")
        _reload(db, reservation)
        assert reservation.status == "confirmed"

    def test_transitions_are_audited(self, service, db, payment, reservation):
        service.apply_gateway_event(payment.transaction_id, "settlement")

        actions = {
            (row.entity_type, row.action)
            for row in db.query(AuditLog).filter(AuditLog.entity_id.in_([payment.id, reservation.id]))
        }
        assert actions == {("payment", "payment.paid"), ("reservation", "reservation.confirm")}

    def test_full_slot_cancels_reservation_but_keeps_payment(
        self, service, db, make_user, make_reservation, payment, reservation, court, timeslot, tomorrow
    ):
        for _ in range(court.capacity):
            make_reservation(make_user(), court, timeslot, tomorrow, status="confirmed")

        result = service.apply_gateway_event(payment.transaction_id, "settlement")

        _reload(db, payment, reservation)
        assert result.outcome == "processed"
        assert payment.status == "paid"
        assert reservation.status == "cancelled"
        assert reservation.cancellation_reason == "slot_full_at_settlement"

    def test_settlement_after_failure_is_ignored(self, service, db, payment, reservation):
        service.apply_gateway_event(payment.transaction_id, "expire")

        result = service.apply_gateway_event(payment.transaction_id, "settlement")

        _reload(db, payment, reservation)
        assert result.outcome == "ignored"
        assert payment.status == "failed"
        assert reservation.status == "cancelled"


class TestFailure:
    @pytest.mark.parametrize("code", ["expire", "deny", "cancel"])
    def test_failure_cancels_reservation(self, service, db, payment, reservation, code):
        result = service.apply_gateway_event(payment.transaction_id, code)

        _reload(db, payment, reservation)
        assert result.outcome == "processed"
        assert payment.status == "failed"
        assert reservation.status == "cancelled"
        assert reservation.cancellation_reason == "payment_failed"

    def test_failure_after_settlement_is_ignored(self, service, db, payment, reservation):
        service.apply_gateway_event(payment.transaction_id, "settlement")

        result = service.apply_gateway_event(payment.transaction_id, "expire")

        _reload(db, payment, reservation)
        assert result.outcome == "ignored"
        assert payment.status == "paid"
        assert reservation.status == "confirmed"

    def test_failure_replay_is_noop(self, service, db, payment, reservation):
        service.apply_gateway_event(payment.transaction_id, "deny")
        audit_count = db.query(AuditLog).count()

        service.apply_gateway_event(payment.transaction_id, "deny")

        assert db.query(AuditLog).count() == audit_count


class TestNoChange:
    @pytest.mark.parametrize("code,outcome", [("pending", "processed"), ("refund", "ignored")])
    def test_state_unchanged(self, service, db, payment, reservation, code, outcome):
        result = service.apply_gateway_event(payment.transaction_id, code)

        _reload(db, payment, reservation)
        assert result.outcome == outcome
        assert payment.status == "pending"
        assert reservation.status == "pending"

    def test_unknown_transaction(self, service, payment):
        with pytest.raises(PaymentNotFoundException) as exc_info:
            service.apply_gateway_event("TRX-unknown", "settlement")
        assert exc_info.value.code == "PAYMENT_NOT_FOUND"


class TestExpiredCheckout:
    @pytest.fixture
    def expired_payment(self, make_payment, reservation):
        return make_payment(
            reservation, expired_at=datetime.now(timezone.utc) - timedelta(hours=1)
        )

    @pytest.mark.parametrize("code", ["settlement", "capture", "deny", "expire"])
    def test_event_for_lapsed_checkout_changes_nothing(
        self, service, db, expired_payment, reservation, code
    ):
        result = service.apply_gateway_event(expired_payment.transaction_id, code)

        _reload(db, expired_payment, reservation)
        assert result.outcome == "ignored"
        assert expired_payment.status == "pending"
        assert expired_payment.effective_status == "expired"
        assert expired_payment.paid_at is None
        assert reservation.status == "pending"
        assert db.query(AuditLog).count() == 0

    def test_checkout_reissued_mid_event_is_not_found(
        self, service, db, session_factory, expired_payment, reservation, user
    ):
        stale_transaction_id = expired_payment.transaction_id
        locked_read = service.payment_repository.get_by_transaction_id

        def reissue_before_locked_read(transaction_id, for_update=False):
            if for_update:
                other = session_factory()
                try:
                    PaymentService(other, gateway=DummyPaymentGateway()).initiate(
                        reservation.id, user.id
                    )
                finally:
                    other.close()
            return locked_read(transaction_id, for_update=for_update)

        with patch.object(
            service.payment_repository,
            "get_by_transaction_id",
            side_effect=reissue_before_locked_read,
        ):
            with pytest.raises(PaymentNotFoundException):
                service.process_callback(
                    stale_transaction_id, "expire", {"order_id": stale_transaction_id}
                )

        _reload(db, expired_payment, reservation)
        assert expired_payment.transaction_id != stale_transaction_id
        assert expired_payment.status == "pending"
        assert reservation.status == "pending"
        assert db.query(WebhookEvent).one().status == "not_found"


class TestProcessCallback:
    def test_records_processed_event(self, service, db, payment):
        payload = {"order_id": payment.transaction_id, "transaction_status": "settlement"}

        result = service.process_callback(payment.transaction_id, "settlement", payload)

        event = db.query(WebhookEvent).one()
        assert result.outcome == "processed"
        assert event.source == "midtrans"
        assert event.event_id == f"{payment.transaction_id}:settlement"
        assert event.status == "processed"
        assert event.related_entity_id == payment.id
        assert event.payload == payload
        assert event.processed_at is not None

    def test_redelivery_bumps_retry_count(self, service, db, payment):
        payload = {"order_id": payment.transaction_id, "transaction_status": "settlement"}
        service.process_callback(payment.transaction_id, "settlement", payload)
        service.process_callback(payment.transaction_id, "settlement", payload)

        event = db.query(WebhookEvent).one()
        assert event.retry_count == 1
        assert event.last_retry_at is not None

    def test_unknown_transaction_recorded_as_not_found(self, service, db):
        with pytest.raises(PaymentNotFoundException):
            service.process_callback("TRX-unknown", "settlement", {"order_id": "TRX-unknown"})

        event = db.query(WebhookEvent).one()
        assert event.status == "not_found"
        assert event.processing_error

    def test_ignored_code_recorded_as_ignored(self, service, db, payment):
        service.process_callback(payment.transaction_id, "refund", {})

        assert db.query(WebhookEvent).one().status == "ignored"


def test_concurrent_settlements_never_overfill(
    session_factory, make_user, make_reservation, make_payment, court, timeslot, tomorrow
):
    payments = [
        make_payment(make_reservation(make_user(), court, timeslot, tomorrow)) for _ in range(5)
    ]

    def settle(transaction_id):
        session = session_factory()
        try:
            return ReconciliationService(session).apply_gateway_event(transaction_id, "settlement")
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=5) as pool:
        results = list(pool.map(settle, [p.transaction_id for p in payments]))

    statuses = sorted(r.reservation_status for r in results)
    assert statuses == ["cancelled"] * 3 + ["confirmed"] * 2
    assert all(r.payment_status == "paid" for r in results)


def test_settlement_racing_user_cancel_ends_cancelled_and_paid(
    db, session_factory, payment, reservation, user
):
    start = threading.Barrier(2)

    def user_cancel():
        session = session_factory()
        try:
            start.wait()
            return ReservationLifecycleService(session).cancel(reservation.id, user.id).status
        finally:
            session.close()

    def gateway_settle():
        session = session_factory()
        try:
            start.wait()
            return ReconciliationService(session).apply_gateway_event(
                payment.transaction_id, "settlement"
            )
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=2) as pool:
        cancelled = pool.submit(user_cancel)
        settled = pool.submit(gateway_settle)
        assert cancelled.result() == "cancelled"
        assert settled.result().payment_status == "paid"

    _reload(db, payment, reservation)
    assert payment.status == "paid"
    assert reservation.status == "cancelled"
    assert reservation.cancellation_reason == "user_cancelled"

    trail = {
        row.action: row for row in AuditRepository(db).list_for_entity("reservation", reservation.id)
    }
    assert set(trail) in ({"reservation.cancel"}, {"reservation.confirm", "reservation.cancel"})
    cancel = trail["reservation.cancel"]
    assert cancel.after["status"] == "cancelled"
    assert cancel.actor_role == "user"
    if "reservation.confirm" in trail:
        # Settled first: the user cancelled a confirmed reservation.
        assert trail["reservation.confirm"].before == {"status": "pending"}
        assert cancel.before == {"status": "confirmed"}
    else:
        assert cancel.before == {"status": "pending"}
