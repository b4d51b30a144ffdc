from fastapi import status

from reservation_api.core.exceptions import (
    AlreadyPaidException,
    CapacityExceededException,
    GatewayUnavailableException,
    InactiveException,
    OwnershipException,
    PaymentNotFoundException,
    PastDateException,
    StoreUnavailableException,
)


def test_capacity_exceeded_maps_to_conflict():
    exc = CapacityExceededException(2, 2, details={"court_id": "c1"})
    http_exc = exc.to_http_exception()
    assert http_exc.status_code == status.HTTP_409_CONFLICT
    assert http_exc.detail["code"] == "CAPACITY_EXCEEDED"
    assert http_exc.detail["details"]["court_id"] == "c1"


def test_inactive_codes_distinguish_court_and_timeslot():
    assert InactiveException("court", "c1").code == "RESOURCE_INACTIVE"
    assert InactiveException("timeslot", "t1").code == "WINDOW_INACTIVE"


def test_status_codes():
    assert OwnershipException().to_http_exception().status_code == status.HTTP_403_FORBIDDEN
    assert PaymentNotFoundException("TRX-1").to_http_exception().status_code == status.HTTP_404_NOT_FOUND
    assert AlreadyPaidException("r1").to_http_exception().status_code == status.HTTP_409_CONFLICT
    assert PastDateException("2000-01-01").to_http_exception().status_code == 422
    assert (
        GatewayUnavailableException("down").to_http_exception().status_code
        == status.HTTP_502_BAD_GATEWAY
    )
    assert (
        StoreUnavailableException().to_http_exception().status_code
        == status.HTTP_503_SERVICE_UNAVAILABLE
    )


def test_codes():
    assert OwnershipException().code == "UNAUTHORIZED"
    assert PaymentNotFoundException("TRX-1").code == "PAYMENT_NOT_FOUND"
    assert GatewayUnavailableException("down").code == "GATEWAY_UNAVAILABLE"
    assert StoreUnavailableException().code == "STORE_UNAVAILABLE"
