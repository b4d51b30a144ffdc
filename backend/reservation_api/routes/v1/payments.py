# backend/reservation_api/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /create - Start or resume payment for an own reservation
    POST /callback - Gateway status notification
    GET /{payment_id} - Payment details, owner only
"""

import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies import (
    get_current_user,
    get_payment_service,
    get_reconciliation_service,
)
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.payment import (
    PaymentCallbackRequest,
    PaymentCallbackResponse,
    PaymentCreate,
    PaymentInitResponse,
    PaymentResponse,
)
from ...services.payment_service import PaymentService
from ...services.reconciliation_service import ReconciliationService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create", response_model=PaymentInitResponse, status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: PaymentCreate,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentInitResponse:
    try:
        payment = service.initiate(payload.reservation_id, current_user.id)
        return PaymentInitResponse(
            payment=PaymentResponse.model_validate(payment),
            redirect_url=payment.gateway_redirect_url,
            token=payment.gateway_token,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/callback", response_model=PaymentCallbackResponse)
def payment_callback(
    payload: PaymentCallbackRequest,
    service: ReconciliationService = Depends(get_reconciliation_service),
) -> PaymentCallbackResponse:
    """
    Apply a gateway notification.

    Unknown transactions answer 404; unhandled statuses answer 200 with
    ``outcome=ignored``. Redeliveries are safe.
    """
    try:
        result = service.process_callback(
            payload.order_id,
            payload.transaction_status,
            payload.model_dump(mode="json"),
        )
    except DomainException as e:
        handle_domain_exception(e)
    return PaymentCallbackResponse(
        outcome=result.outcome,
        transaction_id=result.transaction_id,
        payment_status=result.payment_status,
        reservation_status=result.reservation_status,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    try:
        return PaymentResponse.model_validate(
            service.get_payment_for_user(payment_id, current_user.id)
        )
    except DomainException as e:
        handle_domain_exception(e)
