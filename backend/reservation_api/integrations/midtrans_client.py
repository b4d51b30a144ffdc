"""Minimal Midtrans Snap client for reservation checkouts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import json
import logging
import time
from typing import Any, Dict, Optional, Protocol, Union

import httpx
from pydantic import SecretStr

from ..core.config import settings
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_ACCEPTED_STATUS_CODES = {200, 201}


class PaymentGatewayError(RuntimeError):
    """Raised when the gateway cannot produce a checkout token."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class CheckoutRequest:
    transaction_id: str
    amount: Decimal
    customer_name: str
    customer_email: str
    customer_phone: str
    item_id: str
    item_name: str

    def to_payload(self) -> Dict[str, Any]:
        gross_amount = float(self.amount)
        return {
            "transaction_details": {
                "order_id": self.transaction_id,
                "gross_amount": gross_amount,
            },
            "customer_details": {
                "first_name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
            },
            "item_details": [
                {
                    "id": self.item_id,
                    "price": gross_amount,
                    "quantity": 1,
                    "name": self.item_name,
                }
            ],
        }


@dataclass(frozen=True)
class CheckoutSession:
    token: str
    redirect_url: str


class PaymentGateway(Protocol):
    def create_transaction(self, request: CheckoutRequest) -> CheckoutSession:
        ...


class MidtransSnapClient:
    """Thin client for the Snap transactions endpoint."""

    def __init__(
        self,
        *,
        server_key: Union[str, SecretStr],
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        secret_value = (
            server_key.get_secret_value() if isinstance(server_key, SecretStr) else server_key
        )
        if not secret_value:
            raise ValueError("Midtrans server key must be provided")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        # Snap authenticates with the server key as the Basic auth username and a blank password.
        self._auth = httpx.BasicAuth(secret_value, "")

    def create_transaction(self, request: CheckoutRequest) -> CheckoutSession:
        """Request a checkout token and redirect URL for one payment."""

        url = f"{self._base_url}/transactions"
        started = time.monotonic()
        try:
            with httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
                auth=self._auth,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            ) as client:
                response = client.post(url, json=request.to_payload())
        except httpx.RequestError as exc:
            prometheus_metrics.record_gateway_request("transport_error", time.monotonic() - started)
            logger.error(
                "Midtrans request failure for %s: %s", request.transaction_id, str(exc)
            )
            raise PaymentGatewayError("Failed to reach payment gateway") from exc

        elapsed = time.monotonic() - started
        if response.status_code not in _ACCEPTED_STATUS_CODES:
            prometheus_metrics.record_gateway_request("http_error", elapsed)
            logger.error(
                "Midtrans API error %s for %s: %s",
                response.status_code,
                request.transaction_id,
                response.text[:500],
            )
            raise PaymentGatewayError(
                f"Payment gateway responded with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except json.JSONDecodeError as exc:
            prometheus_metrics.record_gateway_request("malformed", elapsed)
            logger.error("Invalid JSON from Midtrans for %s", request.transaction_id)
            raise PaymentGatewayError("Received malformed JSON from payment gateway") from exc

        token = body.get("token") if isinstance(body, dict) else None
        redirect_url = body.get("redirect_url") if isinstance(body, dict) else None
        if not token or not redirect_url:
            prometheus_metrics.record_gateway_request("malformed", elapsed)
            raise PaymentGatewayError("Payment gateway response is missing token or redirect_url")

        prometheus_metrics.record_gateway_request("success", elapsed)
        return CheckoutSession(token=token, redirect_url=redirect_url)


class DummyPaymentGateway:
    """Local stand-in used when gateway credentials are not configured."""

    def __init__(self, url_base: str | None = None) -> None:
        self._url_base = (url_base or settings.dummy_payment_url_base).rstrip("/")

    def create_transaction(self, request: CheckoutRequest) -> CheckoutSession:
        logger.debug("Dummy checkout created", extra={"transaction_id": request.transaction_id})
        return CheckoutSession(
            token=f"DUMMY_TOKEN_{request.transaction_id}",
            redirect_url=f"{self._url_base}?transaction_id={request.transaction_id}",
        )


def get_payment_gateway() -> PaymentGateway:
    if not settings.gateway_configured:
        return DummyPaymentGateway()
    return MidtransSnapClient(
        server_key=settings.midtrans_server_key,
        base_url=settings.gateway_base_url,
        timeout=settings.gateway_timeout_seconds,
    )
