"""Payment schemas and the gateway callback payload."""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.payment import Payment
from ._strict_base import StrictModel, StrictRequestModel


class PaymentCreate(StrictRequestModel):
    reservation_id: str = Field(..., min_length=1)


class PaymentResponse(StrictModel):
    """``status`` reports ``expired`` once a pending checkout outlived ``expired_at``."""

    id: str
    reservation_id: str
    amount: float
    status: str
    transaction_id: str
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _from_payment(cls, data: Any) -> Any:
        if isinstance(data, Payment):
            return {
                "id": data.id,
                "reservation_id": data.reservation_id,
                "amount": data.amount,
                "status": data.effective_status,
                "transaction_id": data.transaction_id,
                "payment_method": data.payment_method,
                "paid_at": data.paid_at,
                "expired_at": data.expired_at,
                "created_at": data.created_at,
            }
        return data


class PaymentInitResponse(StrictModel):
    payment: PaymentResponse
    redirect_url: Optional[str] = None
    token: Optional[str] = None


class PaymentCallbackRequest(BaseModel):
    """Gateway notification body. Gateways add fields over time, so extras are kept."""

    model_config = ConfigDict(extra="allow")

    order_id: str = Field(..., min_length=1)
    transaction_status: str
    transaction_id: Optional[str] = None
    status_code: Optional[Union[str, int]] = None
    gross_amount: Optional[Union[str, float]] = None


class PaymentCallbackResponse(StrictModel):
    outcome: str
    transaction_id: str
    payment_status: Optional[str] = None
    reservation_status: Optional[str] = None
