from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Protocol

import stripe
from starlette.concurrency import run_in_threadpool

from property_api.core.errors import ValidationError
from property_api.core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)

# Gateway status vocabulary
SUCCEEDED = "succeeded"
PROCESSING = "processing"
REQUIRES_ACTION = "requires_action"
REQUIRES_CONFIRMATION = "requires_confirmation"

_CENTS = Decimal("0.01")


class GatewayError(Exception):
    """The gateway answered with an error; the attempt definitely did not succeed."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class GatewayTimeout(GatewayError):
    """No usable answer was received; the attempt may or may not have succeeded."""


class GatewayDeclined(GatewayError):
    """The payment method was declined; a definitive outcome for the charge."""


@dataclass
class GatewayResult:
    """Normalized outcome of a charge, retrieve or confirm call."""

    status: str
    payment_intent_id: Optional[str] = None
    charge_id: Optional[str] = None
    receipt_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    @property
    def requires_action(self) -> bool:
        return self.status in (REQUIRES_ACTION, REQUIRES_CONFIRMATION)


@dataclass
class RefundResult:
    refund_id: str
    status: str


class PaymentGateway(Protocol):
    """Charge/refund interface the ledger talks to. Amounts are integer minor units."""

    async def charge(
        self,
        amount_minor: int,
        currency: str,
        payment_method_token: str,
        metadata: Dict[str, str],
        *,
        idempotency_key: Optional[str] = None,
        description: Optional[str] = None,
    ) -> GatewayResult: ...

    async def retrieve_intent(self, payment_intent_id: str) -> GatewayResult: ...

    async def confirm_intent(self, payment_intent_id: str) -> GatewayResult: ...

    async def refund(
        self,
        charge_id: str,
        amount_minor: int,
        reason: Optional[str] = None,
        *,
        idempotency_key: Optional[str] = None,
    ) -> RefundResult: ...


# PUBLIC_INTERFACE
def to_minor_units(amount: Decimal) -> int:
    """
    Convert a decimal amount in major units to integer minor units (cents).

    Raises:
        ValidationError: the amount is not a finite number or has more than two
            fractional digits.
    """
    try:
        value = Decimal(amount)
        quantized = value.quantize(_CENTS)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("Amount is not a valid decimal", field="amount") from exc
    if quantized != value:
        raise ValidationError("Amount must have at most two decimal places", field="amount")
    return int(quantized * 100)


# PUBLIC_INTERFACE
def from_minor_units(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / 100).quantize(_CENTS)


def _charge_details(charge: Any) -> tuple[Optional[str], Optional[str]]:
    """latest_charge is an id string unless expanded into a Charge object."""
    if charge is None:
        return None, None
    if isinstance(charge, str):
        return charge, None
    return getattr(charge, "id", None), getattr(charge, "receipt_url", None)


# PUBLIC_INTERFACE
def configure_stripe(settings: Optional[AppSettings] = None) -> None:
    """Apply process-wide stripe SDK options. Called once at startup."""
    settings = settings or get_app_settings()
    stripe.max_network_retries = settings.GATEWAY_MAX_NETWORK_RETRIES


class StripePaymentGateway:
    """
    PaymentGateway backed by Stripe PaymentIntents.

    The stripe SDK is synchronous, so every call runs in the threadpool and is
    bounded by ``GATEWAY_TIMEOUT_SECONDS``. Connection failures and timeouts raise
    GatewayTimeout because the provider may have processed the request anyway.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        settings = settings or get_app_settings()
        self.api_key = settings.STRIPE_SECRET_KEY
        self.timeout = settings.GATEWAY_TIMEOUT_SECONDS

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if not self.api_key:
            raise GatewayError("Payment gateway is not configured", code="not_configured")
        kwargs["api_key"] = self.api_key
        try:
            return await asyncio.wait_for(run_in_threadpool(fn, *args, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Stripe call %s timed out after %ss", getattr(fn, "__name__", fn), self.timeout)
            raise GatewayTimeout("Payment gateway timed out") from exc
        except stripe.APIConnectionError as exc:
            logger.warning("Stripe connection error: %s", exc.user_message or exc)
            raise GatewayTimeout(str(exc.user_message or exc)) from exc
        except stripe.CardError as exc:
            logger.info("Stripe declined the payment method: %s", exc.user_message or exc)
            raise GatewayDeclined(str(exc.user_message or exc), code=exc.code) from exc
        except stripe.StripeError as exc:
            logger.warning("Stripe error: %s", exc.user_message or exc)
            raise GatewayError(str(exc.user_message or exc), code=exc.code) from exc

    @staticmethod
    def _result(intent: Any) -> GatewayResult:
        charge_id, receipt_url = _charge_details(getattr(intent, "latest_charge", None))
        return GatewayResult(
            status=getattr(intent, "status", None) or "unknown",
            payment_intent_id=getattr(intent, "id", None),
            charge_id=charge_id,
            receipt_url=receipt_url,
        )

    async def charge(
        self,
        amount_minor: int,
        currency: str,
        payment_method_token: str,
        metadata: Dict[str, str],
        *,
        idempotency_key: Optional[str] = None,
        description: Optional[str] = None,
    ) -> GatewayResult:
        params: Dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "payment_method": payment_method_token,
            "confirmation_method": "manual",
            "confirm": True,
            "metadata": metadata,
            "expand": ["latest_charge"],
        }
        if description:
            params["description"] = description
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        intent = await self._call(stripe.PaymentIntent.create, **params)
        return self._result(intent)

    async def retrieve_intent(self, payment_intent_id: str) -> GatewayResult:
        intent = await self._call(stripe.PaymentIntent.retrieve, payment_intent_id, expand=["latest_charge"])
        return self._result(intent)

    async def confirm_intent(self, payment_intent_id: str) -> GatewayResult:
        intent = await self._call(stripe.PaymentIntent.confirm, payment_intent_id, expand=["latest_charge"])
        return self._result(intent)

    async def refund(
        self,
        charge_id: str,
        amount_minor: int,
        reason: Optional[str] = None,
        *,
        idempotency_key: Optional[str] = None,
    ) -> RefundResult:
        params: Dict[str, Any] = {
            "charge": charge_id,
            "amount": amount_minor,
            "reason": "requested_by_customer",
        }
        if reason:
            params["metadata"] = {"reason": reason}
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        refund = await self._call(stripe.Refund.create, **params)
        return RefundResult(refund_id=refund.id, status=getattr(refund, "status", None) or "unknown")
