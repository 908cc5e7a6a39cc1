"""Paystack payment gateway adapter.

Documentation: https://paystack.com/docs/api/transaction/
"""

import hmac
import logging

import httpx

from daiyet.config import settings
from daiyet.core.security import hmac_sha512_hex
from daiyet.gateways.base import GatewayType, PaymentGateway, PaymentResult

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def verify_paystack_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """True when ``signature`` is the hex HMAC-SHA512 of ``body`` under ``secret``."""
    if not signature:
        return False
    expected = hmac_sha512_hex(secret, body)
    return hmac.compare_digest(expected, signature)


class PaystackGateway(PaymentGateway):
    """Paystack payment gateway implementation."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.secret_key = secret_key if secret_key is not None else settings.paystack_secret_key
        self.base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self._http_client = http_client

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def initialize_transaction(
        self,
        email: str,
        amount: int,
        currency: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> PaymentResult:
        """Initialize a Paystack checkout."""
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Paystack secret key not configured")

        payload = {
            "email": email,
            "amount": amount,
            "currency": currency,
            "callback_url": callback_url,
            "metadata": metadata or {},
        }

        try:
            response = await self.http_client.post(
                f"{self.base_url}/transaction/initialize",
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"Paystack initialize request failed: {e}")
            return PaymentResult(success=False, error_message=str(e))

        body = response.json() if response.content else {}
        if response.status_code != 200 or not body.get("status"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.error(f"Paystack initialize rejected: {message}")
            return PaymentResult(success=False, error_message=message, raw_response=body)

        data = body.get("data") or {}
        return PaymentResult(
            success=True,
            reference=data.get("reference"),
            authorization_url=data.get("authorization_url"),
            raw_response=body,
        )

    async def verify_transaction(self, reference: str) -> PaymentResult:
        """Fetch a transaction's status from Paystack."""
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Paystack secret key not configured")

        try:
            response = await self.http_client.get(
                f"{self.base_url}/transaction/verify/{reference}",
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"Paystack verify request failed for {reference}: {e}")
            return PaymentResult(success=False, reference=reference, error_message=str(e))

        body = response.json() if response.content else {}
        data = body.get("data") or {}
        gateway_status = data.get("status")
        return PaymentResult(
            success=response.status_code == 200 and gateway_status == "success",
            reference=reference,
            status=gateway_status,
            error_message=None if gateway_status == "success" else body.get("message"),
            raw_response=body,
        )

    def verify_webhook(self, payload: bytes, signature: str | None) -> bool:
        if not self.secret_key:
            return False
        return verify_paystack_signature(payload, signature, self.secret_key)
