"""Base payment gateway interface.

Adapters only talk to the gateway. Ledger and booking updates live in
the finalization service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    PAYSTACK = "paystack"


@dataclass
class PaymentResult:
    """Result of a payment operation."""

    success: bool
    reference: str | None = None
    authorization_url: str | None = None
    status: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""

    @abstractmethod
    async def initialize_transaction(
        self,
        email: str,
        amount: int,
        currency: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> PaymentResult:
        """Start a hosted checkout.

        Args:
            email: Payer email
            amount: Amount in smallest currency unit (kobo)
            currency: Currency code (NGN)
            callback_url: Where the payer lands after checkout
            metadata: Extra data echoed back by the gateway

        Returns:
            PaymentResult carrying the authorization URL and reference
        """

    @abstractmethod
    async def verify_transaction(self, reference: str) -> PaymentResult:
        """Ask the gateway for the current status of a transaction."""

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str | None) -> bool:
        """Check a webhook signature against the raw request body."""
