from __future__ import annotations
import asyncio
from abc import ABC, abstractmethod
import stripe
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.config import settings
from fitpool.services.wallet import credit_tokens

log = structlog.get_logger()


class TransferError(Exception):
    """A single payout attempt was rejected by the payment backend."""


def payout_key(kind: str, challenge_id: int, athlete_id: int) -> str:
    return f"payout_{kind}_{challenge_id}_{athlete_id}"


class PayoutGateway(ABC):
    """Moves a reward from escrow to an athlete's payout address."""

    name = "abstract"

    @abstractmethod
    async def transfer(self, session: AsyncSession, *, address: str, amount: int, idempotency_key: str) -> str:
        """Pay `amount` to `address`; return a backend reference or raise TransferError."""


class WalletPayoutGateway(PayoutGateway):
    """Credits the internal wallet of the payout address."""

    name = "wallet"

    async def transfer(self, session: AsyncSession, *, address: str, amount: int, idempotency_key: str) -> str:
        entry = await credit_tokens(
            session,
            address=address,
            tokens=amount,
            external_id=idempotency_key,
            note="challenge_payout",
        )
        return f"wallet:{entry.id}"


class StripePayoutGateway(PayoutGateway):
    """Stripe Connect transfer; the payout address is the connected account id (acct_...)."""

    name = "stripe"

    def __init__(self, api_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def _create_transfer(self, address: str, amount: int, idempotency_key: str):
        return stripe.Transfer.create(
            amount=int(amount),
            currency=self.currency,
            destination=address,
            metadata={"payout_key": idempotency_key},
            idempotency_key=idempotency_key,
            api_key=self.api_key,
        )

    async def transfer(self, session: AsyncSession, *, address: str, amount: int, idempotency_key: str) -> str:
        try:
            tr = await asyncio.to_thread(self._create_transfer, address, amount, idempotency_key)
        except stripe.StripeError as e:
            log.warning("stripe_transfer_failed", address=address, amount=amount, error=str(e))
            raise TransferError(str(e)) from e
        return tr["id"]


def get_payout_gateway() -> PayoutGateway:
    if settings.payout_mode == "stripe":
        if not settings.stripe_secret_key:
            raise RuntimeError("PAYOUT_MODE=stripe requires STRIPE_SECRET_KEY")
        return StripePayoutGateway(settings.stripe_secret_key, settings.payout_currency)
    return WalletPayoutGateway()
