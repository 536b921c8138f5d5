from __future__ import annotations
import pytest
import stripe
from sqlalchemy import select

from fitpool.config import settings
from fitpool.models.ledger import Ledger
from fitpool.services import catalog, registrations
from fitpool.services.errors import TransferFailed
from fitpool.services.payouts import (
    StripePayoutGateway, WalletPayoutGateway, TransferError, get_payout_gateway, payout_key,
)
from fitpool.services.settlement import settle_challenge


class FakeTransfers:
    """Stands in for stripe.Transfer.create; declines destinations listed in `decline`."""

    def __init__(self):
        self.calls: list[dict] = []
        self.decline: set[str] = set()

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if kwargs["destination"] in self.decline:
            raise stripe.CardError("Your card was declined.", param=None, code="card_declined")
        return {"id": f"tr_{len(self.calls)}"}


@pytest.fixture
def transfers(monkeypatch):
    fake = FakeTransfers()
    monkeypatch.setattr(stripe.Transfer, "create", fake)
    return fake


@pytest.mark.asyncio
async def test_stripe_transfer_passes_destination_and_key(session, transfers):
    gw = StripePayoutGateway("sk_test_123", currency="eur")
    ref = await gw.transfer(session, address="acct_9", amount=250, idempotency_key="payout_segment_0_9")

    assert ref == "tr_1"
    (call,) = transfers.calls
    assert call["destination"] == "acct_9"
    assert call["amount"] == 250
    assert call["currency"] == "eur"
    assert call["idempotency_key"] == "payout_segment_0_9"
    assert call["api_key"] == "sk_test_123"


@pytest.mark.asyncio
async def test_stripe_error_becomes_transfer_error(session, transfers):
    transfers.decline = {"acct_bad"}
    gw = StripePayoutGateway("sk_test_123")
    with pytest.raises(TransferError):
        await gw.transfer(session, address="acct_bad", amount=10, idempotency_key="k")


@pytest.mark.asyncio
async def test_declined_stripe_payout_keeps_earlier_payouts(session, transfers):
    ch = await catalog.issue_segment_challenge(
        session, entry_fee=50, expire_time=100, time_to_beat=60, segment_id=1, activity="run", issuer="sponsor",
    )
    for aid in (1, 2, 3):
        await registrations.register_athlete(
            session, "segment", ch.challenge_id, athlete_id=aid, payout_address=f"acct_{aid}", paid_amount=50, now=0,
        )
        await registrations.mark_succeeded(session, "segment", ch.challenge_id, aid)
    await session.commit()
    transfers.decline = {"acct_2"}

    gw = StripePayoutGateway("sk_test_123")
    with pytest.raises(TransferFailed) as exc:
        await settle_challenge(session, "segment", ch.challenge_id, now=100, gateway=gw)
    await session.commit()

    assert exc.value.athlete_id == 2
    assert exc.value.paid == [1]
    assert [c["idempotency_key"] for c in transfers.calls] == [
        payout_key("segment", 0, 1), payout_key("segment", 0, 2),
    ]
    payouts = (await session.execute(
        select(Ledger.athlete_id, Ledger.amount).where(Ledger.type == "PAYOUT")
    )).all()
    assert [tuple(p) for p in payouts] == [(1, 50)]

    transfers.decline.clear()
    res = await settle_challenge(session, "segment", ch.challenge_id, now=101, gateway=gw)
    await session.commit()
    assert res["paid"] == [2, 3]
    assert [c["destination"] for c in transfers.calls] == ["acct_1", "acct_2", "acct_2", "acct_3"]


def test_gateway_selection(monkeypatch):
    monkeypatch.setattr(settings, "payout_mode", "wallet")
    assert isinstance(get_payout_gateway(), WalletPayoutGateway)

    monkeypatch.setattr(settings, "payout_mode", "stripe")
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_live_abc")
    monkeypatch.setattr(settings, "payout_currency", "gbp")
    gw = get_payout_gateway()
    assert isinstance(gw, StripePayoutGateway)
    assert (gw.api_key, gw.currency) == ("sk_live_abc", "gbp")

    monkeypatch.setattr(settings, "stripe_secret_key", "")
    with pytest.raises(RuntimeError):
        get_payout_gateway()
