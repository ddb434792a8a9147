"""
Registration fees and receipts.

The payment gateway itself lives outside the engine; it only has to answer
whether a charge went through.
"""
import uuid
from typing import Protocol

from .models import FeeTier, PaymentMethod, PaymentReceipt, Team

FEE_PER_PERSON = {
    FeeTier.EARLY: 110,
    FeeTier.REGULAR: 150,
}


class PaymentGateway(Protocol):
    def charge(self, team: Team, tier: FeeTier, method: PaymentMethod, amount: int) -> bool:
        ...


def fee_per_person(tier: FeeTier) -> int:
    return FEE_PER_PERSON[FeeTier(tier)]


def compute_amount(tier: FeeTier, members_count: int) -> int:
    return fee_per_person(tier) * members_count


def new_receipt_id() -> str:
    return f"HX2-{uuid.uuid4().hex[:8].upper()}"


def build_receipt(team: Team, tier: FeeTier, method: PaymentMethod, now_ms: int) -> PaymentReceipt:
    tier = FeeTier(tier)
    return PaymentReceipt(
        receipt_id=new_receipt_id(),
        tier=tier,
        method=PaymentMethod(method),
        amount=compute_amount(tier, len(team.members)),
        members_count=len(team.members),
        paid_at_ms=now_ms,
    )
