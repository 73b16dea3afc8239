"""
Expected-payment matcher: observed incoming amount → at most one pending expectation.

Rules, in order:
1. Scope to pending expectations for (address, asset_id); asset_id None is native SOL.
2. First expectation (insertion order) whose amount equals the observed amount.
3. Otherwise the first with tolerance > 0 and |amount - observed| <= tolerance.
4. Otherwise no match.

First-match, not best-match: an earlier tolerance candidate wins over a later
one with smaller variance. Pure query; status changes are the caller's job.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from wallet_watcher.expectations.models import ExpectationMatch, ExpectedPayment, PaymentStatus


def _in_scope(payment: ExpectedPayment, address: str, asset_id: str | None) -> bool:
    return (
        payment.status is PaymentStatus.PENDING
        and payment.address == address
        and payment.asset_id == asset_id
    )


def match(
    expectations: Iterable[ExpectedPayment],
    address: str,
    observed_amount: Decimal,
    asset_id: str | None = None,
) -> ExpectationMatch | None:
    candidates = [p for p in expectations if _in_scope(p, address, asset_id)]

    for payment in candidates:
        if payment.amount == observed_amount:
            return ExpectationMatch(
                expectation=payment,
                observed_amount=observed_amount,
                variance=Decimal(0),
                is_exact=True,
            )

    for payment in candidates:
        if payment.tolerance <= 0:
            continue
        variance = abs(payment.amount - observed_amount)
        if variance <= payment.tolerance:
            return ExpectationMatch(
                expectation=payment,
                observed_amount=observed_amount,
                variance=variance,
                is_exact=False,
            )

    return None
