"""
Tests for the expected-payment matcher: exact first, then tolerance band,
scoping by address/asset/status and first-match ordering.
"""

from __future__ import annotations

from decimal import Decimal

from conftest import USDC_MINT, VALID_WALLET, VALID_WALLET_2
from wallet_watcher.expectations import ExpectedPayment, PaymentStatus, match


def _payment(
    pid: str,
    amount: str,
    *,
    tolerance: str = "0",
    address: str = VALID_WALLET,
    asset_id: str | None = None,
    status: PaymentStatus = PaymentStatus.PENDING,
) -> ExpectedPayment:
    return ExpectedPayment(
        id=pid,
        user_id="u1",
        address=address,
        amount=Decimal(amount),
        note=f"note {pid}",
        asset_id=asset_id,
        tolerance=Decimal(tolerance),
        status=status,
    )


def test_tolerance_match_reports_variance():
    """Expected 1.0 ± 0.05, observed 1.03 → match, variance 0.03, not exact."""
    found = match([_payment("p1", "1.0", tolerance="0.05")], VALID_WALLET, Decimal("1.03"))
    assert found is not None
    assert found.expectation.id == "p1"
    assert found.variance == Decimal("0.03")
    assert found.is_exact is False
    assert found.is_within_tolerance is True


def test_exact_match_beats_earlier_tolerance_candidate():
    """An exact match anywhere wins over an earlier tolerance match."""
    payments = [_payment("p1", "1.01", tolerance="0.05"), _payment("p2", "1.0")]
    found = match(payments, VALID_WALLET, Decimal("1"))
    assert found.expectation.id == "p2"
    assert found.is_exact is True
    assert found.variance == 0


def test_first_tolerance_match_wins_not_best():
    """Among tolerance candidates the earliest wins even with larger variance."""
    payments = [_payment("p1", "1.04", tolerance="0.05"), _payment("p2", "1.01", tolerance="0.05")]
    found = match(payments, VALID_WALLET, Decimal("1.0"))
    assert found.expectation.id == "p1"
    assert found.variance == Decimal("0.04")


def test_zero_tolerance_requires_exact_amount():
    """Without tolerance a near amount does not match."""
    assert match([_payment("p1", "1.0")], VALID_WALLET, Decimal("1.000001")) is None


def test_outside_tolerance_no_match():
    """Variance above tolerance is no match."""
    assert match([_payment("p1", "1.0", tolerance="0.05")], VALID_WALLET, Decimal("1.06")) is None


def test_scoped_by_address_asset_and_status():
    """Other wallets, other assets and non-pending expectations are ignored."""
    payments = [
        _payment("other-wallet", "1", address=VALID_WALLET_2),
        _payment("token", "1", asset_id=USDC_MINT),
        _payment("received", "1", status=PaymentStatus.RECEIVED),
        _payment("expired", "1", status=PaymentStatus.EXPIRED),
    ]
    assert match(payments, VALID_WALLET, Decimal("1")) is None
    found = match(payments, VALID_WALLET, Decimal("1"), USDC_MINT)
    assert found.expectation.id == "token"


def test_match_does_not_mutate():
    """Matching is a pure query; status stays pending."""
    payment = _payment("p1", "2")
    match([payment], VALID_WALLET, Decimal("2"))
    assert payment.status is PaymentStatus.PENDING
