"""
Balance differ: two point-in-time snapshots → typed BalanceDelta.

Pure functions, no I/O. The native change is always recomputed from the
absolute snapshot values (never accumulated across ticks), so repeated diffs
carry no drift.
"""

from __future__ import annotations

from decimal import Decimal

from wallet_watcher.balances.models import (
    DEFAULT_TOKEN_DECIMALS,
    AssetSnapshot,
    BalanceDelta,
    CollectibleItem,
    FungibleChange,
    FungibleHolding,
)


def _diff_fungible(
    previous: dict[str, FungibleHolding],
    current: dict[str, FungibleHolding],
) -> dict[str, FungibleChange]:
    changes: dict[str, FungibleChange] = {}
    # Union of mints, previous order first then new mints from current
    mints = list(previous) + [m for m in current if m not in previous]
    for mint in mints:
        prev = previous.get(mint)
        curr = current.get(mint)
        previous_amount = prev.amount if prev else Decimal(0)
        current_amount = curr.amount if curr else Decimal(0)
        change = current_amount - previous_amount
        if change == 0:
            continue
        if curr is not None:
            decimals = curr.decimals
        elif prev is not None:
            decimals = prev.decimals
        else:
            decimals = DEFAULT_TOKEN_DECIMALS
        changes[mint] = FungibleChange(
            change=change,
            previous_amount=previous_amount,
            current_amount=current_amount,
            decimals=decimals,
        )
    return changes


def _diff_collectibles(
    previous: list[CollectibleItem],
    current: list[CollectibleItem],
) -> tuple[list[CollectibleItem], list[CollectibleItem]]:
    previous_ids = {c.id for c in previous}
    current_ids = {c.id for c in current}
    added = [c for c in current if c.id not in previous_ids]
    removed = [c for c in previous if c.id not in current_ids]
    return added, removed


def diff(previous: AssetSnapshot | None, current: AssetSnapshot) -> BalanceDelta:
    """
    Compare the stored snapshot with the current one.

    No previous snapshot → first-observation delta carrying the current
    snapshot as baseline and no signed changes.
    """
    if previous is None:
        return BalanceDelta(is_first_observation=True, baseline=current)

    added, removed = _diff_collectibles(previous.collectibles, current.collectibles)
    return BalanceDelta(
        is_first_observation=False,
        native_change=current.native_balance - previous.native_balance,
        fungible_changes=_diff_fungible(previous.fungible, current.fungible),
        added=added,
        removed=removed,
        previous_captured_at=previous.captured_at,
    )


def is_significant(delta: BalanceDelta) -> bool:
    """True when the delta reports any change worth notifying; never for a baseline."""
    if delta.is_first_observation:
        return False
    return (
        delta.native_change != 0
        or bool(delta.fungible_changes)
        or bool(delta.added)
        or bool(delta.removed)
    )
