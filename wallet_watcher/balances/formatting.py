"""
Human-readable notification text for activity, balance comparisons and matches.

Markdown flavoured (bold via **), one fact per line, emoji prefixes.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from wallet_watcher.balances.differ import is_significant
from wallet_watcher.balances.models import AssetSnapshot, BalanceDelta, FungibleHolding
from wallet_watcher.expectations.models import ExpectationMatch
from wallet_watcher.solana_listener.models import ActivitySummary
from wallet_watcher.utils.wallet_utils import short_address

MAX_DISPLAY_PLACES = 6
MAX_LISTED_COLLECTIBLES = 5
SMALL_BALANCE = Decimal("0.001")


def _fixed(amount: Decimal, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return f"{amount.quantize(quantum, rounding=ROUND_DOWN):f}"


def format_balance(amount: Decimal, decimals: int = 9) -> str:
    """Display a holding: '0', '<0.001', else at most six decimal places."""
    if amount == 0:
        return "0"
    if amount < SMALL_BALANCE:
        return "<0.001"
    return _fixed(amount, min(decimals, MAX_DISPLAY_PLACES))


def format_change(amount: Decimal, decimals: int = 9) -> str:
    """Signed change with at most six decimal places."""
    if amount == 0:
        return "0"
    sign = "+" if amount > 0 else ""
    return f"{sign}{_fixed(amount, min(decimals, MAX_DISPLAY_PLACES))}"


def format_native_change(change: Decimal) -> str | None:
    if change == 0:
        return None
    return f"{format_change(change, MAX_DISPLAY_PLACES)} SOL"


def _token_label(mint: str, holding: FungibleHolding | None) -> str:
    if holding is not None and (holding.name or holding.symbol):
        return f"{holding.name or 'Unknown Token'} ({holding.symbol or 'UNK'})"
    return f"{short_address(mint)}"


def activity_summary_text(
    display_name: str,
    activity: ActivitySummary,
    snapshot: AssetSnapshot | None,
) -> str:
    lines = [
        f"**Transaction Summary for {display_name}**",
        "",
        f"🔗 **Signature:** `{activity.signature}`",
        f"⏰ **Time:** {activity.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        f"{'✅' if activity.success else '❌'} **Status:** {'Success' if activity.success else 'Failed'}",
        f"📊 **Type:** {activity.activity_type}",
        "",
    ]
    if activity.native_change != 0:
        lines.append(f"💰 **SOL Change:** {format_change(activity.native_change, 6)} SOL")
    if activity.fee > 0:
        lines.append(f"💸 **Fee:** {_fixed(activity.fee, 6)} SOL")
    if activity.fungible_changes:
        lines.append("")
        lines.append("**Token Changes:**")
        for mint, change in activity.fungible_changes.items():
            holding = snapshot.fungible.get(mint) if snapshot else None
            decimals = holding.decimals if holding else 9
            lines.append(f"🪙 **{_token_label(mint, holding)}:** {format_change(change, decimals)}")
    if snapshot is not None:
        lines.append("")
        lines.append("**Current Balances:**")
        lines.append(f"💰 **SOL:** {format_balance(snapshot.native_balance, 9)} SOL")
        for mint, holding in snapshot.fungible.items():
            lines.append(
                f"🪙 **{_token_label(mint, holding)}:** {format_balance(holding.amount, holding.decimals)}"
            )
        if snapshot.collectibles:
            lines.append(f"🖼️ **NFTs:** {snapshot.collectible_count} assets")
    return "\n".join(lines)


def _collectible_lines(title: str, items: list) -> list[str]:
    lines = ["", f"**{title}:**"]
    for item in items[:MAX_LISTED_COLLECTIBLES]:
        lines.append(f"🖼️ **{item.name}** ({item.id[:8]}...)")
    if len(items) > MAX_LISTED_COLLECTIBLES:
        lines.append(f"*...and {len(items) - MAX_LISTED_COLLECTIBLES} more NFTs*")
    return lines


def comparison_text(display_name: str, delta: BalanceDelta, current: AssetSnapshot) -> str | None:
    """
    Baseline text for a first observation, change text for a significant delta,
    None when nothing changed.
    """
    if delta.is_first_observation:
        lines = [
            f"📊 **Initial Balance Snapshot for {display_name}**",
            "",
            f"💰 **SOL:** {format_balance(current.native_balance, 9)} SOL",
        ]
        for mint, holding in current.fungible.items():
            lines.append(
                f"🪙 **{_token_label(mint, holding)}:** {format_balance(holding.amount, holding.decimals)}"
            )
        if current.collectibles:
            lines.append(f"🖼️ **NFTs:** {current.collectible_count} assets")
        lines.append("")
        lines.append(
            "*This is the first check for this wallet. "
            "Future changes will be compared to these balances.*"
        )
        return "\n".join(lines)

    if not is_significant(delta):
        return None

    lines = [f"📈 **Balance Changes Detected for {display_name}**", ""]
    native = format_native_change(delta.native_change)
    if native:
        lines.append(
            f"💰 **SOL Change:** {native} (Now: {format_balance(current.native_balance, 9)} SOL)"
        )
    if delta.fungible_changes:
        lines.append("")
        lines.append("**Token Balance Changes:**")
        for mint, change in delta.fungible_changes.items():
            label = _token_label(mint, current.fungible.get(mint))
            lines.append(
                f"🪙 **{label}:** {format_change(change.change, change.decimals)} "
                f"(Now: {format_balance(change.current_amount, change.decimals)})"
            )
    if delta.added:
        lines.extend(_collectible_lines("NFTs Added", delta.added))
    if delta.removed:
        lines.extend(_collectible_lines("NFTs Removed", delta.removed))

    lines.append("")
    lines.append("**Current Total:**")
    lines.append(f"💰 **SOL:** {format_balance(current.native_balance, 9)} SOL")
    if current.fungible:
        lines.append(f"🪙 **Tokens:** {len(current.fungible)} different tokens")
    if current.collectibles:
        lines.append(f"🖼️ **NFTs:** {current.collectible_count} assets")
    return "\n".join(lines)


def expectation_matched_text(found: ExpectationMatch, signature: str) -> str:
    payment = found.expectation
    unit = f" ({payment.asset_id[:8]}...)" if payment.asset_id else " SOL"
    lines = [
        "🎯 **Expected Payment Received!**",
        "",
        f"💰 **Amount:** {found.observed_amount}{unit}",
        f"📝 **Note:** {payment.note}",
        f"🔗 **Transaction:** `{signature}`",
        f"📊 **Status:** {'Exact Match' if found.is_exact else 'Within Tolerance'}",
    ]
    if not found.is_exact:
        lines.append(f"🎯 **Expected:** {payment.amount}{unit}")
        lines.append(f"📏 **Variance:** {found.variance}{unit}")
    return "\n".join(lines)
