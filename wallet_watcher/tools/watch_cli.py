#!/usr/bin/env python3
"""
Wallet Watcher CLI — run the command surface against the JSON stores.

Reads DATA_DIR (and the rest of the settings) from the environment / .env, so
it operates on the same files the watcher process uses. Only one process may
own the store files at a time; stop the watcher before mutating commands.

Usage:
  py -m wallet_watcher.tools.watch_cli --user 1234 add-wallet <address>
  py -m wallet_watcher.tools.watch_cli --user 1234 expect-payment <address> 1.5 "Invoice 42" --tolerance 0.05
  py -m wallet_watcher.tools.watch_cli --user 1234 list-payment-notes --search invoice
  py -m wallet_watcher.tools.watch_cli run-once
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from wallet_watcher.agent_worker.runtime import WatcherComponents, build_components
from wallet_watcher.balances.formatting import format_balance
from wallet_watcher.commands.service import CommandService, ExpectedPaymentsByStatus
from wallet_watcher.config import get_settings
from wallet_watcher.core.exceptions import WatcherError
from wallet_watcher.expectations.models import (
    EXPECTED_NOTE_PREFIX,
    ExpectedPayment,
    PaymentNote,
    PaymentStatus,
)
from wallet_watcher.utils.wallet_utils import short_address
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

SEP = "=" * 52
MAX_LISTED_PENDING = 10
MAX_LISTED_SETTLED = 5


def _asset_label(payment: ExpectedPayment) -> str:
    return f" ({payment.asset_id[:8]}...)" if payment.asset_id else " SOL"


def _print_expected(grouped: ExpectedPaymentsByStatus) -> None:
    if grouped.total == 0:
        print("📭 You have no expected payments! Use expect-payment to add one.")
        return
    print("💰 Your Expected Payments\n")
    sections = (
        ("🟡 Pending", grouped.pending, MAX_LISTED_PENDING),
        ("✅ Received", grouped.received, MAX_LISTED_SETTLED),
        ("⏰ Expired", grouped.expired, MAX_LISTED_SETTLED),
    )
    for title, payments, cap in sections:
        if not payments:
            continue
        print(f"{title} ({len(payments)}):")
        for p in payments[:cap]:
            due = ""
            if p.due_at and p.status is PaymentStatus.PENDING:
                due = f" | Due: {p.due_at.date().isoformat()}"
            print(f"  • {p.id} - {p.amount}{_asset_label(p)} - {p.note}{due}")
        print()


def _note_line(note: PaymentNote) -> str:
    expected_flag = " 🎯" if note.is_expected_payment else ""
    reply_flag = "" if note.note.startswith(EXPECTED_NOTE_PREFIX) else " 💬"
    wallet = short_address(note.address, 4, 4) if note.address else "Unknown"
    return (
        f"{short_address(note.signature)}{expected_flag}{reply_flag}\n"
        f"  📅 {note.created_at.strftime('%Y-%m-%d %H:%M')} | 👛 {wallet}\n"
        f'  📝 "{note.note}"'
    )


async def _tick_once(components: WatcherComponents) -> None:
    # the ledger client must be closed on the loop that used it
    try:
        await components.loop.tick()
    finally:
        await components.aclose()


def _run_command(args: argparse.Namespace, components: WatcherComponents) -> int:
    commands = CommandService(
        components.wallet_store,
        components.snapshot_store,
        components.expectation_store,
        components.tracker,
    )
    user = args.user
    cmd = args.command

    if cmd == "add-wallet":
        commands.add_wallet(user, args.address)
        print(f"✅ Successfully added wallet {short_address(args.address)} to your monitoring list!")
    elif cmd == "remove-wallet":
        commands.remove_wallet(user, args.address)
        print(f"✅ Successfully removed wallet {short_address(args.address)} from your monitoring list!")
    elif cmd == "list-wallets":
        wallets = commands.list_wallets(user)
        if not wallets:
            print("📭 You are not monitoring any wallets yet! Use add-wallet to add one.")
        for i, address in enumerate(wallets, 1):
            print(f"{i}. {address}")
    elif cmd == "wallet-stats":
        stats = commands.wallet_stats(user)
        print(SEP)
        print(f"Total wallets : {stats.wallet_count}")
        print(f"User id       : {stats.user_id}")
        for i, info in enumerate(stats.wallets, 1):
            snapshot = components.snapshot_store.get(info.address)
            balance = f"{format_balance(snapshot.native_balance)} SOL" if snapshot else "not checked yet"
            print(f"{i}. {info.short_address} | {balance}")
        print(SEP)
    elif cmd == "expect-payment":
        payment = commands.expect_payment(
            user,
            args.address,
            args.amount,
            args.note,
            asset_id=args.token,
            tolerance=args.tolerance,
            due_date=args.due_date,
        )
        print(f"✅ Expected payment added! ID: {payment.id}")
        print(f"   Amount: {payment.amount}{_asset_label(payment)}")
        if payment.tolerance > 0:
            print(f"   Tolerance: ±{payment.tolerance}")
        if payment.due_at:
            print(f"   Due: {payment.due_at.date().isoformat()}")
    elif cmd == "list-expected-payments":
        _print_expected(commands.list_expected_payments(user))
    elif cmd == "remove-expected-payment":
        commands.remove_expected_payment(user, args.payment_id)
        print(f"✅ Expected payment {args.payment_id} has been removed.")
    elif cmd == "add-payment-note":
        commands.add_payment_note(user, args.signature, args.note)
        print(f"✅ Payment note added to {short_address(args.signature)}")
    elif cmd == "follow-up-note":
        note = commands.add_follow_up_note(user, args.note)
        print(f"✅ Note added to transaction {short_address(note.signature)}")
    elif cmd == "list-payment-notes":
        listing = commands.list_payment_notes(
            user, search=args.search, wallet=args.wallet, limit=args.limit
        )
        if listing.total == 0:
            print("📭 No payment notes found.")
            return 0
        print(f"📝 Showing {len(listing.notes)} of {listing.total} notes\n")
        for note in listing.notes:
            print(_note_line(note))
            print()
    elif cmd == "get-transaction-note":
        note = commands.get_transaction_note(user, args.signature)
        print(_note_line(note))
        if note.expected_payment_id:
            print(f"  🎯 Expected Payment ID: {note.expected_payment_id}")
    elif cmd == "run-once":
        asyncio.run(_tick_once(components))
        stats = components.loop.stats
        print(f"Tick done: {stats.items_processed} items, {stats.matches} matches, {stats.wallet_errors} wallet errors")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wallet Watcher command line.")
    parser.add_argument("--user", default="cli", help="Owner / user id the command runs as.")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("add-wallet", "remove-wallet"):
        p = sub.add_parser(name)
        p.add_argument("address")
    sub.add_parser("list-wallets")
    sub.add_parser("wallet-stats")

    p = sub.add_parser("expect-payment", help="Declare a payment you expect to receive.")
    p.add_argument("address")
    p.add_argument("amount")
    p.add_argument("note")
    p.add_argument("--token", default=None, help="Token mint; omit for SOL.")
    p.add_argument("--tolerance", default=None, help="Allowed +/- variance.")
    p.add_argument("--due-date", default=None, help="YYYY-MM-DD")
    sub.add_parser("list-expected-payments")
    p = sub.add_parser("remove-expected-payment")
    p.add_argument("payment_id")

    p = sub.add_parser("add-payment-note")
    p.add_argument("signature")
    p.add_argument("note")
    p = sub.add_parser("follow-up-note", help="Note on your most recent transaction alert (30 min).")
    p.add_argument("note")
    p = sub.add_parser("list-payment-notes")
    p.add_argument("--search", default=None)
    p.add_argument("--wallet", default=None)
    p.add_argument("--limit", type=int, default=10)
    p = sub.add_parser("get-transaction-note")
    p.add_argument("signature")

    sub.add_parser("run-once", help="Run a single reconciliation tick and exit.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        components = build_components(get_settings())
    except WatcherError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    try:
        return _run_command(args, components)
    except WatcherError as e:
        logger.info("cli_command_rejected", command=args.command, error=str(e))
        print(f"❌ {e}", file=sys.stderr)
        return 1
    finally:
        asyncio.run(components.aclose())


if __name__ == "__main__":
    sys.exit(main())
