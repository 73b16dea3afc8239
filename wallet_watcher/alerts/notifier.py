"""
Notifier: delivery of reconciliation results to wallet owners.

The reconciliation loop only depends on the Notifier protocol. Two
implementations ship with the package:

- LoggingNotifier: every notification becomes a structured log event; the
  returned message id is synthetic so the follow-up note flow still works.
- WebhookNotifier: POSTs {"content": ...} to a chat webhook (Discord-style)
  and returns the message id when the endpoint echoes one.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from wallet_watcher.balances.formatting import expectation_matched_text
from wallet_watcher.expectations.models import ExpectationMatch, generate_id
from wallet_watcher.solana_listener.models import ActivitySummary
from wallet_watcher.utils.wallet_utils import short_address
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

DEFAULT_WEBHOOK_TIMEOUT_SEC = 10.0
MAX_CONTENT_LENGTH = 2000


class Notifier(Protocol):
    async def on_activity_detected(
        self, address: str, owner_id: str, activity: ActivitySummary, summary: str
    ) -> str | None: ...

    async def on_significant_balance_change(
        self, address: str, owner_id: str, comparison: str | None
    ) -> None: ...

    async def on_expectation_matched(self, match: ExpectationMatch, signature: str) -> None: ...

    async def on_reconciliation_error(self, address: str, owner_id: str, error: Exception) -> None: ...


class LoggingNotifier:
    """Notifier that writes every notification to the structured log."""

    async def on_activity_detected(
        self, address: str, owner_id: str, activity: ActivitySummary, summary: str
    ) -> str | None:
        message_id = f"log-{generate_id()}"
        logger.info(
            "notify_activity_detected",
            wallet_id=address,
            user_id=owner_id,
            signature=activity.signature,
            activity_type=activity.activity_type,
            native_change=activity.native_change,
            message_id=message_id,
            text=summary,
        )
        return message_id

    async def on_significant_balance_change(
        self, address: str, owner_id: str, comparison: str | None
    ) -> None:
        if comparison is None:
            return
        logger.info("notify_balance_change", wallet_id=address, user_id=owner_id, text=comparison)

    async def on_expectation_matched(self, match: ExpectationMatch, signature: str) -> None:
        payment = match.expectation
        logger.info(
            "notify_expectation_matched",
            wallet_id=payment.address,
            user_id=payment.user_id,
            expectation_id=payment.id,
            signature=signature,
            observed_amount=match.observed_amount,
            is_exact=match.is_exact,
            text=expectation_matched_text(match, signature),
        )

    async def on_reconciliation_error(self, address: str, owner_id: str, error: Exception) -> None:
        logger.warning(
            "notify_reconciliation_error",
            wallet_id=address,
            user_id=owner_id,
            error=str(error),
            error_type=type(error).__name__,
        )


def _truncate(content: str) -> str:
    if len(content) <= MAX_CONTENT_LENGTH:
        return content
    return content[: MAX_CONTENT_LENGTH - 3] + "..."


class WebhookNotifier:
    """
    Notifier that posts plain-text messages to a chat webhook.

    Owners are mentioned as <@owner_id>. Delivery failures are logged and not
    raised: a lost notification must not stop reconciliation of the wallet.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_sec: float = DEFAULT_WEBHOOK_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("webhook url must be non-empty")
        self._url = url
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec), transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, content: str) -> str | None:
        try:
            resp = await self._http.post(self._url, json={"content": _truncate(content)})
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("webhook_post_failed", error=str(e))
            return None
        try:
            data: Any = resp.json()
        except ValueError:
            return None
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])
        return None

    async def on_activity_detected(
        self, address: str, owner_id: str, activity: ActivitySummary, summary: str
    ) -> str | None:
        return await self._post(f"<@{owner_id}>\n{summary}")

    async def on_significant_balance_change(
        self, address: str, owner_id: str, comparison: str | None
    ) -> None:
        if comparison is None:
            return
        await self._post(f"<@{owner_id}>\n{comparison}")

    async def on_expectation_matched(self, match: ExpectationMatch, signature: str) -> None:
        owner_id = match.expectation.user_id
        await self._post(f"<@{owner_id}>\n{expectation_matched_text(match, signature)}")

    async def on_reconciliation_error(self, address: str, owner_id: str, error: Exception) -> None:
        await self._post(
            f"<@{owner_id}>\n⚠️ **Could not check wallet {short_address(address)}:** {error}"
        )
