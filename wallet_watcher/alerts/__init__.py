"""
Alerts package — delivery of activity, balance-change and matched-payment notifications.
"""

from wallet_watcher.alerts.notifier import LoggingNotifier, Notifier, WebhookNotifier

__all__ = [
    "LoggingNotifier",
    "Notifier",
    "WebhookNotifier",
]
