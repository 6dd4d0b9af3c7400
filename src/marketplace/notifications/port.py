"""Notifier port — abstract interface for user notification delivery."""

from abc import ABC, abstractmethod


class NotifierPort(ABC):
    """Abstract interface for notifier adapters."""

    @abstractmethod
    def send(
        self,
        recipient_id: str,
        kind: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> dict:
        """Deliver a notification to a marketplace user.

        Returns:
            dict with keys: notification_id, status ("sent" or "failed"), error (optional)
        """
        ...
