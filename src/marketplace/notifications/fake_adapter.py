"""Fake notifier — records notifications in memory for tests and development."""

from uuid import uuid4

from marketplace.notifications.port import NotifierPort


class FakeNotifier(NotifierPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake notifier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(
        self,
        recipient_id: str,
        kind: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> dict:
        if not self.should_succeed:
            return {
                "notification_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        notification_id = f"notif-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "notification_id": notification_id,
                "recipient_id": recipient_id,
                "kind": kind,
                "title": title,
                "body": body,
                "data": data or {},
            }
        )
        return {"notification_id": notification_id, "status": "sent"}

    def sent_to(self, recipient_id: str) -> list[dict]:
        return [n for n in self.sent if n["recipient_id"] == recipient_id]

    def reset(self):
        """Clear sent notifications (useful between tests)."""
        self.sent.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
