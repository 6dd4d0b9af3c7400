"""Tests for the notifier port — fake adapter and registry."""

import pytest

from marketplace.notifications import get_notifier, reset_notifier
from marketplace.notifications.fake_adapter import FakeNotifier


class TestFakeNotifier:
    def setup_method(self):
        self.adapter = FakeNotifier()

    def test_send_records_notification(self):
        result = self.adapter.send(recipient_id="farm-A", kind="new_order", title="New order", body="ORD25030001")
        assert result["status"] == "sent"
        assert result["notification_id"].startswith("notif-")
        assert self.adapter.sent[0]["recipient_id"] == "farm-A"
        assert self.adapter.sent[0]["data"] == {}

    def test_sent_to_filters_by_recipient(self):
        self.adapter.send(recipient_id="farm-A", kind="new_order", title="t", body="b")
        self.adapter.send(recipient_id="farm-B", kind="new_order", title="t", body="b")
        assert len(self.adapter.sent_to("farm-B")) == 1

    def test_send_failure(self):
        self.adapter.configure(should_succeed=False, failure_reason="Gateway down")
        result = self.adapter.send(recipient_id="farm-A", kind="new_order", title="t", body="b")
        assert result["status"] == "failed"
        assert result["error"] == "Gateway down"
        assert self.adapter.sent == []

    def test_reset(self):
        self.adapter.send(recipient_id="farm-A", kind="new_order", title="t", body="b")
        self.adapter.configure(should_succeed=False)
        self.adapter.reset()
        assert self.adapter.sent == []
        assert self.adapter.should_succeed is True


class TestNotifierRegistry:
    def test_default_is_fake(self, monkeypatch):
        monkeypatch.delenv("NOTIFIER_ADAPTER", raising=False)
        reset_notifier()
        assert isinstance(get_notifier(), FakeNotifier)

    def test_singleton(self):
        assert get_notifier() is get_notifier()

    def test_unknown_adapter(self, monkeypatch):
        monkeypatch.setenv("NOTIFIER_ADAPTER", "carrier-pigeon")
        reset_notifier()
        with pytest.raises(ValueError):
            get_notifier()
        monkeypatch.delenv("NOTIFIER_ADAPTER")
        reset_notifier()
