"""API tests for /api/v1/notifications."""
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from foodtracker.models.notification_log import NotificationLogEntry
from foodtracker.models.recipient import Recipient
from foodtracker.services.item_store import ItemStore
from foodtracker.utils.dates import local_today
from conftest import RECIPIENT_ID, make_item

BASE = "/api/v1/notifications"


class TestRegister:
    def test_register_creates_recipient(self, client, db_session):
        resp = client.post(BASE + "/register", json={"push_token": "ExponentPushToken[new]"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Push token registered"}
        assert db_session.get(Recipient, RECIPIENT_ID).push_token == "ExponentPushToken[new]"

    def test_register_replaces_token(self, client, db_session):
        client.post(BASE + "/register", json={"push_token": "old"})
        client.post(BASE + "/register", json={"push_token": "new"})
        assert db_session.query(Recipient).count() == 1
        assert db_session.get(Recipient, RECIPIENT_ID).push_token == "new"

    def test_register_requires_token(self, client):
        resp = client.post(BASE + "/register", json={"push_token": ""})
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"


class TestTrigger:
    def test_trigger_runs_a_pass(self, client, db_session, dispatcher):
        today = local_today()
        make_item(db_session, "Milk", today + timedelta(days=1))
        make_item(db_session, "Cheese", today + timedelta(days=2))

        resp = client.post(BASE + "/trigger")

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["summary"]["run_date"] == today.isoformat()
        assert body["summary"]["sent"] == 1
        assert body["summary"]["skipped"] == 1
        assert body["summary"]["failures"] == []
        assert [c["title"] for c in dispatcher.sent] == ["Food Expiring Tomorrow"]

    def test_trigger_twice_is_idempotent(self, client, db_session, dispatcher):
        make_item(db_session, "Milk", local_today())

        first = client.post(BASE + "/trigger").json()["summary"]
        second = client.post(BASE + "/trigger").json()["summary"]

        assert (first["sent"], second["sent"]) == (1, 0)
        assert len(dispatcher.sent) == 1
        assert db_session.query(NotificationLogEntry).count() == 1

    def test_trigger_reports_item_failures(self, client, db_session, dispatcher):
        item = make_item(db_session, "Milk", local_today())
        dispatcher.fail_for.add("Milk")

        body = client.post(BASE + "/trigger").json()

        assert body["success"] is True
        assert body["summary"]["failed"] == 1
        assert body["summary"]["failures"] == [{"item_id": str(item.id), "reason": "gateway returned HTTP 503"}]
        assert db_session.query(NotificationLogEntry).count() == 0

    def test_store_outage_is_a_503(self, client, monkeypatch):
        def broken(self, today, window_days, recipient_id=None):
            raise OperationalError("SELECT", {}, Exception("database is down"))

        monkeypatch.setattr(ItemStore, "find_eligible_items", broken)

        resp = client.post(BASE + "/trigger")

        assert resp.status_code == 503
        assert resp.json()["code"] == "NOTIFICATION_RUN_FAILED"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
