import json

import httpx
import pytest
from celery.schedules import crontab

from foodtracker.models.notification_log import NotificationLogEntry
from foodtracker.services.push import PushDispatcher
from foodtracker.tasks.expiration_check import celery_app, parse_cron, run_expiration_check
from foodtracker.utils.dates import local_today
from conftest import TestingSessionLocal, make_item


class TestParseCron:
    def test_default_daily_schedule(self):
        schedule = parse_cron("0 9 * * *")
        assert isinstance(schedule, crontab)
        assert schedule.minute == {0}
        assert schedule.hour == {9}

    def test_all_five_fields(self):
        schedule = parse_cron("30 7 1 6 1")
        assert schedule.minute == {30}
        assert schedule.hour == {7}
        assert schedule.day_of_month == {1}
        assert schedule.month_of_year == {6}
        assert schedule.day_of_week == {1}

    @pytest.mark.parametrize("expr", ["", "0 9 * *", "0 9 * * * *"])
    def test_wrong_field_count(self, expr):
        with pytest.raises(ValueError):
            parse_cron(expr)


def test_beat_schedule_registered():
    entry = celery_app.conf.beat_schedule["daily-expiration-check"]
    assert entry["task"] == "expiration_check.daily"
    assert entry["schedule"].hour == {9}
    assert celery_app.conf.timezone == "UTC"
    assert "expiration_check.daily" in celery_app.tasks
    assert "expiration_check.manual" in celery_app.tasks


def test_run_expiration_check_end_to_end(db_session):
    item = make_item(db_session, "Milk", local_today())
    payloads = []

    def handler(request):
        payloads.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"status": "ok"}})

    dispatcher = PushDispatcher(
        gateway_url="https://push.example.test/send",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    result = run_expiration_check(session_factory=TestingSessionLocal, dispatcher=dispatcher)

    assert result["sent"] == 1
    assert result["failed"] == 0
    assert payloads[0]["data"] == {"foodItemId": str(item.id), "type": "expiry_day"}
    assert db_session.query(NotificationLogEntry).count() == 1
