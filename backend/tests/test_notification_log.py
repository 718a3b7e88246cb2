import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from foodtracker.models.notification_log import NotificationLogEntry
from foodtracker.services.notification_log import LogResult, NotificationLog
from conftest import TestingSessionLocal


class TestNotificationLog:
    def test_record_then_exists(self, db_session):
        log = NotificationLog(db_session)
        item_id = uuid.uuid4()

        assert log.exists(item_id, "three_day") is False
        assert log.record(item_id, "three_day") is LogResult.RECORDED
        assert log.exists(item_id, "three_day") is True
        assert log.exists(item_id, "one_day") is False

    def test_second_record_reports_already_exists(self, db_session):
        log = NotificationLog(db_session)
        item_id = uuid.uuid4()

        assert log.record(item_id, "one_day") is LogResult.RECORDED
        assert log.record(item_id, "one_day") is LogResult.ALREADY_EXISTS
        assert db_session.query(NotificationLogEntry).count() == 1

    def test_two_sessions_race_for_the_same_pair(self, db_session):
        """Two runs that both passed the existence check: only one row wins."""
        other_session = TestingSessionLocal()
        try:
            first, second = NotificationLog(db_session), NotificationLog(other_session)
            item_id = uuid.uuid4()
            assert not first.exists(item_id, "expiry_day")
            assert not second.exists(item_id, "expiry_day")

            outcomes = {first.record(item_id, "expiry_day"), second.record(item_id, "expiry_day")}
            assert outcomes == {LogResult.RECORDED, LogResult.ALREADY_EXISTS}
        finally:
            other_session.close()
        assert db_session.query(NotificationLogEntry).count() == 1

    def test_kinds_are_independent_per_item(self, db_session):
        log = NotificationLog(db_session)
        item_id = uuid.uuid4()
        for kind in ("three_day", "one_day", "expiry_day"):
            assert log.record(item_id, kind) is LogResult.RECORDED
        kinds = {e.kind for e in db_session.query(NotificationLogEntry).filter_by(food_item_id=item_id)}
        assert kinds == {"three_day", "one_day", "expiry_day"}

    def test_unique_constraint_backs_the_log(self, db_session):
        item_id = uuid.uuid4()
        db_session.add(NotificationLogEntry(food_item_id=item_id, kind="one_day"))
        db_session.commit()
        db_session.add(NotificationLogEntry(food_item_id=item_id, kind="one_day"))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()
