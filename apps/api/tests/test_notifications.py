"""
Tests for notification records and the notification event hook.
"""
import pytest

from core import events
from core.exceptions import ValidationError
from services.notifications import (
    announce_notification,
    list_notifications,
    mark_notifications_read,
    record_notification,
    unread_count,
)


@pytest.fixture
def feed(db_session, coach, athlete, challenge):
    ids = []
    for result in ("approve", "deny"):
        n = record_notification(
            db_session,
            type="challenge_review",
            from_user_id=coach.id,
            to_user_id=athlete.id,
            challenge_id=challenge.id,
            review_result=result,
        )
        ids.append(n.id)
    record_notification(
        db_session,
        type="challenge_submission",
        from_user_id=athlete.id,
        to_user_id=coach.id,
        challenge_id=challenge.id,
    )
    db_session.commit()
    return ids


def test_rejects_unknown_type(db_session, coach, athlete):
    with pytest.raises(ValidationError):
        record_notification(db_session, type="like", from_user_id=coach.id, to_user_id=athlete.id)


def test_announces_only_when_asked(db_session, coach, athlete, challenge):
    received = []

    def handler(**payload):
        received.append(payload)

    events.subscribe("notification.created", handler)
    try:
        notification = record_notification(
            db_session,
            type="challenge_submission",
            from_user_id=athlete.id,
            to_user_id=coach.id,
            challenge_id=challenge.id,
        )
        assert received == []

        db_session.commit()
        announce_notification(notification)
        announce_notification(None)
    finally:
        events.unsubscribe("notification.created", handler)

    assert len(received) == 1
    assert received[0]["notification_id"] == notification.id
    assert received[0]["to_user_id"] == coach.id
    assert received[0]["type"] == "challenge_submission"


def test_failing_handler_does_not_block(db_session, coach, athlete):
    def broken(**payload):
        raise RuntimeError("push service down")

    events.subscribe("notification.created", broken)
    try:
        notification = record_notification(
            db_session, type="challenge_submission", from_user_id=athlete.id, to_user_id=coach.id
        )
        db_session.commit()
        announce_notification(notification)
    finally:
        events.unsubscribe("notification.created", broken)

    assert notification.id is not None


def test_list_is_scoped_to_recipient(db_session, feed, athlete, challenge):
    rows = list_notifications(db_session, athlete.id)

    assert len(rows) == 2
    assert {r["reviewResult"] for r in rows} == {"approve", "deny"}
    assert rows[0]["fromUser"]["name"] == "Carla Coach"
    assert rows[0]["challengeTitle"] == challenge.title
    assert rows[0]["isRead"] is False


def test_mark_all_read(db_session, feed, athlete, coach):
    assert unread_count(db_session, athlete.id) == 2

    updated = mark_notifications_read(db_session, athlete.id)
    db_session.commit()

    assert updated == 2
    assert unread_count(db_session, athlete.id) == 0
    assert unread_count(db_session, coach.id) == 1


def test_mark_selected_read_ignores_foreign_ids(db_session, feed, coach, athlete):
    # coach tries to mark the athlete's notifications
    updated = mark_notifications_read(db_session, coach.id, feed)
    db_session.commit()

    assert updated == 0
    assert unread_count(db_session, athlete.id) == 2

    updated = mark_notifications_read(db_session, athlete.id, feed[:1])
    db_session.commit()
    assert updated == 1
    assert unread_count(db_session, athlete.id) == 1


def test_mark_empty_selection_marks_nothing(db_session, feed, athlete):
    updated = mark_notifications_read(db_session, athlete.id, [])
    db_session.commit()

    assert updated == 0
    assert unread_count(db_session, athlete.id) == 2
