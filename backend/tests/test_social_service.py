# backend/tests/test_social_service.py

from datetime import timedelta

import pytest

from routeshare.notifications.config import NotificationSettings
from routeshare.notifications.schemas import SuppressionReason
from routeshare.notifications.service import NOTIFICATIONS_TABLE, NotificationService
from routeshare.remote.client import RemoteAPIError, RemoteConnectionError
from routeshare.social.service import (
    COMMENTS_TABLE,
    FOLLOWS_TABLE,
    LIKES_TABLE,
    PROFILES_TABLE,
    SocialActionError,
    SocialService,
    SocialValidationError,
    extract_mentions,
)


class FailingNotificationClient:
    """通知テーブルへのアクセスだけが常に失敗するクライアント。"""

    def select(self, table, **kwargs):
        raise RemoteConnectionError("notifications unavailable")

    def insert(self, table, record):
        raise RemoteConnectionError("notifications unavailable")


def _build(fake_table, clock, notification_client=None) -> SocialService:
    notifications = NotificationService(
        client=notification_client or fake_table,
        settings=NotificationSettings(),
        clock=clock,
    )
    return SocialService(client=fake_table, notifications=notifications)


def _notifications(fake_table, entity_type=None):
    rows = fake_table.tables[NOTIFICATIONS_TABLE]
    if entity_type is None:
        return rows
    return [row for row in rows if row["entity_type"] == entity_type]


def test_follow_creates_follow_and_notification(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    result = service.follow_user("user-s", "user-r")

    assert result.record["follower_id"] == "user-s"
    assert len(fake_table.tables[FOLLOWS_TABLE]) == 1
    assert result.notifications[0].created is True
    assert result.notification_failures == 0

    (notification,) = _notifications(fake_table, "follow")
    assert notification["recipient_id"] == "user-r"
    assert notification["entity_id"] == "user-s"
    assert notification["is_read"] is False


def test_refollow_within_window_does_not_notify_again(fake_table, clock) -> None:
    """
    フォロー -> 解除 -> 1 分後に再フォロー では通知が増えず、25 時間後の再フォローで増える。
    """
    service = _build(fake_table, clock)
    start = clock.now

    service.follow_user("user-s", "user-r")

    clock.now = start + timedelta(seconds=30)
    assert service.unfollow_user("user-s", "user-r").removed is True

    clock.now = start + timedelta(minutes=1)
    again = service.follow_user("user-s", "user-r")
    assert again.notifications[0].reason is SuppressionReason.RATE_LIMITED
    assert len(_notifications(fake_table, "follow")) == 1

    service.unfollow_user("user-s", "user-r")
    clock.now = start + timedelta(hours=25)
    later = service.follow_user("user-s", "user-r")
    assert later.notifications[0].created is True
    assert len(_notifications(fake_table, "follow")) == 2


def test_cannot_follow_yourself(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    with pytest.raises(SocialValidationError):
        service.follow_user("user-s", "user-s")

    assert fake_table.calls == []


def test_follow_succeeds_even_if_notification_fails(fake_table, clock, caplog) -> None:
    """
    通知の作成に失敗しても、フォロー自体は成功として返ることを確認。
    """
    service = _build(fake_table, clock, notification_client=FailingNotificationClient())

    result = service.follow_user("user-s", "user-r")

    assert len(fake_table.tables[FOLLOWS_TABLE]) == 1
    assert result.notifications == []
    assert result.notification_failures == 1
    assert any("Notification side effect failed" in r.getMessage() for r in caplog.records)


def test_follow_primary_failure_is_raised(fake_table, clock) -> None:
    fake_table.failures["insert"] = RemoteAPIError("duplicate key", status_code=409)
    service = _build(fake_table, clock)

    with pytest.raises(SocialActionError):
        service.follow_user("user-s", "user-r")


def test_like_twice_within_window_notifies_once(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    first = service.like_bookmark("user-s", "bookmark-1", owner_id="user-r")
    service.unlike_bookmark("user-s", "bookmark-1")
    clock.advance(seconds=10)
    second = service.like_bookmark("user-s", "bookmark-1", owner_id="user-r")

    assert first.notifications[0].created is True
    assert second.notifications[0].reason is SuppressionReason.RATE_LIMITED
    assert len(_notifications(fake_table, "like")) == 1
    assert len(fake_table.tables[LIKES_TABLE]) == 1


def test_liking_own_route_creates_no_notification(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    result = service.like_bookmark("user-s", "bookmark-1", owner_id="user-s")

    assert result.record["bookmark_id"] == "bookmark-1"
    assert result.notifications[0].reason is SuppressionReason.SELF_ACTION
    assert _notifications(fake_table) == []


def test_like_without_owner_skips_notification(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    result = service.like_bookmark("user-s", "bookmark-1")

    assert result.notifications == []
    assert fake_table.count("select", NOTIFICATIONS_TABLE) == 0


def test_unlike_missing_like_is_not_an_error(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    assert service.unlike_bookmark("user-s", "bookmark-1").removed is False


def test_extract_mentions() -> None:
    content = "Harika rota @ayse ve @mehmet.k! @ayse tekrar. mail@example.com @can."

    assert extract_mentions(content) == ["ayse", "mehmet.k", "can"]


def test_comment_notifies_owner_and_mentioned_users(fake_table, clock) -> None:
    fake_table.seed(PROFILES_TABLE, {"id": "user-a", "username": "ayse"})
    fake_table.seed(PROFILES_TABLE, {"id": "user-r", "username": "owner"})
    fake_table.seed(PROFILES_TABLE, {"id": "user-s", "username": "me"})
    service = _build(fake_table, clock)

    result = service.add_comment(
        "user-s",
        "bookmark-1",
        "Great route @ayse @owner @me @ghost",
        owner_id="user-r",
    )

    assert len(fake_table.tables[COMMENTS_TABLE]) == 1
    assert [row["recipient_id"] for row in _notifications(fake_table, "comment")] == ["user-r"]
    # 作成者へのメンションは comment 通知と重ねず、自分へのメンションは抑制される
    assert [row["recipient_id"] for row in _notifications(fake_table, "mention")] == ["user-a"]
    statuses = [outcome.status.value for outcome in result.notifications]
    assert statuses == ["created", "created", "suppressed"]
    assert result.notification_failures == 0


def test_comment_succeeds_when_mention_lookup_fails(fake_table, clock) -> None:
    service = _build(fake_table, clock)
    fake_table.failures["select"] = RemoteConnectionError("profiles unavailable")

    result = service.add_comment("user-s", "bookmark-1", "hi @ayse", owner_id=None)

    assert len(fake_table.tables[COMMENTS_TABLE]) == 1
    assert result.notification_failures == 1


def test_empty_comment_is_rejected(fake_table, clock) -> None:
    service = _build(fake_table, clock)

    with pytest.raises(SocialValidationError):
        service.add_comment("user-s", "bookmark-1", "   ", owner_id="user-r")


def test_follow_succeeds_when_notification_response_is_malformed(fake_table, clock) -> None:
    """
    通知の insert 応答が想定外の形でも、フォロー自体は成功として返る。
    """

    class MalformedNotificationClient:
        def select(self, table, **kwargs):
            return []

        def insert(self, table, record):
            return {"unexpected": True}

    service = _build(fake_table, clock, notification_client=MalformedNotificationClient())

    result = service.follow_user("user-s", "user-r")

    assert len(fake_table.tables[FOLLOWS_TABLE]) == 1
    assert result.notifications == []
    assert result.notification_failures == 1
