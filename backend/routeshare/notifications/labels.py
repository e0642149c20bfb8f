# backend/routeshare/notifications/labels.py

"""
通知の種別ごとの表示情報（ラベル・アイコン・色・遷移先）の対応表。

通知ポリシー本体は種別に依存しない（レート制限ウィンドウの参照のみ）。
表示や画面遷移の分岐はこの対応表に閉じ込める。
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .schemas import Notification, NotificationEntityType, NotificationListItem


@dataclass(frozen=True)
class NotificationPresentation:
    label: str
    icon: str
    color: str
    # "profile" は送信者のプロフィール、"route" は entity_id のルートへ遷移する
    target_screen: str


PRESENTATIONS: Dict[NotificationEntityType, NotificationPresentation] = {
    NotificationEntityType.FOLLOW: NotificationPresentation(
        label="started following you",
        icon="account-plus",
        color="#007AFF",
        target_screen="profile",
    ),
    NotificationEntityType.LIKE: NotificationPresentation(
        label="liked your route",
        icon="heart",
        color="#FF3B30",
        target_screen="route",
    ),
    NotificationEntityType.COMMENT: NotificationPresentation(
        label="commented on your route",
        icon="comment",
        color="#34C759",
        target_screen="route",
    ),
    NotificationEntityType.MENTION: NotificationPresentation(
        label="mentioned you in a comment",
        icon="at",
        color="#AF52DE",
        target_screen="route",
    ),
}

FALLBACK_PRESENTATION = NotificationPresentation(
    label="sent you a notification",
    icon="bell",
    color="#8E8E93",
    target_screen="notifications",
)


def presentation_for(entity_type: NotificationEntityType) -> NotificationPresentation:
    return PRESENTATIONS.get(entity_type, FALLBACK_PRESENTATION)


def describe(notification: Notification) -> str:
    """
    表示用の文言を返す。message が指定されていればそれを優先する。
    """
    if notification.message:
        return notification.message
    return presentation_for(notification.entity_type).label


def navigation_target(notification: Notification) -> Tuple[str, Optional[str]]:
    """
    通知をタップしたときの遷移先 (画面名, 対象 ID) を返す。
    """
    presentation = presentation_for(notification.entity_type)
    if presentation.target_screen == "profile":
        return presentation.target_screen, notification.sender_id
    if presentation.target_screen == "route":
        return presentation.target_screen, notification.entity_id
    return presentation.target_screen, None


def format_time_ago(created_at: datetime, now: Optional[datetime] = None) -> str:
    """
    作成時刻からの経過時間を短縮表記にする（例: 42s, 5m, 3h, 2d, 4mo, 1y）。

    月は 30 日、年は 12 か月として概算する。未来の時刻は 0s として扱う。
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = max(int((now - created_at).total_seconds()), 0)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    months = days // 30
    years = months // 12

    if seconds < 60:
        return f"{seconds}s"
    if minutes < 60:
        return f"{minutes}m"
    if hours < 24:
        return f"{hours}h"
    if days < 30:
        return f"{days}d"
    if months < 12:
        return f"{months}mo"
    return f"{years}y"


def to_list_item(notification: Notification, now: Optional[datetime] = None) -> NotificationListItem:
    """
    Notification に表示情報を付けて一覧の 1 行にする。
    """
    presentation = presentation_for(notification.entity_type)
    return NotificationListItem(
        notification=notification,
        label=describe(notification),
        icon=presentation.icon,
        color=presentation.color,
        time_ago=format_time_ago(notification.created_at, now),
    )
