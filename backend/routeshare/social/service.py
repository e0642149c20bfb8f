# backend/routeshare/social/service.py

"""
ソーシャル操作のサービス層。

責務:
- follows / likes / comments テーブルへの本処理の書き込み
- 副作用としての通知作成（follow / like / comment / mention）
- 本処理の失敗は SocialActionError として呼び出し元へ伝える
- 通知の失敗はログに残すだけで、本処理の結果は変えない
"""

import logging
import re
from typing import Iterable, List, Optional

from routeshare.notifications.schemas import NotificationCreate, NotificationEntityType
from routeshare.notifications.service import NotificationError, NotificationService
from routeshare.remote.client import RemoteClientError, Row, TableClient

from .schemas import SocialActionResult, SocialActionType

logger = logging.getLogger(__name__)

FOLLOWS_TABLE = "follows"
LIKES_TABLE = "likes"
COMMENTS_TABLE = "comments"
PROFILES_TABLE = "profiles"

MENTION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z0-9_.]+)")


class SocialActionError(RuntimeError):
    """本処理（フォロー・いいね・コメントの書き込み）に失敗した場合の例外。"""


class SocialValidationError(SocialActionError, ValueError):
    """入力が不正な場合の例外。"""


def extract_mentions(content: str) -> List[str]:
    """
    コメント本文から @username を出現順・重複なしで取り出す。

    末尾のピリオドは文の区切りとみなして取り除く。
    """
    usernames: List[str] = []
    for match in MENTION_PATTERN.finditer(content):
        username = match.group(1).rstrip(".")
        if username and username not in usernames:
            usernames.append(username)
    return usernames


class SocialService:
    """
    UI のアクション（フォローボタン・いいねボタン・コメント送信）に対応するサービス。
    """

    def __init__(self, client: TableClient, notifications: NotificationService) -> None:
        self._client = client
        self._notifications = notifications

    # ---- 内部ヘルパー -------------------------------------------------

    def _notify_quietly(self, data: NotificationCreate, result: SocialActionResult) -> None:
        """
        通知の作成を試みる。失敗しても例外は外に出さず、件数だけ記録する。
        """
        try:
            outcome = self._notifications.create_notification(data)
        except NotificationError:
            # 通知は本処理を止めない
            logger.warning(
                "Notification side effect failed. action=%s recipient=%s",
                result.action.value,
                data.recipient_id,
                exc_info=True,
            )
            result.notification_failures += 1
            return
        result.notifications.append(outcome)

    def _insert(self, table: str, record: Row, action: SocialActionType) -> Row:
        try:
            return self._client.insert(table, record)
        except RemoteClientError as exc:
            logger.exception("Failed to %s. table=%s", action.value, table)
            raise SocialActionError(f"Failed to {action.value}.") from exc

    def _delete(self, table: str, filters: Row, action: SocialActionType) -> bool:
        try:
            rows = self._client.delete(table, filters=filters)
        except RemoteClientError as exc:
            logger.exception("Failed to %s. table=%s", action.value, table)
            raise SocialActionError(f"Failed to {action.value}.") from exc
        return bool(rows)

    def _resolve_usernames(self, usernames: Iterable[str]) -> List[Row]:
        names = list(usernames)
        if not names:
            return []
        return self._client.select(
            PROFILES_TABLE,
            filters={"username": names},
            columns="id,username",
        )

    # ---- 公開 API ------------------------------------------------------

    def follow_user(self, follower_id: str, following_id: str) -> SocialActionResult:
        """
        フォローを作成し、フォローされた側に follow 通知を送る。

        再フォローでも 24 時間以内なら通知はレート制限で抑制される。
        """
        if follower_id == following_id:
            raise SocialValidationError("Users cannot follow themselves.")

        record = self._insert(
            FOLLOWS_TABLE,
            {"follower_id": follower_id, "following_id": following_id},
            SocialActionType.FOLLOW,
        )
        result = SocialActionResult(action=SocialActionType.FOLLOW, record=record)

        self._notify_quietly(
            NotificationCreate(
                sender_id=follower_id,
                recipient_id=following_id,
                entity_id=follower_id,
                entity_type=NotificationEntityType.FOLLOW,
            ),
            result,
        )
        return result

    def unfollow_user(self, follower_id: str, following_id: str) -> SocialActionResult:
        removed = self._delete(
            FOLLOWS_TABLE,
            {"follower_id": follower_id, "following_id": following_id},
            SocialActionType.UNFOLLOW,
        )
        return SocialActionResult(action=SocialActionType.UNFOLLOW, removed=removed)

    def like_bookmark(
        self,
        user_id: str,
        bookmark_id: str,
        owner_id: Optional[str] = None,
    ) -> SocialActionResult:
        """
        いいねを作成し、作成者がわかっていれば like 通知を送る。
        """
        record = self._insert(
            LIKES_TABLE,
            {"user_id": user_id, "bookmark_id": bookmark_id},
            SocialActionType.LIKE,
        )
        result = SocialActionResult(action=SocialActionType.LIKE, record=record)

        if owner_id:
            self._notify_quietly(
                NotificationCreate(
                    sender_id=user_id,
                    recipient_id=owner_id,
                    entity_id=bookmark_id,
                    entity_type=NotificationEntityType.LIKE,
                ),
                result,
            )
        return result

    def unlike_bookmark(self, user_id: str, bookmark_id: str) -> SocialActionResult:
        removed = self._delete(
            LIKES_TABLE,
            {"user_id": user_id, "bookmark_id": bookmark_id},
            SocialActionType.UNLIKE,
        )
        return SocialActionResult(action=SocialActionType.UNLIKE, removed=removed)

    def add_comment(
        self,
        author_id: str,
        bookmark_id: str,
        content: str,
        owner_id: Optional[str] = None,
    ) -> SocialActionResult:
        """
        コメントを作成し、作成者に comment 通知、メンションされたユーザーに mention 通知を送る。

        メンション先の解決に失敗しても、コメント自体は成功として返す。
        """
        if not content or not content.strip():
            raise SocialValidationError("Comment content must not be empty.")

        record = self._insert(
            COMMENTS_TABLE,
            {"author_id": author_id, "bookmark_id": bookmark_id, "content": content},
            SocialActionType.COMMENT,
        )
        result = SocialActionResult(action=SocialActionType.COMMENT, record=record)

        if owner_id:
            self._notify_quietly(
                NotificationCreate(
                    sender_id=author_id,
                    recipient_id=owner_id,
                    entity_id=bookmark_id,
                    entity_type=NotificationEntityType.COMMENT,
                ),
                result,
            )

        usernames = extract_mentions(content)
        if not usernames:
            return result

        try:
            profiles = self._resolve_usernames(usernames)
        except RemoteClientError:
            logger.warning(
                "Failed to resolve mentioned users. comment_author=%s usernames=%s",
                author_id,
                usernames,
                exc_info=True,
            )
            result.notification_failures += len(usernames)
            return result

        for profile in profiles:
            mentioned_id = profile.get("id")
            # コメント先の作成者には comment 通知を送っているので重ねない
            if not mentioned_id or mentioned_id == owner_id:
                continue
            self._notify_quietly(
                NotificationCreate(
                    sender_id=author_id,
                    recipient_id=str(mentioned_id),
                    entity_id=bookmark_id,
                    entity_type=NotificationEntityType.MENTION,
                ),
                result,
            )
        return result
