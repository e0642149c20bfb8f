# backend/routeshare/notifications/service.py

"""
通知の作成ポリシーと既読管理のサービス層。

責務:
- 自分自身への通知の抑制
- (送信者, 受信者, 種別) ごとのレート制限ウィンドウによる重複抑制
- notifications テーブルへの insert / 一覧取得 / 既読化 / 削除
- リモート呼び出し失敗時のログ出力・お知らせ送信・型付き例外への変換

レート制限は「直近の一致レコードを読んでから insert する」2 段階の処理であり、
複数クライアントから同時に呼ばれた場合の重複は防げない（ベストエフォート）。
ローカルでのロックやリトライは行わない。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from routeshare.remote.client import RemoteAPIError, RemoteClientError, Row, TableClient

from .config import NotificationSettings, get_notification_settings
from .notices import Notice, NoticeLevel, NoticeSender
from .schemas import (
    Notification,
    NotificationCreate,
    NotificationOutcome,
    NotificationResult,
    SenderProfile,
    SuppressionReason,
)

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = "notifications"

_TIMESTAMP_ADAPTER = TypeAdapter(datetime)

# 送信者プロフィールを埋め込んで取得する select 句
NOTIFICATION_LIST_COLUMNS = """
    *,
    profiles!notifications_sender_id_fkey (
        id,
        full_name,
        username,
        image_url,
        is_verified,
        is_deleted
    )
"""


class NotificationError(Exception):
    """通知サービス全般の基底例外。"""


class NotificationValidationError(NotificationError, ValueError):
    """入力が不正な場合の例外。リモート呼び出しの前に投げる。"""


class NotificationReadError(NotificationError):
    """通知の読み取り（レート制限の確認・一覧取得）に失敗した場合の例外。"""


class NotificationWriteError(NotificationError):
    """通知の作成・更新・削除に失敗した場合の例外。"""


class NotificationNotFoundError(NotificationError):
    """対象の通知が存在しない場合の例外（呼び出し側が確認を求めた場合のみ）。"""

    def __init__(self, notification_id: int) -> None:
        super().__init__(f"Notification {notification_id} was not found.")
        self.notification_id = notification_id


def parse_timestamp(value: Any) -> datetime:
    """
    リモートから返る created_at（ISO8601 文字列）を aware な datetime に変換する。

    タイムゾーンが無い場合は UTC とみなす。
    """
    try:
        parsed = _TIMESTAMP_ADAPTER.validate_python(value)
    except ValidationError as exc:
        raise ValueError(f"Unsupported timestamp value: {value!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def row_to_notification(row: Row) -> Notification:
    """
    notifications テーブルの生レコードを Notification に変換する。

    埋め込みリソース profiles があれば sender として取り込む。
    プロフィールが不正な場合は sender なしの通知として扱う。
    """
    data: Dict[str, Any] = {key: value for key, value in row.items() if key != "profiles"}
    profile = row.get("profiles")
    if isinstance(profile, list):
        # 埋め込みが配列で返る構成にも対応する
        profile = profile[0] if profile else None
    if isinstance(profile, dict) and profile.get("id") is not None:
        try:
            data["sender"] = SenderProfile(**profile)
        except ValidationError:
            logger.warning(
                "Ignoring malformed sender profile. notification=%s sender=%s",
                row.get("id"),
                profile.get("id"),
            )
    return Notification(**data)


class NotificationService:
    """
    通知の作成を 1 つの入口に集約するサービス。

    follow / like / comment / mention のどの機能から呼ばれても、
    同じ抑制・レート制限のルールが適用される。
    """

    def __init__(
        self,
        client: TableClient,
        settings: Optional[NotificationSettings] = None,
        notices: Optional[NoticeSender] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._client = client
        self._settings = settings or get_notification_settings()
        self._notices = notices
        self._clock = clock

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    # ---- 内部ヘルパー -------------------------------------------------

    def _now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(timezone.utc)

    def _notify_user(self, body: str) -> None:
        if self._notices is None:
            return
        self._notices.send(Notice(level=NoticeLevel.ERROR, title="Notifications", body=body))

    @staticmethod
    def _coerce_input(data: Union[NotificationCreate, Mapping[str, Any]]) -> NotificationCreate:
        if isinstance(data, NotificationCreate):
            payload = data
        else:
            try:
                payload = NotificationCreate(**dict(data))
            except ValidationError as exc:
                raise NotificationValidationError(f"Invalid notification input: {exc}") from exc

        if not payload.recipient_id.strip():
            raise NotificationValidationError("recipient_id is required.")
        return payload

    def _is_rate_limited(self, payload: NotificationCreate, now: datetime) -> bool:
        """
        同じ (送信者, 受信者, 種別) の直近の通知がウィンドウ内にあるかどうかを判定する。

        読み取りに失敗した場合は insert に進まず NotificationReadError を投げる。
        """
        window = self._settings.window_for(payload.entity_type)
        if window is None or not payload.sender_id:
            return False

        try:
            rows = self._client.select(
                NOTIFICATIONS_TABLE,
                filters={
                    "recipient_id": payload.recipient_id,
                    "sender_id": payload.sender_id,
                    "entity_type": payload.entity_type.value,
                },
                columns="created_at",
                order_by="created_at",
                descending=True,
                limit=1,
            )
        except RemoteClientError as exc:
            logger.exception(
                "Failed to check notification rate limit. sender=%s recipient=%s type=%s",
                payload.sender_id,
                payload.recipient_id,
                payload.entity_type.value,
            )
            self._notify_user("An error occurred while checking notifications.")
            raise NotificationReadError("Failed to check notification rate limit.") from exc

        if not rows:
            return False

        try:
            last_created_at = parse_timestamp(rows[0].get("created_at"))
        except ValueError as exc:
            logger.exception(
                "Unexpected created_at in notifications. sender=%s recipient=%s value=%r",
                payload.sender_id,
                payload.recipient_id,
                rows[0].get("created_at"),
            )
            self._notify_user("An error occurred while checking notifications.")
            raise NotificationReadError("Failed to check notification rate limit.") from exc

        return now - last_created_at < window

    # ---- 公開 API ------------------------------------------------------

    def create_notification(
        self,
        data: Union[NotificationCreate, Mapping[str, Any]],
    ) -> NotificationResult:
        """
        通知を 1 件作成する。ポリシーにより抑制された場合は suppressed を返す。

        1. 入力検証（recipient_id 必須、entity_type は既知の種別のみ）
        2. sender_id == recipient_id なら self_action で抑制（リモート呼び出しなし）
        3. ウィンドウが設定された種別なら直近の一致レコードを確認し、ウィンドウ内なら rate_limited で抑制
        4. それ以外は is_read=False, created_at=now で insert して作成結果を返す

        :raises NotificationValidationError: 入力が不正な場合
        :raises NotificationReadError: レート制限の確認に失敗した場合
        :raises NotificationWriteError: insert に失敗した場合
        """
        payload = self._coerce_input(data)

        if payload.sender_id and payload.sender_id == payload.recipient_id:
            logger.debug(
                "Notification suppressed: self action. user=%s type=%s",
                payload.sender_id,
                payload.entity_type.value,
            )
            return NotificationResult.suppressed(SuppressionReason.SELF_ACTION)

        now = self._now()

        if self._is_rate_limited(payload, now):
            logger.info(
                "Notification suppressed by rate limit. sender=%s recipient=%s type=%s",
                payload.sender_id,
                payload.recipient_id,
                payload.entity_type.value,
            )
            return NotificationResult.suppressed(SuppressionReason.RATE_LIMITED)

        record: Row = {
            "sender_id": payload.sender_id or None,
            "recipient_id": payload.recipient_id,
            "entity_id": payload.entity_id or None,
            "entity_type": payload.entity_type.value,
            "message": payload.message or None,
            "is_read": False,
            "created_at": now.isoformat(),
        }

        try:
            row = self._client.insert(NOTIFICATIONS_TABLE, record)
        except RemoteClientError as exc:
            logger.exception(
                "Failed to create notification. sender=%s recipient=%s type=%s",
                payload.sender_id,
                payload.recipient_id,
                payload.entity_type.value,
            )
            self._notify_user("An error occurred while creating the notification.")
            raise NotificationWriteError("Failed to create notification.") from exc

        try:
            notification = row_to_notification(row)
        except ValidationError as exc:
            logger.exception("Unexpected notification returned on insert. row=%s", row)
            self._notify_user("An error occurred while creating the notification.")
            raise NotificationWriteError("Failed to create notification.") from exc

        return NotificationResult(status=NotificationOutcome.CREATED, notification=notification)

    def list_notifications(self, recipient_id: str) -> List[Notification]:
        """
        受信者の通知を新しい順に取得する（送信者プロフィールつき、最大 page_size 件）。

        ページングは行わず、1 ページ分だけを返す。
        """
        if not recipient_id or not recipient_id.strip():
            raise NotificationValidationError("recipient_id is required.")

        try:
            rows = self._client.select(
                NOTIFICATIONS_TABLE,
                filters={"recipient_id": recipient_id},
                columns=NOTIFICATION_LIST_COLUMNS,
                order_by="created_at",
                descending=True,
                limit=self._settings.page_size,
            )
        except RemoteClientError as exc:
            logger.exception("Failed to fetch notifications. recipient=%s", recipient_id)
            self._notify_user("Could not load notifications.")
            raise NotificationReadError("Failed to fetch notifications.") from exc

        notifications: List[Notification] = []
        for row in rows[: self._settings.page_size]:
            try:
                notifications.append(row_to_notification(row))
            except ValidationError:
                # 未知の種別などは一覧から外す
                logger.warning("Skipping malformed notification row. id=%s", row.get("id"))
        return notifications

    def mark_as_read(self, notification_id: int, *, require_found: bool = False) -> bool:
        """
        通知を既読にする。既に既読でも同じ結果になる（冪等）。

        :return: 一致するレコードがあったかどうか
        :raises NotificationNotFoundError: require_found=True かつ対象が存在しない場合
        """
        try:
            rows = self._client.update(
                NOTIFICATIONS_TABLE,
                filters={"id": notification_id},
                patch={"is_read": True},
            )
        except RemoteAPIError as exc:
            if exc.status_code == 404:
                rows = []
            else:
                self._handle_write_failure("mark as read", notification_id, exc)
        except RemoteClientError as exc:
            self._handle_write_failure("mark as read", notification_id, exc)

        updated = bool(rows)
        if not updated and require_found:
            raise NotificationNotFoundError(notification_id)
        return updated

    def mark_all_as_read(self, recipient_id: str) -> int:
        """
        受信者の未読通知をまとめて既読にし、更新件数を返す。
        """
        if not recipient_id or not recipient_id.strip():
            raise NotificationValidationError("recipient_id is required.")

        try:
            rows = self._client.update(
                NOTIFICATIONS_TABLE,
                filters={"recipient_id": recipient_id, "is_read": False},
                patch={"is_read": True},
            )
        except RemoteClientError as exc:
            logger.exception("Failed to mark notifications as read. recipient=%s", recipient_id)
            self._notify_user("An error occurred while marking notifications as read.")
            raise NotificationWriteError("Failed to mark notifications as read.") from exc

        return len(rows)

    def delete_notification(self, notification_id: int) -> bool:
        """
        通知を削除する。存在しない場合もエラーにはせず False を返す。
        """
        try:
            rows = self._client.delete(NOTIFICATIONS_TABLE, filters={"id": notification_id})
        except RemoteAPIError as exc:
            if exc.status_code == 404:
                return False
            self._handle_write_failure("delete", notification_id, exc)
        except RemoteClientError as exc:
            self._handle_write_failure("delete", notification_id, exc)

        return bool(rows)

    def _handle_write_failure(self, operation: str, notification_id: int, exc: Exception) -> None:
        logger.exception("Failed to %s notification. id=%s", operation, notification_id)
        self._notify_user(f"An error occurred while trying to {operation} the notification.")
        raise NotificationWriteError(f"Failed to {operation} notification {notification_id}.") from exc
