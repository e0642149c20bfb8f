# backend/routeshare/notifications/schemas.py

"""
通知レコードと通知ポリシーの入出力スキーマ定義。

- Notification: notifications テーブルの 1 レコード（送信者プロフィールの射影つき）
- NotificationCreate: create_notification の入力
- NotificationResult: 作成された / 抑制された のどちらかを表す結果

抑制（自分自身への通知、レート制限）は失敗ではなく「成功扱いの no-op」として返す。
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class NotificationEntityType(str, Enum):
    """
    通知の元になったアクションの種別。

    レート制限ポリシーと表示ラベルの選択に使う。
    """

    FOLLOW = "follow"
    LIKE = "like"
    COMMENT = "comment"
    MENTION = "mention"


class NotificationOutcome(str, Enum):
    CREATED = "created"
    SUPPRESSED = "suppressed"


class SuppressionReason(str, Enum):
    """
    通知を作成しなかった理由。

    - SELF_ACTION: 送信者と受信者が同一
    - RATE_LIMITED: 同じ (送信者, 受信者, 種別) の通知がウィンドウ内に既に存在する
    """

    SELF_ACTION = "self_action"
    RATE_LIMITED = "rate_limited"


class SenderProfile(BaseModel):
    """通知一覧で使う送信者プロフィールの最小射影。"""

    id: str = Field(..., description="プロフィール ID")
    full_name: Optional[str] = Field(None, description="表示名")
    username: Optional[str] = Field(None, description="ハンドル名")
    image_url: Optional[str] = Field(None, description="アバター画像 URL")
    is_verified: bool = Field(False, description="認証済みバッジの有無")
    is_deleted: bool = Field(False, description="退会済みユーザーかどうか")

    @field_validator("is_verified", "is_deleted", mode="before")
    @classmethod
    def _null_as_false(cls, value: Optional[bool]) -> bool:
        # profiles の真偽値カラムは NULL を許容する
        return False if value is None else value


class Notification(BaseModel):
    """
    notifications テーブルの 1 レコード。

    is_read は false -> true にのみ遷移する。
    """

    id: int = Field(..., description="通知 ID（作成時に採番）")
    recipient_id: str = Field(..., description="通知を受け取るユーザー ID")
    sender_id: Optional[str] = Field(None, description="アクションを行ったユーザー ID（システム通知では省略）")
    entity_id: Optional[str] = Field(None, description="通知が参照する対象（ルート・コメント・プロフィール）の ID")
    entity_type: NotificationEntityType = Field(..., description="follow / like / comment / mention")
    message: Optional[str] = Field(None, description="任意の本文。未指定なら種別からラベルを導出する")
    created_at: datetime = Field(..., description="作成時刻。並び順とレート制限の判定に使う")
    is_read: bool = Field(False, description="既読フラグ")
    sender: Optional[SenderProfile] = Field(None, description="送信者プロフィール（一覧取得時のみ）")


class NotificationCreate(BaseModel):
    """create_notification の入力。"""

    sender_id: Optional[str] = Field(None, description="アクションを行ったユーザー ID")
    recipient_id: str = Field(..., min_length=1, description="通知を受け取るユーザー ID（必須）")
    entity_id: Optional[str] = Field(None, description="参照対象の ID")
    entity_type: NotificationEntityType = Field(..., description="follow / like / comment / mention")
    message: Optional[str] = Field(None, description="任意の本文")


class NotificationResult(BaseModel):
    """
    create_notification の結果。

    呼び出し元は status で「作成された」と「ポリシーにより抑制された」を区別できる。
    どちらも成功であり、失敗は例外で表現する。
    """

    status: NotificationOutcome = Field(..., description="created / suppressed")
    reason: Optional[SuppressionReason] = Field(
        None,
        description="抑制理由（status=suppressed のときのみ）",
    )
    notification: Optional[Notification] = Field(
        None,
        description="作成された通知（status=created のときのみ）",
    )

    @property
    def created(self) -> bool:
        return self.status == NotificationOutcome.CREATED

    @classmethod
    def suppressed(cls, reason: SuppressionReason) -> "NotificationResult":
        return cls(status=NotificationOutcome.SUPPRESSED, reason=reason)


class NotificationListItem(BaseModel):
    """
    通知一覧の 1 行分。表示用のラベル・アイコン・経過時間を含む。
    """

    notification: Notification
    label: str = Field(..., description="表示用の文言（message があればそれを優先）")
    icon: str = Field(..., description="アイコン名")
    color: str = Field(..., description="アイコンの色（#RRGGBB）")
    time_ago: str = Field(..., description="作成からの経過時間の短縮表記（例: 5m, 2h）")


class NotificationListResponse(BaseModel):
    items: List[NotificationListItem]
    count: int


class MarkReadResponse(BaseModel):
    id: int
    is_read: bool = True
    updated: bool = Field(..., description="一致するレコードが存在したかどうか")


class MarkAllReadResponse(BaseModel):
    recipient_id: str
    updated_count: int = Field(..., ge=0)


class DeleteNotificationResponse(BaseModel):
    id: int
    deleted: bool = Field(..., description="実際に削除されたかどうか（存在しなかった場合も成功扱い）")
